# src/clarity/sources/bazaar.py
"""
Client for the Coinbase x402 Bazaar discovery API.

The Bazaar is the primary registry (Base, Solana, Polygon, ...). Pages come
back as ``{items: [...], pagination: {offset, limit, total}}``; older
deployments returned ``{resources: [...], nextPageToken}`` or a bare list,
so all of those are understood.
"""
from typing import Any, Dict, List, Optional

import httpx

from clarity.config import BAZAAR_API_URL
from clarity.sources.base import RegistryAdapter, parse_price, text_or_none
from clarity.sources.networks import normalize_network
from clarity.sources.types import SourceEndpoint


def _payment_details(resource: Dict[str, Any]) -> Dict[str, Any]:
    """Return the payment requirements block, whichever key it lives under."""
    details = resource.get("paymentDetails")
    if isinstance(details, dict):
        return details

    accepts = resource.get("accepts")
    if isinstance(accepts, list):
        for option in accepts:
            if isinstance(option, dict):
                return option

    return {}


class BazaarAdapter(RegistryAdapter):
    name = "bazaar"

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None, **kwargs):
        super().__init__(base_url or BAZAAR_API_URL, client=client, **kwargs)

    def first_page_params(self) -> Dict[str, Any]:
        return {"limit": self.page_size, "offset": 0}

    def next_page_params(
        self,
        params: Dict[str, Any],
        payload: Any,
        items: List[Dict[str, Any]],
        pagination: Optional[Dict[str, Any]],
    ) -> Optional[Dict[str, Any]]:
        if not items:
            return None

        if pagination is not None:
            offset = int(pagination.get("offset") or params.get("offset") or 0)
            limit = int(pagination.get("limit") or params.get("limit") or self.page_size)
            total = pagination.get("total")
            next_offset = offset + len(items)
            if total is not None and next_offset >= int(total):
                return None
            return {"limit": limit, "offset": next_offset}

        if isinstance(payload, dict):
            token = payload.get("nextPageToken")
            if token:
                return {"limit": params.get("limit", self.page_size), "pageToken": token}
            next_offset = payload.get("nextOffset")
            if next_offset is not None:
                return {"limit": params.get("limit", self.page_size), "offset": int(next_offset)}
            if "resources" in payload:
                # Token-style responses without a token are the last page.
                return None

        # Bare list: a short page is the last page.
        if len(items) < int(params.get("limit", self.page_size)):
            return None
        return {"limit": params.get("limit", self.page_size), "offset": int(params.get("offset", 0)) + len(items)}

    def transform(self, record: Dict[str, Any]) -> Optional[SourceEndpoint]:
        payment = _payment_details(record)

        resource_url = record.get("url") or record.get("resource") or payment.get("resource")
        if not resource_url or not isinstance(resource_url, str):
            return None

        description = text_or_none(record.get("description")) or text_or_none(payment.get("description"))

        return SourceEndpoint(
            resource_url=resource_url,
            description=description,
            price_micro_usdc=parse_price(payment.get("maxAmountRequired")),
            network=normalize_network(payment.get("network")),
            pay_to_address=text_or_none(payment.get("payTo")),
            source=self.name,
            raw_data=record,
        )
