# src/clarity/sources/x402apis.py
"""
Client for the x402apis.io provider registry (Solana-focused).
"""
import math
from typing import Any, Dict, List, Optional

import httpx

from clarity.config import X402APIS_REGISTRY_URL
from clarity.sources.base import RegistryAdapter, parse_price, text_or_none
from clarity.sources.networks import normalize_network
from clarity.sources.types import SourceEndpoint


class X402ApisAdapter(RegistryAdapter):
    name = "x402apis"
    default_network = "solana"

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None, **kwargs):
        super().__init__(base_url or X402APIS_REGISTRY_URL, client=client, **kwargs)

    def first_page_params(self) -> Dict[str, Any]:
        return {"page": 1, "limit": self.page_size}

    def next_page_params(
        self,
        params: Dict[str, Any],
        payload: Any,
        items: List[Dict[str, Any]],
        pagination: Optional[Dict[str, Any]],
    ) -> Optional[Dict[str, Any]]:
        if not items or not isinstance(payload, dict):
            return None

        page = int(payload.get("page") or params["page"])
        limit = int(payload.get("limit") or params["limit"])
        total = payload.get("total")
        if total is None or limit <= 0:
            return None

        total_pages = math.ceil(int(total) / limit)
        if page >= total_pages:
            return None
        return {"page": page + 1, "limit": params["limit"]}

    def transform(self, record: Dict[str, Any]) -> Optional[SourceEndpoint]:
        resource_url = record.get("url") or record.get("endpoint")
        if not resource_url or not isinstance(resource_url, str):
            return None

        return SourceEndpoint(
            resource_url=resource_url,
            description=text_or_none(record.get("description")) or text_or_none(record.get("name")),
            price_micro_usdc=parse_price(record.get("price")),
            network=normalize_network(record.get("network") or self.default_network),
            pay_to_address=text_or_none(record.get("wallet")),
            source=self.name,
            raw_data=record,
        )
