# src/clarity/sources/types.py
"""Common types for all x402 endpoint data sources."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field


class SourceEndpoint(BaseModel):
    """One endpoint record as reported by an upstream registry."""

    model_config = ConfigDict(frozen=True)

    resource_url: str
    description: Optional[str] = None
    price_micro_usdc: Optional[int] = None
    network: Optional[str] = None
    pay_to_address: Optional[str] = None
    source: str
    raw_data: Any = None

    def completeness_score(self) -> int:
        """Higher means more fields populated; used to pick between duplicates."""
        score = 0
        if self.description:
            score += 2
        if self.price_micro_usdc is not None:
            score += 2
        if self.network:
            score += 1
        if self.pay_to_address:
            score += 1
        return score


class SourceStats(BaseModel):
    """Per-source fetch summary (observability only)."""

    source: str
    count: int
    networks: Dict[str, int] = Field(default_factory=dict)
    last_fetch: datetime
    error: Optional[str] = None


class DataSource(Protocol):
    name: str

    async def fetch_endpoints(self, max_pages: int = 3) -> List[SourceEndpoint]:
        ...
