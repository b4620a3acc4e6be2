"""
Endpoint model: the canonical record for one x402 priced resource.

The normalized resource URL is the business key; ingestion upserts on it.
The reliability columns are a snapshot owned by the metrics recomputation
and are overwritten wholesale on every health-check batch.
"""

from sqlalchemy import Column, String, Integer, BigInteger, Boolean, Float, Text, DateTime, JSON
from sqlalchemy.orm import relationship
from clarity.db.database import Base
from clarity.models.base_model import uuid_pk, timestamp_created, timestamp_updated


class Endpoint(Base):
    """
    An indexed x402 endpoint.

    - price_micro_usdc NULL => free or unknown (never coerced to 0)
    - category NULL => the classifier found no signal
    """
    __tablename__ = "endpoints"

    id = uuid_pk()
    resource_url = Column(String, nullable=False, unique=True, index=True)

    # Descriptive
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)
    raw_data = Column(JSON, nullable=True)

    # Commercial
    price_micro_usdc = Column(BigInteger, nullable=True)
    network = Column(String, nullable=True)
    pay_to_address = Column(String, nullable=True)

    # Reliability snapshot
    uptime_24h = Column(Float, nullable=True)
    uptime_7d = Column(Float, nullable=True)
    uptime_30d = Column(Float, nullable=True)
    avg_latency_ms = Column(Integer, nullable=True)
    p95_latency_ms = Column(Integer, nullable=True)
    error_rate = Column(Float, nullable=True)

    # Liveness bookkeeping
    last_seen_at = Column(DateTime(timezone=True), nullable=True)
    last_error_at = Column(DateTime(timezone=True), nullable=True)
    consecutive_failures = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Provenance
    source = Column(String, nullable=True)
    first_indexed_at = timestamp_created()
    updated_at = timestamp_updated()

    pings = relationship(
        "Ping",
        back_populates="endpoint",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    price_history = relationship(
        "PriceHistory",
        back_populates="endpoint",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        state = "active" if self.is_active else "inactive"
        return f"<Endpoint(id={self.id}, resource_url={self.resource_url}, {state})>"
