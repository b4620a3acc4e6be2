"""
Ping model: one health-check observation of an endpoint.

Pings are append-only; the metrics windows need at least 30 days of them.
"""

from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from clarity.db.database import Base
from clarity.models.base_model import uuid_pk, uuid_fk


class Ping(Base):
    """
    Result of a single reachability probe.

    latency_ms is recorded for every completed attempt, including timeouts
    and non-2xx responses.
    """
    __tablename__ = "pings"

    id = uuid_pk()
    endpoint_id = uuid_fk("endpoints", nullable=False)

    pinged_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    success = Column(Boolean, nullable=False)
    status_code = Column(Integer, nullable=True)
    latency_ms = Column(Integer, nullable=True)
    error_message = Column(String, nullable=True)

    endpoint = relationship("Endpoint", back_populates="pings")

    def __repr__(self):
        status = "ok" if self.success else "failed"
        return f"<Ping(endpoint_id={self.endpoint_id}, {status}, latency={self.latency_ms}ms)>"
