from sqlalchemy import Column, BigInteger, Date, UniqueConstraint
from sqlalchemy.orm import relationship
from clarity.db.database import Base
from clarity.models.base_model import uuid_pk, uuid_fk


class PriceHistory(Base):
    """
    Daily price snapshot for an endpoint.

    At most one row per (endpoint, day); a second write for the same day is ignored.
    """
    __tablename__ = "price_history"

    id = uuid_pk()
    endpoint_id = uuid_fk("endpoints", nullable=False)
    recorded_at = Column(Date, nullable=False)
    price_micro_usdc = Column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "endpoint_id",
            "recorded_at",
            name="uq_price_history_endpoint_day",
        ),
    )

    endpoint = relationship("Endpoint", back_populates="price_history")

    def __repr__(self):
        return f"<PriceHistory(endpoint_id={self.endpoint_id}, {self.recorded_at}: {self.price_micro_usdc})>"
