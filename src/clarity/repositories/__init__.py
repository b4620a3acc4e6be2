# src/clarity/repositories/__init__.py
from .endpoint_repository import EndpointRepository
from .ping_repository import PingRepository
from .price_history_repository import PriceHistoryRepository
from .category_repository import CategoryRepository

__all__ = [
    "EndpointRepository",
    "PingRepository",
    "PriceHistoryRepository",
    "CategoryRepository",
]
