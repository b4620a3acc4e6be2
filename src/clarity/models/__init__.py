from clarity.db.database import Base

# Import all models so metadata.create_all can discover them
from .endpoint import Endpoint
from .ping import Ping
from .price_history import PriceHistory
from .category import Category
