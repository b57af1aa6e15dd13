"""
Order Services

    - store: transactional create / edit / duplicate / complete
    - queries: user, active and history listings
"""

from app.services.orders.queries import OrderQueryService, parse_status_filter
from app.services.orders.store import ItemSpec, OrderStore, normalize_items

__all__ = [
    "OrderStore",
    "OrderQueryService",
    "ItemSpec",
    "normalize_items",
    "parse_status_filter",
]
