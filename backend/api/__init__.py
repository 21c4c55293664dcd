from .orders import router as orders_router
from .storage import router as storage_router

__all__ = [
    "orders_router",
    "storage_router",
]
