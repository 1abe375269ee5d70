# routers/__init__.py
from .payments import router as payments_router
from .orders import router as orders_router
from .metrics import router as metrics_router

__all__ = ["payments_router", "orders_router", "metrics_router"]
