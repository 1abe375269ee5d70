# models/__init__.py
from .base import Base, utcnow
from .order import Order, OrderStatus, PaymentStatus
from .payment import PaymentTransaction, PaymentMethod
from .payment_history import PaymentHistory, HistoryAction, ImmutableHistoryError
from .order_status_log import OrderStatusLog

__all__ = [
     "Base",
     "utcnow",
     "Order",
     "OrderStatus",
     "PaymentStatus",
     "PaymentTransaction",
     "PaymentMethod",
     "PaymentHistory",
     "HistoryAction",
     "ImmutableHistoryError",
     "OrderStatusLog",
]
