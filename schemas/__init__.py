from .payment import (
     PaymentCreate,
     PaymentUpdate,
     PaymentResponse,
     PaymentDeleteResponse,
)
from .history import PaymentHistoryResponse
from .order import (
     OrderSummaryResponse,
     ReconciliationResponse,
     BulkStatusRequest,
     BulkDeleteRequest,
     BulkResultResponse,
)
from .metrics import MetricsSnapshot, DueSummary

__all__ = [
     "PaymentCreate",
     "PaymentUpdate",
     "PaymentResponse",
     "PaymentDeleteResponse",
     "PaymentHistoryResponse",
     "OrderSummaryResponse",
     "ReconciliationResponse",
     "BulkStatusRequest",
     "BulkDeleteRequest",
     "BulkResultResponse",
     "MetricsSnapshot",
     "DueSummary",
]
