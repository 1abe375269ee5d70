# services/__init__.py
from .errors import (
     LedgerError,
     ValidationError,
     NotFoundError,
     ConcurrencyConflict,
     OverpaymentPolicyViolation,
     PartialBatchFailure,
)
from .status_service import derive_status
from .payment_service import PaymentService
from .bulk_service import BulkOperationCoordinator, BulkResult

__all__ = [
     "LedgerError",
     "ValidationError",
     "NotFoundError",
     "ConcurrencyConflict",
     "OverpaymentPolicyViolation",
     "PartialBatchFailure",
     "derive_status",
     "PaymentService",
     "BulkOperationCoordinator",
     "BulkResult",
]
