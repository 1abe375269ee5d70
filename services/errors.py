# services/errors.py
"""
Typed error kinds raised by the ledger services.

Callers branch on ``kind`` (the error family) and ``code`` (the specific
cause) rather than on message text. Only ConcurrencyConflict is retryable.
"""
from typing import Any, Dict, List, Optional


class LedgerError(Exception):
     """Base class for every error the ledger surfaces to callers."""

     kind = "LedgerError"
     code = "LEDGER_ERROR"
     retryable = False

     def __init__(self, detail: str, code: Optional[str] = None):
          super().__init__(detail)
          self.detail = detail
          if code is not None:
               self.code = code

     def to_dict(self) -> Dict[str, Any]:
          return {
               "error": self.kind,
               "code": self.code,
               "detail": self.detail,
               "retryable": self.retryable,
          }


class ValidationError(LedgerError):
     """Bad amount, missing or invalid field."""
     kind = "ValidationError"
     code = "INVALID_REQUEST"


class NotFoundError(LedgerError):
     """Unknown (or soft-deleted) order or payment."""
     kind = "NotFoundError"
     code = "NOT_FOUND"


class ConcurrencyConflict(LedgerError):
     """Another writer changed the order aggregate first; safe to retry."""
     kind = "ConcurrencyConflict"
     code = "CONCURRENT_UPDATE"
     retryable = True


class OverpaymentPolicyViolation(LedgerError):
     """The payment would drive the order balance below zero."""
     kind = "OverpaymentPolicyViolation"
     code = "OVERPAYMENT_REJECTED"


class PartialBatchFailure(LedgerError):
     """Some items of a bulk operation failed; carries one cause per failed item."""
     kind = "PartialBatchFailure"
     code = "PARTIAL_BATCH_FAILURE"

     def __init__(self, detail: str, failures: List[Dict[str, Any]], succeeded: List[int]):
          super().__init__(detail)
          self.failures = failures
          self.succeeded = succeeded

     def to_dict(self) -> Dict[str, Any]:
          body = super().to_dict()
          body["failed"] = self.failures
          body["succeeded"] = self.succeeded
          return body


def invalid_amount(amount) -> ValidationError:
     return ValidationError(f"Payment amount must be greater than zero, got {amount}", code="INVALID_AMOUNT")


def unknown_order(order_id: int) -> NotFoundError:
     return NotFoundError(f"Order with ID {order_id} not found", code="UNKNOWN_ORDER")


def unknown_payment(payment_id: int) -> NotFoundError:
     return NotFoundError(f"Payment with ID {payment_id} not found", code="UNKNOWN_PAYMENT")
