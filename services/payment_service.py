# services/payment_service.py
"""
Payment Transaction Store - records, amends and reverses payments against orders.

Each mutation is one atomic unit spanning:
1. the payment row (insert / update / soft-delete)
2. the owning order's aggregate (amount_received, balance_amount, payment_status)
3. exactly one payment history entry

The order row is always rewritten, so its version counter serialises every
mutation on the same order while orders stay independent of each other.
"""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from config import Settings, get_settings
from database import get_session_context
from logging_config import get_logger
from models import Order, PaymentHistory, PaymentMethod, PaymentTransaction, utcnow
from services import audit_service, order_aggregate
from services.activity_log import ActivitySink, LoggingActivitySink, publish
from services.audit_service import PaymentCreated, PaymentDeleted, PaymentSnapshot, PaymentUpdated
from services.errors import ValidationError, invalid_amount, unknown_payment
from services.status_service import derive_order_status
from services.unit_of_work import run_atomic

logger = get_logger(__name__)

CENT = Decimal("0.01")

UPDATABLE_FIELDS = frozenset({"amount", "payment_date", "due_date", "payment_method", "notes"})


def parse_amount(value: Any) -> Decimal:
     """Coerce to a two-decimal Decimal and require it to be positive."""
     try:
          amount = Decimal(str(value)).quantize(CENT)
     except (InvalidOperation, ValueError, TypeError):
          raise ValidationError(f"Payment amount is not a number: {value!r}", code="INVALID_AMOUNT")
     if not amount.is_finite() or amount <= 0:
          raise invalid_amount(value)
     return amount


def parse_method(value: Any) -> PaymentMethod:
     if isinstance(value, PaymentMethod):
          return value
     try:
          return PaymentMethod(value)
     except ValueError:
          allowed = ", ".join(m.value for m in PaymentMethod)
          raise ValidationError(
               f"Unknown payment method {value!r}; expected one of {allowed}",
               code="INVALID_METHOD",
          )


def require_actor(actor: Optional[str]) -> str:
     if actor is None or not str(actor).strip():
          raise ValidationError("The acting user is required", code="MISSING_ACTOR")
     return str(actor)


class PaymentService:
     """Service class for payment ledger mutations and reads."""

     def __init__(
          self,
          session_factory: Optional[Callable[[], Session]] = None,
          settings: Optional[Settings] = None,
          activity_sink: Optional[ActivitySink] = None,
          clock: Callable[[], date] = date.today,
     ):
          self.session_factory = session_factory
          self.settings = settings or get_settings()
          self.activity_sink = activity_sink or LoggingActivitySink()
          self.clock = clock

     # ------------------------------------------------------------------
     # Mutations
     # ------------------------------------------------------------------

     def record_payment(
          self,
          order_id: int,
          amount: Any,
          method: Any,
          actor: str,
          payment_date: Optional[date] = None,
          due_date: Optional[date] = None,
          notes: Optional[str] = None,
     ) -> PaymentTransaction:
          """
          Record a payment against an order.

          Raises:
               ValidationError: amount <= 0, unknown method or missing actor
               NotFoundError: order does not exist or is soft-deleted
               OverpaymentPolicyViolation: payment exceeds the balance (strict policy)
               ConcurrencyConflict: still conflicting after CONFLICT_MAX_ATTEMPTS attempts
          """
          amount = parse_amount(amount)
          method = parse_method(method)
          actor = require_actor(actor)
          today = self.clock()

          def operation(db: Session) -> Tuple[PaymentTransaction, Order]:
               order = order_aggregate.get_order(db, order_id)
               order_aggregate.apply_payment_delta(
                    order, amount, today, reject_overpayment=self.settings.rejects_overpayment
               )
               payment = PaymentTransaction(
                    order_id=order.id,
                    amount_paid=amount,
                    payment_method=method,
                    payment_date=payment_date or today,
                    due_date=due_date,
                    notes=notes,
                    created_by=actor,
                    status=derive_order_status(order, today, due_date=due_date),
               )
               payment.order = order
               db.add(payment)
               db.flush()
               audit_service.record_history(
                    db,
                    PaymentCreated(new=PaymentSnapshot.of(payment)),
                    actor=actor,
                    notes="Payment recorded",
               )
               return payment, order

          payment, order = run_atomic(
               operation, self.session_factory, self.settings, label=f"record_payment:order={order_id}"
          )
          logger.info(
               "payment_recorded",
               payment_id=payment.id,
               order_id=order.id,
               amount=str(amount),
               balance=str(order.balance_amount),
               actor=actor,
          )
          customer = f" from {order.customer_name}" if order.customer_name else ""
          publish(
               self.activity_sink,
               f"Received a payment of {amount} for Order #{order.id}{customer}.",
               actor,
          )
          return payment

     def update_payment(
          self,
          payment_id: int,
          fields: Mapping[str, Any],
          actor: str,
     ) -> PaymentTransaction:
          """
          Amend a payment. Supported fields: amount, payment_date, due_date,
          payment_method, notes.

          A changed amount is applied by reversing the old amount and applying
          the new one on the order aggregate, in the same transaction.
          """
          actor = require_actor(actor)
          unknown = set(fields) - UPDATABLE_FIELDS
          if unknown:
               raise ValidationError(
                    f"Fields cannot be updated: {', '.join(sorted(unknown))}", code="INVALID_FIELD"
               )
          if not fields:
               raise ValidationError("No fields to update", code="NO_FIELDS")

          changes: Dict[str, Any] = dict(fields)
          if "amount" in changes:
               changes["amount"] = parse_amount(changes["amount"])
          if "payment_method" in changes:
               changes["payment_method"] = parse_method(changes["payment_method"])
          if "payment_date" in changes and changes["payment_date"] is None:
               raise ValidationError("payment_date cannot be cleared", code="MISSING_FIELD")
          today = self.clock()

          def operation(db: Session) -> Tuple[PaymentTransaction, Order]:
               payment = self._get_active_payment(db, payment_id)
               order = order_aggregate.get_order(db, payment.order_id)
               old = PaymentSnapshot.of(payment)

               if "amount" in changes:
                    order_aggregate.apply_payment_delta(
                         order, -Decimal(payment.amount_paid), today, reject_overpayment=False
                    )
                    order_aggregate.apply_payment_delta(
                         order, changes["amount"], today,
                         reject_overpayment=self.settings.rejects_overpayment,
                    )
                    payment.amount_paid = changes["amount"]
               else:
                    order.payment_status = derive_order_status(order, today)
                    order.updated_at = utcnow()

               if "payment_method" in changes:
                    payment.payment_method = changes["payment_method"]
               if "payment_date" in changes:
                    payment.payment_date = changes["payment_date"]
               if "due_date" in changes:
                    payment.due_date = changes["due_date"]
               if "notes" in changes:
                    payment.notes = changes["notes"]

               payment.status = derive_order_status(order, today, due_date=payment.due_date)
               payment.updated_at = utcnow()
               payment.order = order
               db.flush()

               audit_service.record_history(
                    db,
                    PaymentUpdated(old=old, new=PaymentSnapshot.of(payment)),
                    actor=actor,
                    notes="Payment updated",
               )
               return payment, order

          payment, order = run_atomic(
               operation, self.session_factory, self.settings, label=f"update_payment:payment={payment_id}"
          )
          logger.info(
               "payment_updated",
               payment_id=payment.id,
               order_id=order.id,
               fields=sorted(changes),
               balance=str(order.balance_amount),
               actor=actor,
          )
          publish(self.activity_sink, f"Updated payment #{payment.id} on Order #{order.id}.", actor)
          return payment

     def delete_payment(self, payment_id: int, actor: str) -> PaymentTransaction:
          """Reverse a payment: flag it deleted and take its amount off the order."""
          actor = require_actor(actor)
          today = self.clock()

          def operation(db: Session) -> Tuple[PaymentTransaction, Order]:
               payment = self._get_active_payment(db, payment_id)
               order = order_aggregate.get_order(db, payment.order_id)
               old = PaymentSnapshot.of(payment)

               order_aggregate.apply_payment_delta(
                    order, -Decimal(payment.amount_paid), today, reject_overpayment=False
               )
               now = utcnow()
               payment.is_deleted = True
               payment.deleted_at = now
               payment.deleted_by = actor
               payment.updated_at = now
               payment.order = order
               db.flush()

               audit_service.record_history(
                    db,
                    PaymentDeleted(old=old),
                    actor=actor,
                    notes="Payment deleted",
               )
               return payment, order

          payment, order = run_atomic(
               operation, self.session_factory, self.settings, label=f"delete_payment:payment={payment_id}"
          )
          logger.info(
               "payment_deleted",
               payment_id=payment.id,
               order_id=order.id,
               amount=str(payment.amount_paid),
               balance=str(order.balance_amount),
               actor=actor,
          )
          publish(
               self.activity_sink,
               f"Reversed a payment of {payment.amount_paid} on Order #{order.id}.",
               actor,
          )
          return payment

     def reconcile_order(self, order_id: int, repair: bool = False, actor: Optional[str] = None):
          """
          Check an order's stored aggregate against its ledger; with repair=True
          rewrite the aggregate from the ledger sum.
          """
          if repair:
               actor = require_actor(actor)
          today = self.clock()

          def operation(db: Session) -> order_aggregate.ReconciliationReport:
               order = order_aggregate.get_order(db, order_id)
               return order_aggregate.reconcile(db, order, today, repair=repair)

          report = run_atomic(
               operation, self.session_factory, self.settings, label=f"reconcile:order={order_id}"
          )
          if not report.consistent:
               logger.warning(
                    "order_aggregate_drift",
                    order_id=order_id,
                    stored=str(report.stored_amount_received),
                    ledger=str(report.ledger_amount_received),
                    repaired=report.repaired,
                    actor=actor,
               )
          return report

     # ------------------------------------------------------------------
     # Reads
     # ------------------------------------------------------------------

     def get_payment(self, payment_id: int, include_deleted: bool = False) -> PaymentTransaction:
          with self._read_session() as db:
               payment = (
                    db.query(PaymentTransaction)
                    .options(joinedload(PaymentTransaction.order))
                    .filter(PaymentTransaction.id == payment_id)
                    .first()
               )
               if payment is None or (payment.is_deleted and not include_deleted):
                    raise unknown_payment(payment_id)
               return payment

     def list_order_payments(self, order_id: int, include_deleted: bool = False) -> List[PaymentTransaction]:
          """Payments of an order, newest payment_date first."""
          with self._read_session() as db:
               order_aggregate.get_order(db, order_id)
               query = (
                    db.query(PaymentTransaction)
                    .options(joinedload(PaymentTransaction.order))
                    .filter(PaymentTransaction.order_id == order_id)
               )
               if not include_deleted:
                    query = query.filter(PaymentTransaction.is_deleted.is_(False))
               return query.order_by(
                    PaymentTransaction.payment_date.desc(), PaymentTransaction.id.desc()
               ).all()

     def get_payment_history(self, payment_id: int) -> List[PaymentHistory]:
          """History of a payment (deleted payments included), newest first."""
          with self._read_session() as db:
               exists = db.query(PaymentTransaction.id).filter(PaymentTransaction.id == payment_id).first()
               if exists is None:
                    raise unknown_payment(payment_id)
               return audit_service.get_history(db, payment_id)

     def order_summary(self, order_id: int) -> order_aggregate.OrderSummary:
          with self._read_session() as db:
               order = order_aggregate.get_order(db, order_id)
               return order_aggregate.summarize(order, self.clock())

     # ------------------------------------------------------------------
     # Helpers
     # ------------------------------------------------------------------

     def _read_session(self):
          return get_session_context(self.session_factory)

     @staticmethod
     def _get_active_payment(db: Session, payment_id: int) -> PaymentTransaction:
          payment = db.query(PaymentTransaction).filter(PaymentTransaction.id == payment_id).first()
          if payment is None or payment.is_deleted:
               raise unknown_payment(payment_id)
          return payment
