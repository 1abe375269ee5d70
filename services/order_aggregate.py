# services/order_aggregate.py
"""
Order Aggregate - per-order running totals derived from the payment ledger.

amount_received always equals the sum of the order's non-deleted payments and
balance_amount equals total_amount - amount_received. Changes are applied as
deltas inside the caller's transaction; the Order mapper's version counter
turns a concurrent write into a StaleDataError at flush time.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from models import Order, PaymentTransaction, utcnow
from models.order import PaymentStatus
from services.errors import OverpaymentPolicyViolation, ValidationError, unknown_order
from services.status_service import ZERO, balance_of, derive_order_status


@dataclass
class OrderSummary:
     order_id: int
     total_amount: Decimal
     amount_received: Decimal
     balance_amount: Decimal
     due_date: Optional[date]
     status: PaymentStatus
     overpaid: bool


@dataclass
class ReconciliationReport:
     order_id: int
     stored_amount_received: Decimal
     ledger_amount_received: Decimal
     stored_balance_amount: Decimal
     expected_balance_amount: Decimal
     drift: Decimal
     payment_count: int
     consistent: bool
     repaired: bool = False


def get_order(db: Session, order_id: int, include_deleted: bool = False) -> Order:
     """Load an order or raise NotFoundError. Soft-deleted orders count as missing."""
     order = db.query(Order).filter(Order.id == order_id).first()
     if order is None or (order.is_deleted and not include_deleted):
          raise unknown_order(order_id)
     return order


def active_payments(db: Session, order_id: int) -> List[PaymentTransaction]:
     return (
          db.query(PaymentTransaction)
          .filter(
               PaymentTransaction.order_id == order_id,
               PaymentTransaction.is_deleted.is_(False),
          )
          .all()
     )


def ledger_total(db: Session, order_id: int) -> Decimal:
     """Sum of amount_paid over the order's non-deleted payments."""
     return sum((p.amount_paid for p in active_payments(db, order_id)), ZERO)


def apply_payment_delta(
     order: Order,
     delta: Decimal,
     today: date,
     reject_overpayment: bool = True,
) -> Order:
     """
     Add delta to amount_received and refresh balance and payment status.

     A positive delta records money in, a negative delta reverses it.

     Raises:
          OverpaymentPolicyViolation: balance would go negative under the strict policy
          ValidationError: amount_received would go negative (aggregate has drifted)
     """
     current = Decimal(order.amount_received or ZERO)
     new_received = current + delta
     new_balance = balance_of(order.total_amount, new_received)

     if new_received < ZERO:
          raise ValidationError(
               f"Reversal of {-delta} exceeds amount received ({current}) on order {order.id}; "
               f"reconcile the order first",
               code="AGGREGATE_UNDERFLOW",
          )
     if delta > ZERO and new_balance < ZERO and reject_overpayment:
          raise OverpaymentPolicyViolation(
               f"Payment would exceed the balance due on order {order.id}: "
               f"balance is {balance_of(order.total_amount, current)}, "
               f"payment changes it by {delta}"
          )

     order.amount_received = new_received
     order.balance_amount = new_balance
     order.payment_status = derive_order_status(order, today)
     order.updated_at = utcnow()
     return order


def summarize(order: Order, today: date) -> OrderSummary:
     """Read-side view of the aggregate with a freshly derived status."""
     balance = balance_of(order.total_amount, order.amount_received)
     return OrderSummary(
          order_id=order.id,
          total_amount=Decimal(order.total_amount),
          amount_received=Decimal(order.amount_received),
          balance_amount=balance,
          due_date=order.due_date,
          status=derive_order_status(order, today),
          overpaid=balance < ZERO,
     )


def reconcile(db: Session, order: Order, today: date, repair: bool = False) -> ReconciliationReport:
     """
     Compare the stored aggregate with the ledger and optionally rewrite it.

     Repair sets amount_received to the ledger sum and recomputes the balance
     and status; it never touches payments.
     """
     payments = active_payments(db, order.id)
     ledger_received = sum((p.amount_paid for p in payments), ZERO)
     stored_received = Decimal(order.amount_received or ZERO)
     stored_balance = Decimal(order.balance_amount or ZERO)
     expected_balance = balance_of(order.total_amount, ledger_received)
     consistent = stored_received == ledger_received and stored_balance == expected_balance

     report = ReconciliationReport(
          order_id=order.id,
          stored_amount_received=stored_received,
          ledger_amount_received=ledger_received,
          stored_balance_amount=stored_balance,
          expected_balance_amount=expected_balance,
          drift=stored_received - ledger_received,
          payment_count=len(payments),
          consistent=consistent,
     )

     if repair and not consistent:
          order.amount_received = ledger_received
          order.balance_amount = expected_balance
          order.payment_status = derive_order_status(order, today)
          order.updated_at = utcnow()
          db.flush()
          report.repaired = True

     return report
