# services/metrics_service.py
"""
Aggregation/Metrics Service - read-only rollups of the ledger for dashboards.

Plain projections over committed rows: no locks are taken and results may
lag concurrent writers by whatever the database's read isolation allows.
"""
from collections import Counter
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from models import Order, PaymentTransaction, utcnow
from models.order import PaymentStatus
from schemas.metrics import (
     CustomerDues,
     DueOrder,
     DueSummary,
     MetricsSnapshot,
     RecentPayment,
     StatusCounts,
)
from services.errors import ValidationError
from services.status_service import ZERO, balance_of, derive_order_status

LATEST_PAYMENTS_LIMIT = 5
UNKNOWN_CUSTOMER = "Unknown"


def compute_metrics(
     db: Session,
     period_days: int,
     today: Optional[date] = None,
     recent_window_days: int = 7,
     now: Optional[datetime] = None,
) -> MetricsSnapshot:
     """
     Rollup of orders placed and payments created in the last period_days.

     Args:
          db: SQLAlchemy database session
          period_days: Length of the reporting period (>= 1)
          today: Reference date for the period and overdue checks
          recent_window_days: Window for the recent-payment count
          now: Reference timestamp for payment windows (naive UTC)

     Returns:
          MetricsSnapshot
     """
     if period_days < 1:
          raise ValidationError("period_days must be at least 1", code="INVALID_PERIOD")
     today = today or date.today()
     now = now or utcnow()
     period_start = today - timedelta(days=period_days)

     orders = (
          db.query(Order)
          .filter(Order.is_deleted.is_(False), Order.order_date >= period_start)
          .order_by(Order.order_date.desc())
          .all()
     )

     total_revenue = sum((Decimal(o.total_amount) for o in orders), ZERO)
     total_received = sum((Decimal(o.amount_received) for o in orders), ZERO)
     pending_amount = ZERO
     overdue_amount = ZERO
     counts = {status.value.lower(): 0 for status in PaymentStatus}
     for order in orders:
          balance = balance_of(order.total_amount, order.amount_received)
          status = derive_order_status(order, today)
          if balance > ZERO:
               pending_amount += balance
          if status == PaymentStatus.OVERDUE:
               overdue_amount += balance
          counts[status.value.lower()] += 1

     average_order_value = (total_revenue / len(orders)).quantize(Decimal("0.01")) if orders else ZERO

     payments = (
          db.query(PaymentTransaction, Order.customer_name)
          .join(Order, Order.id == PaymentTransaction.order_id)
          .filter(
               PaymentTransaction.is_deleted.is_(False),
               Order.is_deleted.is_(False),
               PaymentTransaction.created_at >= datetime.combine(period_start, time.min),
          )
          .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
          .all()
     )

     recent_cutoff = now - timedelta(days=recent_window_days)
     recent_count = sum(1 for payment, _ in payments if payment.created_at > recent_cutoff)
     methods: Dict[str, int] = dict(Counter(payment.payment_method.value for payment, _ in payments))

     latest = [
          RecentPayment(
               payment_id=payment.id,
               order_id=payment.order_id,
               customer_name=customer_name,
               amount_paid=payment.amount_paid,
               payment_method=payment.payment_method.value,
               created_at=payment.created_at,
          )
          for payment, customer_name in payments[:LATEST_PAYMENTS_LIMIT]
     ]

     return MetricsSnapshot(
          period_days=period_days,
          period_start=period_start,
          generated_at=now,
          total_orders=len(orders),
          total_revenue=total_revenue,
          total_received=total_received,
          pending_amount=pending_amount,
          overdue_amount=overdue_amount,
          average_order_value=average_order_value,
          orders_by_status=StatusCounts(**counts),
          recent_payments=recent_count,
          recent_window_days=recent_window_days,
          payment_methods=methods,
          latest_payments=latest,
     )


def compute_due_summary(db: Session, today: Optional[date] = None) -> DueSummary:
     """Orders with a positive balance, grouped by customer, largest debt first."""
     today = today or date.today()
     orders = (
          db.query(Order)
          .filter(Order.is_deleted.is_(False), Order.balance_amount > 0)
          .order_by(Order.id)
          .all()
     )

     grouped: Dict[str, List[DueOrder]] = {}
     for order in orders:
          grouped.setdefault(order.customer_name or UNKNOWN_CUSTOMER, []).append(
               DueOrder(
                    order_id=order.id,
                    balance_due=balance_of(order.total_amount, order.amount_received),
                    due_date=order.due_date,
                    status=derive_order_status(order, today).value,
               )
          )

     customers = [
          CustomerDues(
               customer_name=name,
               order_count=len(due_orders),
               total_due=sum((d.balance_due for d in due_orders), ZERO),
               orders=due_orders,
          )
          for name, due_orders in grouped.items()
     ]
     customers.sort(key=lambda c: (-c.total_due, c.customer_name))

     return DueSummary(
          total_due_overall=sum((c.total_due for c in customers), ZERO),
          total_pending_orders=len(orders),
          customers=customers,
     )
