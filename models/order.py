# models/order.py
import enum
from decimal import Decimal

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class PaymentStatus(str, enum.Enum):
     """Derived payment status of an order or a payment snapshot."""
     PAID = "Paid"
     PARTIAL = "Partial"
     DUE = "Due"
     OVERDUE = "Overdue"


class OrderStatus(str, enum.Enum):
     """Fulfilment status of an order."""
     PENDING = "Pending"
     DESIGN = "Design"
     PRINTING = "Printing"
     DELIVERED = "Delivered"
     CANCELLED = "Cancelled"


class Order(Base):
     """
     Order model - per-order running totals owned by the order subsystem.

     Only the payment ledger writes amount_received, balance_amount and
     payment_status. version_id is bumped on every flush and checked in the
     UPDATE's WHERE clause, so two writers holding the same version cannot
     both commit.
     """

     id = Column(Integer, primary_key=True, autoincrement=True)
     customer_name = Column(String(255), nullable=True, index=True)
     order_date = Column(Date, default=lambda: utcnow().date(), nullable=False, index=True)

     # Aggregate
     total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
     amount_received = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
     balance_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
     due_date = Column(Date, nullable=True, index=True)

     status = Column(
          Enum(OrderStatus, name="order_status", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          default=OrderStatus.PENDING,
          nullable=False,
          index=True
     )
     payment_status = Column(
          Enum(PaymentStatus, name="payment_status", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          default=PaymentStatus.DUE,
          nullable=False
     )

     # Soft delete
     is_deleted = Column(Boolean, default=False, nullable=False, index=True)
     deleted_at = Column(DateTime, nullable=True)

     version_id = Column(Integer, nullable=False)

     # Timestamps
     created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

     # Relationships
     payments = relationship("PaymentTransaction", back_populates="order")
     status_log = relationship("OrderStatusLog", back_populates="order")

     __mapper_args__ = {"version_id_col": version_id}

     def __repr__(self):
          return (
               f"<Order(id={self.id}, total={self.total_amount}, "
               f"received={self.amount_received}, balance={self.balance_amount})>"
          )

     @property
     def is_overpaid(self) -> bool:
          """True when more has been received than the order total."""
          return (self.balance_amount or Decimal("0")) < 0
