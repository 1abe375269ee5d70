# models/payment.py
import enum

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from .base import Base, utcnow
from .order import PaymentStatus


class PaymentMethod(str, enum.Enum):
     """Accepted payment methods."""
     CASH = "Cash"
     UPI = "UPI"
     BANK_TRANSFER = "BankTransfer"
     CARD = "Card"
     CHECK = "Check"


class PaymentTransaction(Base):
     """
     PaymentTransaction model - one payment recorded against an order.

     Deleting a payment reverses it: the row is flagged rather than removed so
     its history keeps pointing at a real payment_id.
     """
     __tablename__ = "payments"

     id = Column(Integer, primary_key=True, autoincrement=True)
     order_id = Column(
          Integer,
          ForeignKey("orders.id", ondelete="RESTRICT"),
          nullable=False,
          index=True
     )

     # Payment details
     amount_paid = Column(Numeric(12, 2), nullable=False)
     payment_method = Column(
          Enum(PaymentMethod, name="payment_method", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          default=PaymentMethod.CASH,
          nullable=False
     )
     payment_date = Column(Date, nullable=False, index=True)
     due_date = Column(Date, nullable=True)
     status = Column(
          Enum(PaymentStatus, name="payment_snapshot_status", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          default=PaymentStatus.DUE,
          nullable=False,
          index=True
     )
     notes = Column(Text, nullable=True)

     # Reversal
     is_deleted = Column(Boolean, default=False, nullable=False, index=True)
     deleted_at = Column(DateTime, nullable=True)
     deleted_by = Column(String(100), nullable=True)

     # Audit
     created_by = Column(String(100), nullable=False)
     created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False, index=True)
     updated_at = Column(DateTime, default=utcnow, nullable=False)

     # Relationships
     order = relationship("Order", back_populates="payments")
     history = relationship(
          "PaymentHistory",
          back_populates="payment",
          order_by="PaymentHistory.changed_at.desc()"
     )

     def __repr__(self):
          return f"<PaymentTransaction(id={self.id}, order_id={self.order_id}, amount={self.amount_paid}, status='{self.status.value}')>"
