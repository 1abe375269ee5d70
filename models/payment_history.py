# models/payment_history.py
"""
PaymentHistory model - write-once audit trail of payment mutations.

Each row stores the full before/after snapshot of a payment. Rows are
append-only; the mapper rejects any UPDATE or DELETE of a persisted entry.
"""
import enum

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Integer, String, Text, event
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class HistoryAction(str, enum.Enum):
     """Kind of mutation captured by a history entry."""
     CREATE = "CREATE"
     UPDATE = "UPDATE"
     DELETE = "DELETE"


class ImmutableHistoryError(RuntimeError):
     """Raised when code tries to change or remove a persisted history entry."""


class PaymentHistory(Base):
     """Immutable history entry. old_values/new_values are JSON payment snapshots."""
     __tablename__ = "payment_history"

     id = Column(Integer, primary_key=True, autoincrement=True)
     payment_id = Column(
          Integer,
          ForeignKey("payments.id", ondelete="RESTRICT"),
          nullable=False,
          index=True
     )
     action = Column(
          Enum(HistoryAction, name="history_action", create_constraint=True),
          nullable=False
     )
     old_values = Column(JSON, nullable=True)
     new_values = Column(JSON, nullable=True)
     changed_by = Column(String(100), nullable=False)
     changed_at = Column(DateTime, default=utcnow, nullable=False, index=True)
     notes = Column(Text, nullable=True)

     # Relationships
     payment = relationship("PaymentTransaction", back_populates="history")

     def __repr__(self):
          return f"<PaymentHistory(id={self.id}, payment_id={self.payment_id}, action='{self.action.value}')>"


@event.listens_for(PaymentHistory, "before_update")
def _reject_history_update(mapper, connection, target):
     raise ImmutableHistoryError(f"Payment history entry {target.id} cannot be modified")


@event.listens_for(PaymentHistory, "before_delete")
def _reject_history_delete(mapper, connection, target):
     raise ImmutableHistoryError(f"Payment history entry {target.id} cannot be deleted")
