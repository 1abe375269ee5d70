# services/audit_service.py
"""
Audit Trail Recorder - write-once history of payment mutations.

Every create/update/delete of a payment is described by one tagged change:
1. PaymentCreated{new}
2. PaymentUpdated{old, new}
3. PaymentDeleted{old}

The change is stored as a PaymentHistory row inside the caller's transaction,
so a failed history write rolls the whole mutation back. Field-level diffs
are derived on read from the two snapshots; there is no update or delete
path for history rows.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from sqlalchemy.orm import Session

from models import HistoryAction, PaymentHistory, PaymentTransaction


# Timestamps change on every write and are left out of diffs
VOLATILE_FIELDS = frozenset({"created_at", "updated_at"})


class PaymentSnapshot(BaseModel):
     """Full state of a payment at one point in time."""
     id: int
     order_id: int
     amount_paid: Decimal
     payment_method: str
     payment_date: date
     due_date: Optional[date] = None
     status: str
     notes: Optional[str] = None
     created_by: str
     is_deleted: bool = False
     created_at: Optional[datetime] = None
     updated_at: Optional[datetime] = None

     model_config = ConfigDict(frozen=True)

     @classmethod
     def of(cls, payment: PaymentTransaction) -> "PaymentSnapshot":
          return cls(
               id=payment.id,
               order_id=payment.order_id,
               amount_paid=payment.amount_paid,
               payment_method=payment.payment_method.value,
               payment_date=payment.payment_date,
               due_date=payment.due_date,
               status=payment.status.value,
               notes=payment.notes,
               created_by=payment.created_by,
               is_deleted=bool(payment.is_deleted),
               created_at=payment.created_at,
               updated_at=payment.updated_at,
          )

     def to_json(self) -> Dict[str, Any]:
          return self.model_dump(mode="json")


class FieldChange(BaseModel):
     """Old and new value of one field."""
     old: Any = None
     new: Any = None


def diff_snapshots(
     old: Optional[PaymentSnapshot],
     new: Optional[PaymentSnapshot],
) -> Dict[str, FieldChange]:
     """
     Field-level diff over the union of both snapshots' fields.

     A missing side contributes None for every field, so a create diffs as
     None -> value and a delete as value -> None.
     """
     old_values = old.model_dump() if old is not None else {}
     new_values = new.model_dump() if new is not None else {}
     changes: Dict[str, FieldChange] = {}
     for key in sorted(set(old_values) | set(new_values)):
          if key in VOLATILE_FIELDS:
               continue
          before = old_values.get(key)
          after = new_values.get(key)
          if before != after:
               changes[key] = FieldChange(old=before, new=after)
     return changes


class PaymentCreated(BaseModel):
     action: Literal["CREATE"] = "CREATE"
     new: PaymentSnapshot

     @property
     def payment_id(self) -> int:
          return self.new.id

     def diff(self) -> Dict[str, FieldChange]:
          return diff_snapshots(None, self.new)


class PaymentUpdated(BaseModel):
     action: Literal["UPDATE"] = "UPDATE"
     old: PaymentSnapshot
     new: PaymentSnapshot

     @property
     def payment_id(self) -> int:
          return self.new.id

     def diff(self) -> Dict[str, FieldChange]:
          return diff_snapshots(self.old, self.new)


class PaymentDeleted(BaseModel):
     action: Literal["DELETE"] = "DELETE"
     old: PaymentSnapshot

     @property
     def payment_id(self) -> int:
          return self.old.id

     def diff(self) -> Dict[str, FieldChange]:
          return diff_snapshots(self.old, None)


PaymentChange = Annotated[
     Union[PaymentCreated, PaymentUpdated, PaymentDeleted],
     Field(discriminator="action"),
]

_change_adapter = TypeAdapter(PaymentChange)


def _stored_values(change: PaymentChange) -> tuple:
     if isinstance(change, PaymentCreated):
          return None, change.new.to_json()
     if isinstance(change, PaymentUpdated):
          return change.old.to_json(), change.new.to_json()
     if isinstance(change, PaymentDeleted):
          return change.old.to_json(), None
     raise TypeError(f"Unsupported payment change: {type(change).__name__}")


def record_history(
     db: Session,
     change: PaymentChange,
     actor: str,
     notes: Optional[str] = None,
     changed_at: Optional[datetime] = None,
) -> PaymentHistory:
     """
     Append one history entry for a payment mutation.

     Runs inside the caller's session; nothing is committed here.
     """
     old_values, new_values = _stored_values(change)
     entry = PaymentHistory(
          payment_id=change.payment_id,
          action=HistoryAction(change.action),
          old_values=old_values,
          new_values=new_values,
          changed_by=actor,
          notes=notes,
     )
     if changed_at is not None:
          entry.changed_at = changed_at
     db.add(entry)
     db.flush()
     return entry


def change_of(entry: PaymentHistory) -> PaymentChange:
     """Rebuild the tagged change stored in a history entry."""
     payload: Dict[str, Any] = {"action": entry.action.value}
     if entry.old_values is not None:
          payload["old"] = entry.old_values
     if entry.new_values is not None:
          payload["new"] = entry.new_values
     return _change_adapter.validate_python(payload)


def get_history(db: Session, payment_id: int) -> List[PaymentHistory]:
     """History entries for a payment, newest first."""
     return (
          db.query(PaymentHistory)
          .filter(PaymentHistory.payment_id == payment_id)
          .order_by(PaymentHistory.changed_at.desc(), PaymentHistory.id.desc())
          .all()
     )
