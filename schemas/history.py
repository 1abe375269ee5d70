# schemas/history.py
"""
Pydantic schemas for payment history responses.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class FieldDiff(BaseModel):
     old: Any = None
     new: Any = None


class PaymentHistoryResponse(BaseModel):
     """One immutable history entry with its field-level diff."""
     id: int
     payment_id: int
     action: str
     old_values: Optional[Dict[str, Any]] = None
     new_values: Optional[Dict[str, Any]] = None
     changes: Dict[str, FieldDiff]
     changed_by: str
     changed_at: datetime
     notes: Optional[str] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "id": 3,
                    "payment_id": 7,
                    "action": "UPDATE",
                    "old_values": {"amount_paid": "500.00"},
                    "new_values": {"amount_paid": "300.00"},
                    "changes": {"amount_paid": {"old": "500.00", "new": "300.00"}},
                    "changed_by": "staff-3",
                    "changed_at": "2026-10-19T11:00:00",
                    "notes": "Payment updated",
               }
          }
     )
