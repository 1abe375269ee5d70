# schemas/order.py
"""
Pydantic schemas for order summaries, reconciliation and bulk actions.
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.payment import PaymentStatusEnum


class OrderStatusEnum(str, Enum):
     """Fulfilment status options."""
     PENDING = "Pending"
     DESIGN = "Design"
     PRINTING = "Printing"
     DELIVERED = "Delivered"
     CANCELLED = "Cancelled"


class OrderSummaryResponse(BaseModel):
     order_id: int
     total_amount: Decimal
     amount_received: Decimal
     balance_amount: Decimal
     due_date: Optional[date] = None
     status: PaymentStatusEnum
     overpaid: bool = False

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "order_id": 12,
                    "total_amount": "1000.00",
                    "amount_received": "500.00",
                    "balance_amount": "500.00",
                    "due_date": "2026-11-01",
                    "status": "Partial",
                    "overpaid": False,
               }
          }
     )


class ReconciliationResponse(BaseModel):
     order_id: int
     stored_amount_received: Decimal
     ledger_amount_received: Decimal
     stored_balance_amount: Decimal
     expected_balance_amount: Decimal
     drift: Decimal
     payment_count: int
     consistent: bool
     repaired: bool

     model_config = ConfigDict(from_attributes=True)


class BulkStatusRequest(BaseModel):
     order_ids: List[int] = Field(..., min_length=1, description="Orders to update")
     new_status: OrderStatusEnum

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "order_ids": [12, 13, 14],
                    "new_status": "Delivered",
               }
          }
     )


class BulkDeleteRequest(BaseModel):
     order_ids: List[int] = Field(..., min_length=1, description="Orders to archive")


class BulkFailure(BaseModel):
     id: int
     error: str
     code: str
     detail: str

     model_config = ConfigDict(from_attributes=True)


class BulkResultResponse(BaseModel):
     """Per-item outcome; a bulk request never fails as a whole because one item did."""
     succeeded: List[int]
     failed: List[BulkFailure]
     cancelled: List[int] = []

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "succeeded": [12, 14],
                    "failed": [
                         {
                              "id": 13,
                              "error": "NotFoundError",
                              "code": "UNKNOWN_ORDER",
                              "detail": "Order with ID 13 not found",
                         }
                    ],
                    "cancelled": [],
               }
          }
     )
