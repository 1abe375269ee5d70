# schemas/payment.py
"""
Pydantic schemas for the payment ledger API.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentMethodEnum(str, Enum):
     """Accepted payment methods."""
     CASH = "Cash"
     UPI = "UPI"
     BANK_TRANSFER = "BankTransfer"
     CARD = "Card"
     CHECK = "Check"


class PaymentStatusEnum(str, Enum):
     """Derived payment status options."""
     PAID = "Paid"
     PARTIAL = "Partial"
     DUE = "Due"
     OVERDUE = "Overdue"


class PaymentCreate(BaseModel):
     """Request body for POST /api/payments.

     amount is deliberately not range-checked here so that a non-positive
     amount reaches the ledger and comes back as INVALID_AMOUNT.
     """
     order_id: int = Field(..., gt=0, description="Order the payment is made against")
     amount: Decimal = Field(..., max_digits=12, decimal_places=2, description="Amount paid")
     payment_method: PaymentMethodEnum = Field(default=PaymentMethodEnum.CASH)
     payment_date: Optional[date] = Field(None, description="Defaults to today")
     due_date: Optional[date] = None
     notes: Optional[str] = Field(None, max_length=2000)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "order_id": 12,
                    "amount": 500.00,
                    "payment_method": "UPI",
                    "payment_date": "2026-10-19",
                    "due_date": "2026-11-01",
                    "notes": "Advance for banner printing",
               }
          }
     )


class PaymentUpdate(BaseModel):
     """Request body for PATCH /api/payments/{payment_id}. Only sent fields change."""
     amount: Optional[Decimal] = Field(None, max_digits=12, decimal_places=2)
     payment_date: Optional[date] = None
     due_date: Optional[date] = None
     payment_method: Optional[PaymentMethodEnum] = None
     notes: Optional[str] = Field(None, max_length=2000)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "amount": 300.00
               }
          }
     )


class PaymentResponse(BaseModel):
     """Schema for payment response."""
     id: int
     order_id: int
     amount_paid: Decimal
     payment_method: PaymentMethodEnum
     payment_date: date
     due_date: Optional[date] = None
     status: PaymentStatusEnum = Field(..., description="Derived from the order at read time")
     stored_status: PaymentStatusEnum = Field(..., description="Status written with the last mutation")
     notes: Optional[str] = None
     created_by: str
     created_at: datetime
     updated_at: datetime
     is_deleted: bool = False

     # Order aggregate at read time
     order_total_amount: Optional[Decimal] = None
     order_amount_received: Optional[Decimal] = None
     order_balance_amount: Optional[Decimal] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": 7,
                    "order_id": 12,
                    "amount_paid": "500.00",
                    "payment_method": "UPI",
                    "payment_date": "2026-10-19",
                    "due_date": "2026-11-01",
                    "status": "Partial",
                    "stored_status": "Partial",
                    "notes": "Advance for banner printing",
                    "created_by": "staff-3",
                    "created_at": "2026-10-19T10:30:00",
                    "updated_at": "2026-10-19T10:30:00",
                    "is_deleted": False,
                    "order_total_amount": "1000.00",
                    "order_amount_received": "500.00",
                    "order_balance_amount": "500.00",
               }
          }
     )


class PaymentDeleteResponse(BaseModel):
     deleted: bool = True
     payment_id: int
     order_id: int
     order_balance_amount: Decimal
