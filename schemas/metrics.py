# schemas/metrics.py
"""
Pydantic schemas for dashboard metrics.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StatusCounts(BaseModel):
     """Number of orders per derived payment status."""
     paid: int = 0
     partial: int = 0
     due: int = 0
     overdue: int = 0


class RecentPayment(BaseModel):
     payment_id: int
     order_id: int
     customer_name: Optional[str] = None
     amount_paid: Decimal
     payment_method: str
     created_at: datetime


class MetricsSnapshot(BaseModel):
     """Read-only rollup of the ledger for one reporting period."""
     period_days: int
     period_start: date
     generated_at: datetime
     total_orders: int
     total_revenue: Decimal
     total_received: Decimal
     pending_amount: Decimal
     overdue_amount: Decimal
     average_order_value: Decimal
     orders_by_status: StatusCounts
     recent_payments: int = Field(..., description="Payments created within the recent-payment window")
     recent_window_days: int
     payment_methods: Dict[str, int]
     latest_payments: List[RecentPayment]

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "period_days": 30,
                    "period_start": "2026-09-19",
                    "generated_at": "2026-10-19T09:00:00",
                    "total_orders": 3,
                    "total_revenue": "4500.00",
                    "total_received": "2500.00",
                    "pending_amount": "2000.00",
                    "overdue_amount": "1000.00",
                    "average_order_value": "1500.00",
                    "orders_by_status": {"paid": 1, "partial": 1, "due": 0, "overdue": 1},
                    "recent_payments": 2,
                    "recent_window_days": 7,
                    "payment_methods": {"Cash": 1, "UPI": 1},
                    "latest_payments": [],
               }
          }
     )


class DueOrder(BaseModel):
     order_id: int
     balance_due: Decimal
     due_date: Optional[date] = None
     status: str


class CustomerDues(BaseModel):
     customer_name: str
     order_count: int
     total_due: Decimal
     orders: List[DueOrder]


class DueSummary(BaseModel):
     """Orders with money still owed, grouped by customer."""
     total_due_overall: Decimal
     total_pending_orders: int
     customers: List[CustomerDues]
