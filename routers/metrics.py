# routers/metrics.py
"""
Dashboard metrics API. Read-only rollups; nothing here writes or locks.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import Settings
from database import get_session
from dependencies import get_app_settings, verify_token
from schemas.metrics import DueSummary, MetricsSnapshot
from services.metrics_service import compute_due_summary, compute_metrics

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


@router.get(
     "",
     response_model=MetricsSnapshot,
     summary="Ledger metrics for a period"
)
def get_metrics(
     period_days: int = Query(30, description="Reporting period in days"),
     db: Session = Depends(get_session),
     settings: Settings = Depends(get_app_settings),
     token: dict = Depends(verify_token),
):
     """
     Totals, status counts and payment activity for orders placed in the
     last **period_days** days.
     """
     return compute_metrics(
          db,
          period_days,
          recent_window_days=settings.recent_payment_window_days,
     )


@router.get(
     "/dues",
     response_model=DueSummary,
     summary="Outstanding balances by customer"
)
def get_dues(
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
):
     return compute_due_summary(db)
