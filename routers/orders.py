# routers/orders.py
"""
Order-level ledger API: running totals, payments per order, reconciliation
and bulk status / archive actions.
"""
from typing import List

from fastapi import APIRouter, Depends, Query

from dependencies import get_actor, get_bulk_coordinator, get_payment_service
from routers.payments import _build_payment_response
from schemas.order import (
     BulkDeleteRequest,
     BulkResultResponse,
     BulkStatusRequest,
     OrderSummaryResponse,
     ReconciliationResponse,
)
from schemas.payment import PaymentResponse
from services.bulk_service import BulkOperationCoordinator, BulkResult
from services.payment_service import PaymentService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post(
     "/bulk/status",
     response_model=BulkResultResponse,
     summary="Update the status of several orders"
)
def bulk_update_status(
     body: BulkStatusRequest,
     coordinator: BulkOperationCoordinator = Depends(get_bulk_coordinator),
     actor: str = Depends(get_actor),
):
     """
     Each order is updated in its own transaction. Orders that fail (unknown,
     archived, conflicting) are listed under **failed**; the rest still commit.
     """
     result = coordinator.bulk_update_status(body.order_ids, body.new_status.value, actor=actor)
     return _build_bulk_response(result)


@router.post(
     "/bulk/delete",
     response_model=BulkResultResponse,
     summary="Archive several orders"
)
def bulk_delete(
     body: BulkDeleteRequest,
     coordinator: BulkOperationCoordinator = Depends(get_bulk_coordinator),
     actor: str = Depends(get_actor),
):
     result = coordinator.bulk_soft_delete(body.order_ids, actor=actor)
     return _build_bulk_response(result)


@router.get(
     "/{order_id}/summary",
     response_model=OrderSummaryResponse,
     summary="Get order payment summary"
)
def get_order_summary(
     order_id: int,
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     summary = service.order_summary(order_id)
     return OrderSummaryResponse(
          order_id=summary.order_id,
          total_amount=summary.total_amount,
          amount_received=summary.amount_received,
          balance_amount=summary.balance_amount,
          due_date=summary.due_date,
          status=summary.status.value,
          overpaid=summary.overpaid,
     )


@router.get(
     "/{order_id}/payments",
     response_model=List[PaymentResponse],
     summary="List payments of an order"
)
def list_order_payments(
     order_id: int,
     include_deleted: bool = Query(False, description="Include reversed payments"),
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     today = service.clock()
     return [
          _build_payment_response(payment, today)
          for payment in service.list_order_payments(order_id, include_deleted=include_deleted)
     ]


@router.get(
     "/{order_id}/reconcile",
     response_model=ReconciliationResponse,
     summary="Check an order against its ledger"
)
def check_reconciliation(
     order_id: int,
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     return service.reconcile_order(order_id, repair=False)


@router.post(
     "/{order_id}/reconcile",
     response_model=ReconciliationResponse,
     summary="Repair an order's totals from its ledger"
)
def repair_reconciliation(
     order_id: int,
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     """Rewrites amount_received and balance_amount from the sum of active payments."""
     return service.reconcile_order(order_id, repair=True, actor=actor)


def _build_bulk_response(result: BulkResult) -> BulkResultResponse:
     return BulkResultResponse(
          succeeded=result.succeeded,
          failed=[failure.to_dict() for failure in result.failed],
          cancelled=result.cancelled,
     )
