# routers/payments.py
"""
Payment ledger API.

POST   /api/payments                     record a payment against an order
GET    /api/payments/{payment_id}        read one payment
PATCH  /api/payments/{payment_id}        amend a payment
DELETE /api/payments/{payment_id}        reverse (soft-delete) a payment
GET    /api/payments/{payment_id}/history  audit trail, newest first

Every mutation updates the owning order's totals and writes one history
entry in the same transaction. Ledger errors are rendered by the handler
registered in main.py.
"""
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, status

from dependencies import get_actor, get_payment_service
from models import PaymentHistory, PaymentTransaction
from schemas.history import PaymentHistoryResponse
from schemas.payment import (
     PaymentCreate,
     PaymentDeleteResponse,
     PaymentResponse,
     PaymentUpdate,
)
from services.audit_service import change_of
from services.payment_service import PaymentService
from services.status_service import derive_order_status

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post(
     "",
     response_model=PaymentResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Record a payment"
)
def create_payment(
     body: PaymentCreate,
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     """
     Record a payment against an order.

     - **order_id**: Order being paid
     - **amount**: Amount paid (must be greater than zero)
     - **payment_method**: Cash, UPI, BankTransfer, Card or Check
     - **payment_date**: Defaults to today
     - **due_date**: Next due date for the remaining balance
     """
     payment = service.record_payment(
          order_id=body.order_id,
          amount=body.amount,
          method=body.payment_method.value,
          actor=actor,
          payment_date=body.payment_date,
          due_date=body.due_date,
          notes=body.notes,
     )
     return _build_payment_response(payment, service.clock())


@router.get(
     "/{payment_id}",
     response_model=PaymentResponse,
     summary="Get payment by ID"
)
def get_payment(
     payment_id: int,
     include_deleted: bool = Query(False, description="Also return a reversed payment"),
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     payment = service.get_payment(payment_id, include_deleted=include_deleted)
     return _build_payment_response(payment, service.clock())


@router.patch(
     "/{payment_id}",
     response_model=PaymentResponse,
     summary="Update a payment"
)
def update_payment(
     payment_id: int,
     body: PaymentUpdate,
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     """
     Update a payment. Only fields present in the body are changed.

     A new amount is applied by reversing the old amount on the order and
     applying the new one.
     """
     fields = body.model_dump(exclude_unset=True)
     if fields.get("payment_method") is not None:
          fields["payment_method"] = fields["payment_method"].value
     payment = service.update_payment(payment_id, fields, actor=actor)
     return _build_payment_response(payment, service.clock())


@router.delete(
     "/{payment_id}",
     response_model=PaymentDeleteResponse,
     summary="Delete (reverse) a payment"
)
def delete_payment(
     payment_id: int,
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     payment = service.delete_payment(payment_id, actor=actor)
     return PaymentDeleteResponse(
          deleted=True,
          payment_id=payment.id,
          order_id=payment.order_id,
          order_balance_amount=payment.order.balance_amount,
     )


@router.get(
     "/{payment_id}/history",
     response_model=List[PaymentHistoryResponse],
     summary="Get payment history"
)
def get_payment_history(
     payment_id: int,
     service: PaymentService = Depends(get_payment_service),
     actor: str = Depends(get_actor),
):
     """History entries for a payment, newest first. Reversed payments keep their history."""
     return [_build_history_response(entry) for entry in service.get_payment_history(payment_id)]


def _build_payment_response(payment: PaymentTransaction, today: date) -> PaymentResponse:
     """Build payment response with the status derived from the order as it is now."""
     order = payment.order
     return PaymentResponse(
          id=payment.id,
          order_id=payment.order_id,
          amount_paid=payment.amount_paid,
          payment_method=payment.payment_method.value,
          payment_date=payment.payment_date,
          due_date=payment.due_date,
          status=derive_order_status(order, today, due_date=payment.due_date).value,
          stored_status=payment.status.value,
          notes=payment.notes,
          created_by=payment.created_by,
          created_at=payment.created_at,
          updated_at=payment.updated_at,
          is_deleted=payment.is_deleted,
          order_total_amount=order.total_amount,
          order_amount_received=order.amount_received,
          order_balance_amount=order.balance_amount,
     )


def _build_history_response(entry: PaymentHistory) -> PaymentHistoryResponse:
     changes = {
          field: change.model_dump(mode="json")
          for field, change in change_of(entry).diff().items()
     }
     return PaymentHistoryResponse(
          id=entry.id,
          payment_id=entry.payment_id,
          action=entry.action.value,
          old_values=entry.old_values,
          new_values=entry.new_values,
          changes=changes,
          changed_by=entry.changed_by,
          changed_at=entry.changed_at,
          notes=entry.notes,
     )
