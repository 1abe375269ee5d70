# services/status_service.py
"""
Payment status derivation.

derive_status is the only implementation of the Paid/Partial/Due/Overdue
rule. Responses, stored snapshots and dashboard metrics all call it.
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from models.order import Order, PaymentStatus


ZERO = Decimal("0")


def balance_of(total_amount: Decimal, amount_received: Decimal) -> Decimal:
     return Decimal(total_amount or ZERO) - Decimal(amount_received or ZERO)


def derive_status(
     total_amount: Decimal,
     amount_received: Decimal,
     due_date: Optional[date],
     today: date,
) -> PaymentStatus:
     """
     Map an order aggregate and due date to a payment status.

     - Paid if nothing is left to pay (balance <= 0)
     - Overdue if a balance remains and the due date has passed
     - Partial if something has been received
     - Due otherwise
     """
     balance = balance_of(total_amount, amount_received)
     if balance <= ZERO:
          return PaymentStatus.PAID
     if due_date is not None and due_date < today:
          return PaymentStatus.OVERDUE
     if Decimal(amount_received or ZERO) > ZERO:
          return PaymentStatus.PARTIAL
     return PaymentStatus.DUE


def derive_order_status(order: Order, today: date, due_date: Optional[date] = None) -> PaymentStatus:
     """derive_status for an Order row; due_date overrides the order's own due date."""
     return derive_status(
          order.total_amount,
          order.amount_received,
          due_date if due_date is not None else order.due_date,
          today,
     )
