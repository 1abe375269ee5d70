"""Create payments and payment_history tables

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19

Payments are reversed by soft delete, so payment_history rows always point
at an existing payment. History rows are append-only.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_000002"
down_revision: Union[str, None] = "20261019_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PAYMENT_METHODS = ("Cash", "UPI", "BankTransfer", "Card", "Check")
PAYMENT_STATUSES = ("Paid", "Partial", "Due", "Overdue")
HISTORY_ACTIONS = ("CREATE", "UPDATE", "DELETE")


def upgrade() -> None:
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "payment_method",
            sa.Enum(*PAYMENT_METHODS, name="payment_method", create_constraint=True),
            nullable=False,
            server_default="Cash",
        ),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*PAYMENT_STATUSES, name="payment_snapshot_status", create_constraint=True),
            nullable=False,
            server_default="Due",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(100), nullable=True),
        sa.Column("created_by", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["orders.id"],
            name="fk_payments_order_id",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_payments_order_id", "payments", ["order_id"])
    op.create_index("ix_payments_payment_date", "payments", ["payment_date"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_is_deleted", "payments", ["is_deleted"])
    op.create_index("ix_payments_created_at", "payments", ["created_at"])

    op.create_table(
        "payment_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("payment_id", sa.Integer(), nullable=False),
        sa.Column(
            "action",
            sa.Enum(*HISTORY_ACTIONS, name="history_action", create_constraint=True),
            nullable=False,
        ),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("changed_by", sa.String(100), nullable=False),
        sa.Column("changed_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["payment_id"],
            ["payments.id"],
            name="fk_payment_history_payment_id",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_payment_history_payment_id", "payment_history", ["payment_id"])
    op.create_index("ix_payment_history_changed_at", "payment_history", ["changed_at"])


def downgrade() -> None:
    op.drop_index("ix_payment_history_changed_at", table_name="payment_history")
    op.drop_index("ix_payment_history_payment_id", table_name="payment_history")
    op.drop_table("payment_history")
    op.drop_index("ix_payments_created_at", table_name="payments")
    op.drop_index("ix_payments_is_deleted", table_name="payments")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_payment_date", table_name="payments")
    op.drop_index("ix_payments_order_id", table_name="payments")
    op.drop_table("payments")
