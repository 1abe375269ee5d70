"""Create orders and order_status_log tables

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Orders carry the running payment totals (amount_received, balance_amount)
and a version counter used for optimistic concurrency.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUSES = ("Pending", "Design", "Printing", "Delivered", "Cancelled")
PAYMENT_STATUSES = ("Paid", "Partial", "Due", "Overdue")


def upgrade() -> None:
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("amount_received", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("balance_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*ORDER_STATUSES, name="order_status", create_constraint=True),
            nullable=False,
            server_default="Pending",
        ),
        sa.Column(
            "payment_status",
            sa.Enum(*PAYMENT_STATUSES, name="payment_status", create_constraint=True),
            nullable=False,
            server_default="Due",
        ),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_customer_name", "orders", ["customer_name"])
    op.create_index("ix_orders_order_date", "orders", ["order_date"])
    op.create_index("ix_orders_due_date", "orders", ["due_date"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_is_deleted", "orders", ["is_deleted"])

    op.create_table(
        "order_status_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*ORDER_STATUSES, name="order_log_status", create_constraint=True),
            nullable=False,
        ),
        sa.Column("updated_by", sa.String(100), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["orders.id"],
            name="fk_order_status_log_order_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_order_status_log_order_id", "order_status_log", ["order_id"])


def downgrade() -> None:
    op.drop_index("ix_order_status_log_order_id", table_name="order_status_log")
    op.drop_table("order_status_log")
    op.drop_index("ix_orders_is_deleted", table_name="orders")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_due_date", table_name="orders")
    op.drop_index("ix_orders_order_date", table_name="orders")
    op.drop_index("ix_orders_customer_name", table_name="orders")
    op.drop_table("orders")
