# ruff: noqa: I001
"""Budget core tables: transactions, projections, statement periods, local cache.

Revision ID: 0001_budget_core
Revises: None
Create Date: 2025-10-20
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# SQLite only autoincrements INTEGER PRIMARY KEY (rowid) columns.
_PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

# revision identifiers, used by Alembic.
revision: str = "0001_budget_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _transaction_columns() -> list[sa.Column]:
    # Fresh Column objects per table; SQLAlchemy columns cannot be shared.
    return [
        sa.Column("id", _PK, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(128), nullable=False),
        sa.Column("criticality", sa.String(32), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=True),
        sa.Column("account", sa.String(32), nullable=False),
        sa.Column("status", sa.String(64), nullable=True),
        sa.Column("payment_method", sa.String(64), nullable=False),
        sa.Column("statement_period", sa.String(32), nullable=False),
        sa.Column("created_time", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # budget_transactions (actual); dedup key is (row_hash, statement_period)
    op.create_table(
        "budget_transactions",
        *_transaction_columns(),
        sa.Column("row_hash", sa.CHAR(64), nullable=False),
        sa.UniqueConstraint("row_hash", "statement_period", name="uniq_transaction_hash"),
    )
    for col in ("statement_period", "account", "payment_method", "category"):
        op.create_index(f"ix_budget_tx_{col}", "budget_transactions", [col], unique=False)

    # projected_transactions; dedup by business-key columns in the service layer
    op.create_table("projected_transactions", *_transaction_columns())
    for col in ("statement_period", "account", "payment_method", "category"):
        op.create_index(f"ix_projected_tx_{col}", "projected_transactions", [col], unique=False)

    op.create_table(
        "statement_periods",
        sa.Column("id", _PK, primary_key=True, autoincrement=True),
        sa.Column("period_name", sa.String(32), nullable=False, unique=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "local_cache",
        sa.Column("id", _PK, primary_key=True, autoincrement=True),
        sa.Column("cache_key", sa.String(128), nullable=False, unique=True),
        sa.Column("cache_value", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("local_cache")
    op.drop_table("statement_periods")
    for col in ("statement_period", "account", "payment_method", "category"):
        op.drop_index(f"ix_projected_tx_{col}", table_name="projected_transactions")
    op.drop_table("projected_transactions")
    for col in ("statement_period", "account", "payment_method", "category"):
        op.drop_index(f"ix_budget_tx_{col}", table_name="budget_transactions")
    op.drop_table("budget_transactions")
