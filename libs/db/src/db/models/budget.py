from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY (rowid) columns.
_PK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Shared transaction columns
# ---------------------------


class _TransactionColumns:
    """Business columns shared by actual and projected transactions.

    ``statement_period`` holds the normalized ``MONTHYYYY`` label and is not a
    foreign key: periods are materialized lazily by the service layer and may
    be deleted independently of the rows that reference them.
    """

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    criticality: Mapped[str] = mapped_column(String(32), nullable=False)
    transaction_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    account: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(64), nullable=False)
    statement_period: Mapped[str] = mapped_column(String(32), nullable=False)
    created_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------
# Core: budget_transactions
# ---------------------------


class BudgetTransaction(_TransactionColumns, Base):
    """Actual (posted) transaction; deduplicated by stored row hash."""

    __tablename__ = "budget_transactions"

    # SHA-256 over the normalized business key; see budget_ledger.hashing.
    row_hash: Mapped[str] = mapped_column(CHAR(64), nullable=False)

    __table_args__ = (
        UniqueConstraint("row_hash", "statement_period", name="uniq_transaction_hash"),
        Index("ix_budget_tx_statement_period", "statement_period"),
        Index("ix_budget_tx_account", "account"),
        Index("ix_budget_tx_payment_method", "payment_method"),
        Index("ix_budget_tx_category", "category"),
    )


# ---------------------------
# Core: projected_transactions
# ---------------------------


class ProjectedTransaction(_TransactionColumns, Base):
    """Planned transaction; no persisted hash, matched on business-key columns."""

    __tablename__ = "projected_transactions"

    __table_args__ = (
        Index("ix_projected_tx_statement_period", "statement_period"),
        Index("ix_projected_tx_account", "account"),
        Index("ix_projected_tx_payment_method", "payment_method"),
        Index("ix_projected_tx_category", "category"),
    )


# ---------------------------
# Reference: statement_periods
# ---------------------------


class StatementPeriod(Base):
    __tablename__ = "statement_periods"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    period_name: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    # Left NULL when the period is created implicitly by a transaction write.
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------
# UI state: local_cache
# ---------------------------


class LocalCache(Base):
    __tablename__ = "local_cache"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    cache_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    cache_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


__all__ = [
    "Base",
    "BudgetTransaction",
    "ProjectedTransaction",
    "StatementPeriod",
    "LocalCache",
]
