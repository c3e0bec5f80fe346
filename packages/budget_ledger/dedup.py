"""Dedup strategies and the transaction kinds they parameterize.

Actual and projected transactions share one shape but are deduplicated
differently:

- ``StoredHashStrategy`` persists ``row_hash`` and looks rows up by
  ``(row_hash, statement_period)``, the same pair the unique constraint on
  ``budget_transactions`` enforces.
- ``BusinessKeyStrategy`` persists no hash and matches the business-key
  columns directly. ``account`` is compared case-insensitively and a missing
  ``transaction_date`` only matches another missing date.

Lookups run under ``Session.no_autoflush`` so a pending or just-edited row is
never flushed (and matched against itself) by the lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from db.models.budget import BudgetTransaction, ProjectedTransaction
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .hashing import compute_row_hash

TransactionRow = BudgetTransaction | ProjectedTransaction


class DedupStrategy(Protocol):
    stores_hash: bool

    def prepare(self, row: Any) -> str:
        """Compute the row hash for ``row`` and attach it if the strategy stores one."""
        ...

    def find_match(
        self,
        session: Session,
        model: type[Any],
        row: Any,
        row_hash: str,
        *,
        exclude_id: int | None = None,
    ) -> Any | None:
        """Return an existing row with the same natural key as ``row``, if any."""
        ...


class StoredHashStrategy:
    stores_hash = True

    def prepare(self, row: Any) -> str:
        row_hash = compute_row_hash(row)
        row.row_hash = row_hash
        return row_hash

    def find_match(
        self,
        session: Session,
        model: type[Any],
        row: Any,
        row_hash: str,
        *,
        exclude_id: int | None = None,
    ) -> Any | None:
        stmt = select(model).where(
            model.row_hash == row_hash,
            model.statement_period == row.statement_period,
        )
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        with session.no_autoflush:
            return session.execute(stmt).scalars().first()


class BusinessKeyStrategy:
    stores_hash = False

    def prepare(self, row: Any) -> str:
        return compute_row_hash(row)

    def find_match(
        self,
        session: Session,
        model: type[Any],
        row: Any,
        row_hash: str,
        *,
        exclude_id: int | None = None,
    ) -> Any | None:
        date_clause = (
            model.transaction_date.is_(None)
            if row.transaction_date is None
            else model.transaction_date == row.transaction_date
        )
        stmt = select(model).where(
            model.name == row.name,
            func.lower(model.account) == (row.account or "").lower(),
            model.amount == row.amount,
            model.category == row.category,
            model.criticality == row.criticality,
            date_clause,
            model.payment_method == row.payment_method,
            model.statement_period == row.statement_period,
        )
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        with session.no_autoflush:
            return session.execute(stmt).scalars().first()


@dataclass(frozen=True, slots=True)
class TransactionKind:
    """A mapped transaction table plus the strategy that dedups it."""

    name: str
    model: type[Any]
    strategy: DedupStrategy


ACTUAL = TransactionKind("actual", BudgetTransaction, StoredHashStrategy())
PROJECTED = TransactionKind("projected", ProjectedTransaction, BusinessKeyStrategy())


def kind_for(projected: bool) -> TransactionKind:
    return PROJECTED if projected else ACTUAL


__all__ = [
    "ACTUAL",
    "PROJECTED",
    "BusinessKeyStrategy",
    "DedupStrategy",
    "StoredHashStrategy",
    "TransactionKind",
    "TransactionRow",
    "kind_for",
]
