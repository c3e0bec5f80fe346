"""Persistence helpers for transaction rows.

Thin SQLAlchemy queries over the table selected by a :class:`TransactionKind`.
Every function takes the caller's ``Session``; nothing here commits.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from .dedup import TransactionKind


def find_by_id(session: Session, kind: TransactionKind, tx_id: int) -> Any | None:
    return session.get(kind.model, tx_id)


def find_by_natural_key(
    session: Session,
    kind: TransactionKind,
    row: Any,
    row_hash: str,
    *,
    exclude_id: int | None = None,
) -> Any | None:
    """Return a stored row sharing ``row``'s natural key, ignoring ``exclude_id``."""

    return kind.strategy.find_match(session, kind.model, row, row_hash, exclude_id=exclude_id)


def find_by_filters(
    session: Session,
    kind: TransactionKind,
    *,
    statement_period: str | None = None,
    account: str | None = None,
    category: str | None = None,
    criticality: str | None = None,
    payment_method: str | None = None,
) -> list[Any]:
    """Return rows matching every given filter, oldest first.

    Filters are exact matches; ``None`` or blank skips a filter. Projected rows
    compare ``account`` case-insensitively.
    """

    model = kind.model
    stmt = select(model)
    if statement_period and statement_period.strip():
        stmt = stmt.where(model.statement_period == statement_period.strip())
    if account and account.strip():
        if kind.strategy.stores_hash:
            stmt = stmt.where(model.account == account.strip())
        else:
            stmt = stmt.where(func.lower(model.account) == account.strip().lower())
    if category and category.strip():
        stmt = stmt.where(model.category == category.strip())
    if criticality and criticality.strip():
        stmt = stmt.where(model.criticality == criticality.strip())
    if payment_method and payment_method.strip():
        stmt = stmt.where(model.payment_method == payment_method.strip())
    stmt = stmt.order_by(model.transaction_date, model.id)
    return list(session.execute(stmt).scalars().all())


def save(session: Session, row: Any) -> Any:
    """Add ``row`` and flush so its id is assigned; uniqueness errors propagate."""

    session.add(row)
    session.flush()
    return row


def delete_by_id(session: Session, kind: TransactionKind, tx_id: int) -> bool:
    row = session.get(kind.model, tx_id)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    return True


def delete_all(session: Session, kind: TransactionKind) -> int:
    result = session.execute(delete(kind.model))
    return int(result.rowcount or 0)


def count(session: Session, kind: TransactionKind, *, statement_period: str | None = None) -> int:
    stmt = select(func.count()).select_from(kind.model)
    if statement_period:
        stmt = stmt.where(kind.model.statement_period == statement_period)
    return int(session.execute(stmt).scalar_one())


__all__ = [
    "count",
    "delete_all",
    "delete_by_id",
    "find_by_filters",
    "find_by_id",
    "find_by_natural_key",
    "save",
]
