"""Statement period guard and maintenance operations.

A statement period is a named monthly window (``OCTOBER2025``). Transaction
writes call :func:`ensure_statement_period`, which validates the label and
materializes a bare ``statement_periods`` row (name and ``created_at`` only)
the first time a valid name is seen. The remaining functions are the explicit
maintenance surface used to fill in date ranges later.

Callers own the transaction scope (see ``db.client.session_scope``); these
functions only flush.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from db.models.budget import StatementPeriod
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import DuplicateError, NotFoundError, StorageError, ValidationError
from .logging_setup import bind, get_logger
from .models import RequestContext, StatementPeriodPayload, StatementPeriodView, parse_payload

logger = get_logger("budget_ledger.periods")

_MONTHS = (
    "JANUARY",
    "FEBRUARY",
    "MARCH",
    "APRIL",
    "MAY",
    "JUNE",
    "JULY",
    "AUGUST",
    "SEPTEMBER",
    "OCTOBER",
    "NOVEMBER",
    "DECEMBER",
)
PERIOD_NAME_RE = re.compile(rf"^(?:{'|'.join(_MONTHS)})[0-9]{{4}}$")


def normalize_period_name(raw: str | None) -> str:
    """Trim and upper-case ``raw``; raise :class:`ValidationError` unless it is ``MONTHYYYY``."""

    if raw is None or not raw.strip():
        raise ValidationError("Statement period is required", {"statement_period": raw})
    name = raw.strip().upper()
    if not PERIOD_NAME_RE.match(name):
        raise ValidationError(
            "Statement period must be a full month name followed by a 4-digit year "
            "(e.g. OCTOBER2025)",
            {"statement_period": raw},
        )
    return name


def _find_by_name(session: Session, name: str) -> StatementPeriod | None:
    return session.execute(
        select(StatementPeriod).where(StatementPeriod.period_name == name)
    ).scalar_one_or_none()


def _now() -> datetime:
    return datetime.now(UTC)


def ensure_statement_period(
    session: Session, raw: str | None, *, context: RequestContext | None = None
) -> str:
    """Validate ``raw`` and make sure a period row exists; return the normalized name.

    Idempotent: a repeat call is a lookup hit. A concurrent writer inserting
    the same name first is absorbed by re-reading after the unique violation.
    """

    log = bind(logger, RequestContext.ensure(context))
    name = normalize_period_name(raw)
    if _find_by_name(session, name) is not None:
        return name

    try:
        with session.begin_nested():
            session.add(StatementPeriod(period_name=name, created_at=_now()))
    except IntegrityError as exc:
        if _find_by_name(session, name) is None:
            log.exception("integrity error creating statement period period=%s", name)
            raise StorageError(f"Failed to create statement period {name}") from exc
        return name
    log.info("statement period created period=%s", name)
    return name


# ---------------------------
# Maintenance
# ---------------------------


def _to_view(row: StatementPeriod) -> StatementPeriodView:
    return StatementPeriodView.model_validate(row)


def _get_row(session: Session, period_id: int) -> StatementPeriod:
    row = session.get(StatementPeriod, period_id)
    if row is None:
        raise NotFoundError(f"Statement period {period_id} not found", {"id": period_id})
    return row


def create_statement_period(
    session: Session,
    payload: StatementPeriodPayload | Mapping[str, Any] | None,
    *,
    context: RequestContext | None = None,
) -> StatementPeriodView:
    """Create a period with an optional date range; an existing name is a conflict."""

    log = bind(logger, RequestContext.ensure(context))
    data = parse_payload(StatementPeriodPayload, payload)
    name = normalize_period_name(data.period_name)
    if _find_by_name(session, name) is not None:
        log.warning("statement period already exists period=%s", name)
        raise DuplicateError(f"Statement period {name} already exists", {"period_name": name})

    row = StatementPeriod(
        period_name=name,
        start_date=data.start_date,
        end_date=data.end_date,
        created_at=_now(),
    )
    try:
        with session.begin_nested():
            session.add(row)
    except IntegrityError as exc:
        raise DuplicateError(
            f"Statement period {name} already exists", {"period_name": name}
        ) from exc
    log.info("statement period created id=%s period=%s", row.id, name)
    return _to_view(row)


def get_statement_period(session: Session, period_id: int) -> StatementPeriodView:
    return _to_view(_get_row(session, period_id))


def list_statement_periods(session: Session) -> list[StatementPeriodView]:
    """Return all periods, most recent ``start_date`` first and undated ones last."""

    rows = (
        session.execute(
            select(StatementPeriod).order_by(
                StatementPeriod.start_date.desc().nulls_last(), StatementPeriod.id
            )
        )
        .scalars()
        .all()
    )
    return [_to_view(r) for r in rows]


def update_statement_period(
    session: Session,
    period_id: int,
    payload: StatementPeriodPayload | Mapping[str, Any] | None,
    *,
    context: RequestContext | None = None,
) -> StatementPeriodView:
    """Rename a period and replace its date range; ``created_at`` is kept.

    Renaming only updates the period row. Transactions still carry the old
    label until they are edited.
    """

    log = bind(logger, RequestContext.ensure(context))
    data = parse_payload(StatementPeriodPayload, payload)
    row = _get_row(session, period_id)
    name = normalize_period_name(data.period_name)

    if name != row.period_name:
        clash = _find_by_name(session, name)
        if clash is not None and clash.id != row.id:
            log.warning("statement period rename conflict id=%s period=%s", period_id, name)
            raise DuplicateError(
                f"Statement period {name} already exists", {"period_name": name}
            )

    try:
        with session.begin_nested():
            row.period_name = name
            row.start_date = data.start_date
            row.end_date = data.end_date
    except IntegrityError as exc:
        raise DuplicateError(
            f"Statement period {name} already exists", {"period_name": name}
        ) from exc
    log.info("statement period updated id=%s period=%s", period_id, name)
    return _to_view(row)


def delete_statement_period(
    session: Session, period_id: int, *, context: RequestContext | None = None
) -> bool:
    row = session.get(StatementPeriod, period_id)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    bind(logger, RequestContext.ensure(context)).info("statement period deleted id=%s", period_id)
    return True


def delete_all_statement_periods(
    session: Session, *, context: RequestContext | None = None
) -> int:
    result = session.execute(delete(StatementPeriod))
    bind(logger, RequestContext.ensure(context)).info(
        "statement periods deleted count=%s", result.rowcount
    )
    return int(result.rowcount or 0)


__all__ = [
    "PERIOD_NAME_RE",
    "create_statement_period",
    "delete_all_statement_periods",
    "delete_statement_period",
    "ensure_statement_period",
    "get_statement_period",
    "list_statement_periods",
    "normalize_period_name",
    "update_statement_period",
]
