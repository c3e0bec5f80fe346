"""Transaction write workflows: create, update, and bulk import with dedup.

Every write follows the same path: normalize the statement period, hash the
business key, look for an existing row with the same natural key, then
persist. Single creates and updates reject a match with
:class:`DuplicateError`; bulk import skips and counts it.

All functions are generic over :class:`TransactionKind` (``ACTUAL`` by
default, ``PROJECTED`` for planned spend). Callers own the session scope.
Persisting happens inside a SAVEPOINT, so a rejected row never leaves
partial state in the caller's transaction.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from decimal import Decimal
from types import SimpleNamespace
from typing import IO, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import repository
from .dedup import ACTUAL, TransactionKind
from .errors import DuplicateError, LedgerError, NotFoundError, StorageError
from .hashing import BUSINESS_KEY_FIELDS
from .ingest.csv_importer import parse_csv
from .logging_setup import bind, get_logger
from .models import (
    BulkImportResult,
    ParsedRow,
    RequestContext,
    RowError,
    TransactionDraft,
    TransactionList,
    TransactionPayload,
    TransactionUpdate,
    TransactionView,
    parse_payload,
)
from .periods import ensure_statement_period

logger = get_logger("budget_ledger.transactions")

_CENTS = Decimal("0.01")
# Business fields copied from a validated payload onto a row.
_COPIED_FIELDS = ("name", "category", "criticality", "account", "payment_method")


def _now() -> datetime:
    return datetime.now(UTC)


def to_view(row: Any, kind: TransactionKind = ACTUAL) -> TransactionView:
    """Detach ``row`` into a :class:`TransactionView`.

    Projected rows store no hash; it is recomputed so both kinds expose one.
    """

    view = TransactionView.model_validate(row)
    if not kind.strategy.stores_hash:
        view = view.model_copy(update={"row_hash": kind.strategy.prepare(row)})
    return view


def _build_row(
    kind: TransactionKind,
    data: TransactionPayload,
    statement_period: str,
    *,
    created_time: datetime | None = None,
) -> Any:
    return kind.model(
        name=data.name,
        amount=data.amount.quantize(_CENTS),
        category=data.category,
        criticality=data.criticality,
        transaction_date=data.transaction_date or date.today(),
        account=data.account,
        status=data.status,
        payment_method=data.payment_method,
        statement_period=statement_period,
        created_time=created_time or _now(),
    )


def _duplicate(kind: TransactionKind, row: Any, row_hash: str) -> DuplicateError:
    return DuplicateError(
        f"Duplicate {kind.name} transaction in {row.statement_period}",
        {"row_hash": row_hash, "statement_period": row.statement_period},
    )


def _persist(
    session: Session,
    kind: TransactionKind,
    row: Any,
    log: Any,
    *,
    exclude_id: int | None = None,
) -> str:
    """Hash ``row``, reject a natural-key match, then flush it inside a savepoint.

    Returns the row hash. A unique violation raised by the store after the
    lookup passed (a concurrent writer) is reported as the same duplicate.
    """

    row_hash = kind.strategy.prepare(row)
    # Key values survive the savepoint rollback expiring or expunging ``row``.
    key = SimpleNamespace(**{f: getattr(row, f) for f in BUSINESS_KEY_FIELDS})
    if repository.find_by_natural_key(session, kind, key, row_hash, exclude_id=exclude_id):
        log.warning(
            "duplicate %s transaction hash=%s period=%s", kind.name, row_hash, row.statement_period
        )
        raise _duplicate(kind, key, row_hash)

    try:
        with session.begin_nested():
            repository.save(session, row)
    except IntegrityError as exc:
        if repository.find_by_natural_key(session, kind, key, row_hash, exclude_id=exclude_id):
            log.warning("duplicate %s transaction detected on write hash=%s", kind.name, row_hash)
            raise _duplicate(kind, key, row_hash) from exc
        log.exception("integrity error persisting %s transaction", kind.name)
        raise StorageError(f"Failed to persist {kind.name} transaction") from exc
    except SQLAlchemyError as exc:
        log.exception("storage error persisting %s transaction", kind.name)
        raise StorageError(f"Failed to persist {kind.name} transaction") from exc
    return row_hash


# ---------------------------
# Create / update
# ---------------------------


def create_transaction(
    session: Session,
    payload: TransactionPayload | Mapping[str, Any] | None,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
) -> TransactionView:
    """Create one transaction, rejecting a duplicate within its statement period.

    ``transaction_date`` defaults to today and ``created_time`` is set to now.
    Raises :class:`ValidationError` for a null or malformed payload,
    :class:`DuplicateError` when the natural key already exists.
    """

    ctx = RequestContext.ensure(context)
    log = bind(logger, ctx)
    data = parse_payload(TransactionPayload, payload)
    period = ensure_statement_period(session, data.statement_period, context=ctx)

    row = _build_row(kind, data, period)
    _persist(session, kind, row, log)
    log.info("%s transaction created id=%s period=%s", kind.name, row.id, period)
    return to_view(row, kind)


def update_transaction(
    session: Session,
    tx_id: int,
    payload: TransactionUpdate | Mapping[str, Any] | None,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
) -> TransactionView:
    """Replace the business fields of transaction ``tx_id``.

    A blank or omitted ``statement_period`` keeps the current one. An omitted
    ``transaction_date`` keeps the stored date; it and ``status`` are
    overwritten (``null`` included) whenever present in the payload.
    ``created_time`` never changes. Matching the row's own natural key is
    allowed; matching another row's is a :class:`DuplicateError` and leaves
    the row unchanged.
    """

    ctx = RequestContext.ensure(context)
    log = bind(logger, ctx)
    row = repository.find_by_id(session, kind, tx_id)
    if row is None:
        log.warning("%s transaction not found id=%s", kind.name, tx_id)
        raise NotFoundError(f"Transaction {tx_id} not found", {"id": tx_id})
    data = parse_payload(TransactionUpdate, payload)

    # Resolve the period before touching the row; the guard queries the session.
    period = row.statement_period
    if data.statement_period:
        period = ensure_statement_period(session, data.statement_period, context=ctx)

    changes: dict[str, Any] = {f: getattr(data, f) for f in _COPIED_FIELDS}
    changes["amount"] = data.amount.quantize(_CENTS)
    changes["statement_period"] = period
    for field_name in ("transaction_date", "status"):
        if field_name in data.model_fields_set:
            changes[field_name] = getattr(data, field_name)

    # Reject a key collision before the row is touched.
    candidate = SimpleNamespace(
        **{f: changes.get(f, getattr(row, f)) for f in BUSINESS_KEY_FIELDS}
    )
    candidate_hash = kind.strategy.prepare(candidate)
    if repository.find_by_natural_key(
        session, kind, candidate, candidate_hash, exclude_id=row.id
    ):
        log.warning(
            "duplicate %s transaction on update id=%s hash=%s", kind.name, tx_id, candidate_hash
        )
        raise _duplicate(kind, candidate, candidate_hash)

    for field_name, value in changes.items():
        setattr(row, field_name, value)
    try:
        _persist(session, kind, row, log, exclude_id=row.id)
    except LedgerError:
        # Drop the pending edit so a later commit cannot write it.
        session.expire(row)
        raise
    log.info("%s transaction updated id=%s period=%s", kind.name, tx_id, period)
    return to_view(row, kind)


# ---------------------------
# Reads and deletes
# ---------------------------


def get_transaction(
    session: Session, tx_id: int, *, kind: TransactionKind = ACTUAL
) -> TransactionView:
    row = repository.find_by_id(session, kind, tx_id)
    if row is None:
        raise NotFoundError(f"Transaction {tx_id} not found", {"id": tx_id})
    return to_view(row, kind)


def list_transactions(
    session: Session,
    *,
    kind: TransactionKind = ACTUAL,
    statement_period: str | None = None,
    account: str | None = None,
    category: str | None = None,
    criticality: str | None = None,
    payment_method: str | None = None,
) -> TransactionList:
    """Return matching transactions with their count and summed amount.

    ``statement_period`` is compared upper-cased, as stored.
    """

    rows = repository.find_by_filters(
        session,
        kind,
        statement_period=statement_period.strip().upper() if statement_period else None,
        account=account,
        category=category,
        criticality=criticality,
        payment_method=payment_method,
    )
    return TransactionList.of(to_view(r, kind) for r in rows)


def delete_transaction(
    session: Session,
    tx_id: int,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
) -> bool:
    deleted = repository.delete_by_id(session, kind, tx_id)
    if deleted:
        bind(logger, RequestContext.ensure(context)).info(
            "%s transaction deleted id=%s", kind.name, tx_id
        )
    return deleted


def delete_all_transactions(
    session: Session,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
) -> int:
    n = repository.delete_all(session, kind)
    bind(logger, RequestContext.ensure(context)).info(
        "%s transactions deleted count=%s", kind.name, n
    )
    return n


# ---------------------------
# Bulk import
# ---------------------------


def _draft_payload(draft: TransactionDraft, statement_period: str) -> dict[str, Any]:
    return {
        "name": draft.name,
        "amount": draft.amount,
        "category": draft.category,
        "criticality": draft.criticality,
        "transaction_date": draft.transaction_date,
        "account": draft.account,
        "status": draft.status,
        "payment_method": draft.payment_method,
        "statement_period": statement_period,
    }


def bulk_import(
    session: Session,
    rows: Iterable[ParsedRow | tuple[int, TransactionDraft | None]],
    statement_period: str | None,
    *,
    parse_errors: Iterable[RowError] = (),
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
) -> BulkImportResult:
    """Insert parsed rows under one statement period, skipping duplicates.

    ``rows`` pairs each file row number with its draft, or ``None`` when the
    row failed to parse (its reason is expected in ``parse_errors``). The
    period is validated and materialized once up front; an invalid period
    raises :class:`ValidationError` before any row is touched.

    Each row runs in its own SAVEPOINT. Duplicates are counted, and any other
    per-row failure (business validation, storage) becomes a :class:`RowError`;
    the batch always completes.
    """

    ctx = RequestContext.ensure(context)
    log = bind(logger, ctx)
    period = ensure_statement_period(session, statement_period, context=ctx)

    errors = list(parse_errors)
    reported = {e.row for e in errors}
    inserted = 0
    duplicates = 0

    for row_no, draft in rows:
        if draft is None:
            if row_no not in reported:
                errors.append(RowError(row=row_no, message="Row could not be parsed"))
            continue
        try:
            with session.begin_nested():
                data = parse_payload(TransactionPayload, _draft_payload(draft, period))
                row = _build_row(kind, data, period, created_time=draft.created_time)
                _persist(session, kind, row, log)
        except DuplicateError:
            duplicates += 1
        except LedgerError as exc:
            detail = "; ".join(f"{k}: {v}" for k, v in exc.details.items())
            message = f"{exc.message}: {detail}" if detail else exc.message
            errors.append(RowError(row=row_no, message=message))
        except SQLAlchemyError as exc:
            log.exception("storage error importing row=%s", row_no)
            errors.append(RowError(row=row_no, message=f"Storage error: {exc.__class__.__name__}"))
        else:
            inserted += 1

    errors.sort(key=lambda e: e.row)
    log.info(
        "bulk import finished kind=%s period=%s inserted=%s duplicates=%s errors=%s",
        kind.name,
        period,
        inserted,
        duplicates,
        len(errors),
    )
    return BulkImportResult(inserted_count=inserted, duplicate_count=duplicates, errors=errors)


def import_csv(
    session: Session,
    stream: IO[str],
    statement_period: str | None,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
) -> BulkImportResult:
    """Parse a CSV export from ``stream`` and bulk-import it."""

    parsed = parse_csv(stream)
    return bulk_import(
        session,
        parsed.rows,
        statement_period,
        parse_errors=parsed.errors,
        kind=kind,
        context=context,
    )


__all__ = [
    "bulk_import",
    "create_transaction",
    "delete_all_transactions",
    "delete_transaction",
    "get_transaction",
    "import_csv",
    "list_transactions",
    "to_view",
    "update_transaction",
]
