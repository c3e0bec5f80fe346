"""Session-owning entry points for HTTP handlers and the CLI.

Each function opens its own ``db.client.session_scope`` (commit on success,
rollback on any error) around the matching service call, so a rejected write
never leaves a half-created statement period behind. Library callers that
already hold a ``Session`` should call the service modules directly.

``database_url`` falls back to ``DATABASE_URL`` as in :mod:`db.client`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import IO, Any

from db.client import session_scope

from . import aggregation, cache, periods, transactions
from .dedup import ACTUAL, TransactionKind
from .models import (
    AccountTransactionView,
    BulkImportResult,
    CacheEntryView,
    ParsedRow,
    PaymentSummary,
    RequestContext,
    RowError,
    StatementPeriodView,
    TransactionList,
    TransactionView,
)
from .settings import LedgerSettings

# ---------------------------
# Transactions
# ---------------------------


def create_transaction(
    payload: Mapping[str, Any] | None,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> TransactionView:
    with session_scope(database_url=database_url) as s:
        return transactions.create_transaction(s, payload, kind=kind, context=context)


def update_transaction(
    tx_id: int,
    payload: Mapping[str, Any] | None,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> TransactionView:
    with session_scope(database_url=database_url) as s:
        return transactions.update_transaction(s, tx_id, payload, kind=kind, context=context)


def get_transaction(
    tx_id: int, *, kind: TransactionKind = ACTUAL, database_url: str | None = None
) -> TransactionView:
    with session_scope(database_url=database_url) as s:
        return transactions.get_transaction(s, tx_id, kind=kind)


def list_transactions(
    *,
    kind: TransactionKind = ACTUAL,
    statement_period: str | None = None,
    account: str | None = None,
    category: str | None = None,
    criticality: str | None = None,
    payment_method: str | None = None,
    database_url: str | None = None,
) -> TransactionList:
    with session_scope(database_url=database_url) as s:
        return transactions.list_transactions(
            s,
            kind=kind,
            statement_period=statement_period,
            account=account,
            category=category,
            criticality=criticality,
            payment_method=payment_method,
        )


def delete_transaction(
    tx_id: int,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> bool:
    with session_scope(database_url=database_url) as s:
        return transactions.delete_transaction(s, tx_id, kind=kind, context=context)


def delete_all_transactions(
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> int:
    with session_scope(database_url=database_url) as s:
        return transactions.delete_all_transactions(s, kind=kind, context=context)


def bulk_import(
    rows: Iterable[ParsedRow | tuple[int, Any]],
    statement_period: str | None,
    *,
    parse_errors: Iterable[RowError] = (),
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> BulkImportResult:
    with session_scope(database_url=database_url) as s:
        return transactions.bulk_import(
            s, rows, statement_period, parse_errors=parse_errors, kind=kind, context=context
        )


def import_csv(
    stream: IO[str],
    statement_period: str | None,
    *,
    kind: TransactionKind = ACTUAL,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> BulkImportResult:
    with session_scope(database_url=database_url) as s:
        return transactions.import_csv(s, stream, statement_period, kind=kind, context=context)


# ---------------------------
# Reports
# ---------------------------


def get_account_view(
    account: str,
    *,
    statement_period: str | None = None,
    category: str | None = None,
    criticality: str | None = None,
    payment_method: str | None = None,
    kind: TransactionKind = ACTUAL,
    settings: LedgerSettings | None = None,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> AccountTransactionView:
    with session_scope(database_url=database_url) as s:
        return aggregation.get_account_view(
            s,
            account,
            statement_period=statement_period,
            category=category,
            criticality=criticality,
            payment_method=payment_method,
            kind=kind,
            settings=settings,
            context=context,
        )


def get_payment_summary(
    accounts: Iterable[str | None],
    statement_period: str | None,
    *,
    settings: LedgerSettings | None = None,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> list[PaymentSummary]:
    """Payment summary using ``settings`` or, when omitted, the environment's options."""

    with session_scope(database_url=database_url) as s:
        return aggregation.get_payment_summary(
            s,
            accounts,
            statement_period,
            settings=settings or LedgerSettings.from_env(),
            context=context,
        )


# ---------------------------
# Statement periods
# ---------------------------


def create_statement_period(
    payload: Mapping[str, Any] | None,
    *,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> StatementPeriodView:
    with session_scope(database_url=database_url) as s:
        return periods.create_statement_period(s, payload, context=context)


def get_statement_period(period_id: int, *, database_url: str | None = None) -> StatementPeriodView:
    with session_scope(database_url=database_url) as s:
        return periods.get_statement_period(s, period_id)


def list_statement_periods(*, database_url: str | None = None) -> list[StatementPeriodView]:
    with session_scope(database_url=database_url) as s:
        return periods.list_statement_periods(s)


def update_statement_period(
    period_id: int,
    payload: Mapping[str, Any] | None,
    *,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> StatementPeriodView:
    with session_scope(database_url=database_url) as s:
        return periods.update_statement_period(s, period_id, payload, context=context)


def delete_statement_period(
    period_id: int, *, context: RequestContext | None = None, database_url: str | None = None
) -> bool:
    with session_scope(database_url=database_url) as s:
        return periods.delete_statement_period(s, period_id, context=context)


def delete_all_statement_periods(
    *, context: RequestContext | None = None, database_url: str | None = None
) -> int:
    with session_scope(database_url=database_url) as s:
        return periods.delete_all_statement_periods(s, context=context)


# ---------------------------
# Local cache
# ---------------------------


def list_cache_entries(*, database_url: str | None = None) -> list[CacheEntryView]:
    with session_scope(database_url=database_url) as s:
        return cache.list_cache_entries(s)


def get_cache_entry(
    cache_key: str, *, context: RequestContext | None = None, database_url: str | None = None
) -> CacheEntryView | None:
    with session_scope(database_url=database_url) as s:
        return cache.get_cache_entry(s, cache_key, context=context)


def save_cache_entry(
    cache_key: str,
    cache_value: str | None,
    *,
    context: RequestContext | None = None,
    database_url: str | None = None,
) -> CacheEntryView:
    with session_scope(database_url=database_url) as s:
        return cache.save_cache_entry(s, cache_key, cache_value, context=context)


def delete_cache_entry(
    cache_key: str, *, context: RequestContext | None = None, database_url: str | None = None
) -> bool:
    with session_scope(database_url=database_url) as s:
        return cache.delete_cache_entry(s, cache_key, context=context)


# camelCase aliases matching the HTTP operation names
createTransaction = create_transaction
updateTransaction = update_transaction
bulkImport = bulk_import
getAccountView = get_account_view
getPaymentSummary = get_payment_summary

__all__ = [
    "bulk_import",
    "bulkImport",
    "create_statement_period",
    "create_transaction",
    "createTransaction",
    "delete_all_statement_periods",
    "delete_all_transactions",
    "delete_cache_entry",
    "delete_statement_period",
    "delete_transaction",
    "get_account_view",
    "getAccountView",
    "get_cache_entry",
    "get_payment_summary",
    "getPaymentSummary",
    "get_statement_period",
    "get_transaction",
    "import_csv",
    "list_cache_entries",
    "list_statement_periods",
    "list_transactions",
    "save_cache_entry",
    "update_statement_period",
    "update_transaction",
]
