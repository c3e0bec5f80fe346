"""Public interface for the ``budget_ledger`` package.

Symbol re-exports only. Service functions that take an explicit ``Session``
live in :mod:`budget_ledger.transactions`, :mod:`budget_ledger.periods`,
:mod:`budget_ledger.aggregation` and :mod:`budget_ledger.cache`;
:mod:`budget_ledger.api` wraps them in their own session scope.
"""

from .aggregation import account_view, half, payment_summary
from .dedup import ACTUAL, PROJECTED, TransactionKind
from .errors import DuplicateError, LedgerError, NotFoundError, StorageError, ValidationError
from .hashing import canonical_string, compute_row_hash
from .models import (
    AccountTransactionView,
    BulkImportResult,
    PaymentSummary,
    RequestContext,
    RowError,
    StatementPeriodView,
    TransactionDraft,
    TransactionList,
    TransactionPayload,
    TransactionUpdate,
    TransactionView,
)
from .periods import ensure_statement_period, normalize_period_name
from .settings import LedgerSettings

__all__ = [
    # Engine
    "account_view",
    "canonical_string",
    "compute_row_hash",
    "ensure_statement_period",
    "half",
    "normalize_period_name",
    "payment_summary",
    # Kinds and settings
    "ACTUAL",
    "PROJECTED",
    "LedgerSettings",
    "TransactionKind",
    # Errors
    "DuplicateError",
    "LedgerError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    # Models
    "AccountTransactionView",
    "BulkImportResult",
    "PaymentSummary",
    "RequestContext",
    "RowError",
    "StatementPeriodView",
    "TransactionDraft",
    "TransactionList",
    "TransactionPayload",
    "TransactionUpdate",
    "TransactionView",
]
