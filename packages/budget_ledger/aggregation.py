"""Split & aggregation engine: account views and payment summaries.

Both reports are pure functions over an in-memory list of
:class:`TransactionView`; the ``get_*`` wrappers at the bottom fetch that list
from the store first.

Joint charges (``account == settings.joint_account``) are shared:

- The account view shows every joint charge as a synthetic half-transaction
  for the requesting account. Account matching here is exact (case-sensitive).
- The payment summary adds half of the joint spend per payment method, but
  only for accounts in ``settings.splitting_accounts``. Other accounts ignore
  joint spend entirely. Accounts, payment methods and categories are matched
  trimmed and case-insensitively here.

Every halving rounds half-up to cents, so both halves of ``100.01`` are
``50.01``; the one-cent drift is not corrected.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from .dedup import ACTUAL, TransactionKind
from .errors import ValidationError
from .logging_setup import bind, get_logger
from .models import (
    ZERO,
    AccountTransactionView,
    PaymentSummary,
    RequestContext,
    TransactionView,
)
from .settings import LedgerSettings
from .transactions import list_transactions

logger = get_logger("budget_ledger.aggregation")

_CENTS = Decimal("0.01")
_TWO = Decimal("2")


def half(amount: Decimal | None) -> Decimal:
    """``amount / 2`` rounded half-up to cents; ``None`` counts as zero."""

    if amount is None:
        return ZERO
    return (amount / _TWO).quantize(_CENTS, rounding=ROUND_HALF_UP)


def _key(value: str | None) -> str:
    return (value or "").strip().lower()


def _amount(tx: TransactionView) -> Decimal:
    return tx.amount if tx.amount is not None else ZERO


# ---------------------------
# Account view
# ---------------------------


def split_joint(
    tx: TransactionView, account: str, *, settings: LedgerSettings
) -> TransactionView:
    """Return ``tx`` as ``account``'s half: marked name, halved amount, no hash."""

    return tx.model_copy(
        update={
            "name": f"{settings.split_name_prefix}{tx.name or ''}",
            "account": account,
            "amount": half(tx.amount),
            "row_hash": None,
        }
    )


def account_view(
    transactions: Iterable[TransactionView],
    account: str,
    *,
    settings: LedgerSettings | None = None,
) -> AccountTransactionView:
    """Partition ``transactions`` into ``account``'s own rows and its joint share.

    Asking for the joint pseudo-account returns the joint rows unsplit with an
    empty personal list.
    """

    settings = settings or LedgerSettings()
    joint_account = settings.joint_account
    items = list(transactions)
    joint = [t for t in items if t.account == joint_account]

    if account == joint_account:
        return AccountTransactionView.of([], joint)

    personal = [t for t in items if t.account == account]
    return AccountTransactionView.of(
        personal, [split_joint(t, account, settings=settings) for t in joint]
    )


# ---------------------------
# Payment summary
# ---------------------------


def _unique_accounts(accounts: Iterable[str | None]) -> list[tuple[str, str]]:
    """Return ``(normalized, label)`` pairs; the first label seen for a name wins."""

    seen: dict[str, str] = {}
    for acc in accounts:
        if acc is None or not acc.strip():
            continue
        seen.setdefault(_key(acc), acc)
    return list(seen.items())


def _summarize_account(
    transactions: Sequence[TransactionView],
    account_key: str,
    label: str,
    methods: Sequence[str],
    *,
    splitting: bool,
    joint_key: str,
) -> PaymentSummary:
    totals: dict[str, Decimal] = {}
    breakdown: dict[str, dict[str, Decimal]] = {}

    for method in methods:
        direct_rows = [
            t
            for t in transactions
            if _key(t.account) == account_key and _key(t.payment_method) == method
        ]
        direct = sum((_amount(t) for t in direct_rows), ZERO)

        categories: dict[str, Decimal] = {}
        for t in direct_rows:
            cat = _key(t.category)
            categories[cat] = categories.get(cat, ZERO) + _amount(t)

        total = direct
        if splitting:
            joint_rows = [
                t
                for t in transactions
                if _key(t.account) == joint_key and _key(t.payment_method) == method
            ]
            # The method total halves the joint sum; the breakdown halves each row.
            total += half(sum((_amount(t) for t in joint_rows), ZERO))
            for t in joint_rows:
                cat = _key(t.category)
                categories[cat] = categories.get(cat, ZERO) + half(t.amount)

        totals[method] = total
        breakdown[method] = categories

    return PaymentSummary(account=label, totals_by_method=totals, category_breakdown=breakdown)


def payment_summary(
    transactions: Iterable[TransactionView],
    accounts: Iterable[str | None],
    *,
    settings: LedgerSettings | None = None,
) -> list[PaymentSummary]:
    """Amount owed per payment method for each requested account.

    ``transactions`` should be one statement period's rows. Every payment
    method seen in them gets an entry for every account, zero included. Map
    keys are trimmed and lower-cased; blank methods are skipped.
    """

    settings = settings or LedgerSettings()
    items = list(transactions)
    methods = sorted({_key(t.payment_method) for t in items} - {""})
    joint_key = _key(settings.joint_account)

    return [
        _summarize_account(
            items,
            account_key,
            label,
            methods,
            splitting=settings.is_splitting(account_key),
            joint_key=joint_key,
        )
        for account_key, label in _unique_accounts(accounts)
    ]


# ---------------------------
# Store-backed wrappers
# ---------------------------


def get_account_view(
    session: Session,
    account: str,
    *,
    statement_period: str | None = None,
    category: str | None = None,
    criticality: str | None = None,
    payment_method: str | None = None,
    kind: TransactionKind = ACTUAL,
    settings: LedgerSettings | None = None,
    context: RequestContext | None = None,
) -> AccountTransactionView:
    """Fetch rows matching the filters (any account) and build ``account``'s view."""

    if account is None or not account.strip():
        raise ValidationError("account is required", {"account": account})
    log = bind(logger, RequestContext.ensure(context))
    rows = list_transactions(
        session,
        kind=kind,
        statement_period=statement_period,
        category=category,
        criticality=criticality,
        payment_method=payment_method,
    ).transactions
    view = account_view(rows, account, settings=settings)
    log.info(
        "account view account=%s kind=%s personal=%s joint=%s",
        account,
        kind.name,
        view.personal.count,
        view.joint.count,
    )
    return view


def get_payment_summary(
    session: Session,
    accounts: Iterable[str | None],
    statement_period: str | None,
    *,
    settings: LedgerSettings | None = None,
    context: RequestContext | None = None,
) -> list[PaymentSummary]:
    """Summarize one period's actual transactions for ``accounts``.

    The period must be non-blank; it is upper-cased but not otherwise
    validated, so an unknown period simply summarizes nothing.
    """

    if statement_period is None or not statement_period.strip():
        raise ValidationError(
            "statement_period is required and must be in the form MONTHYYYY (e.g. OCTOBER2025)",
            {"statement_period": statement_period},
        )
    period = statement_period.strip().upper()
    log = bind(logger, RequestContext.ensure(context))
    rows = list_transactions(session, kind=ACTUAL, statement_period=period).transactions
    summaries = payment_summary(rows, accounts, settings=settings)
    log.info("payment summary period=%s accounts=%s rows=%s", period, len(summaries), len(rows))
    return summaries


__all__ = [
    "account_view",
    "get_account_view",
    "get_payment_summary",
    "half",
    "payment_summary",
    "split_joint",
]
