"""Data models and value types for ``budget_ledger``.

Three families live here:

- Input payloads (``TransactionPayload``/``TransactionUpdate``,
  ``StatementPeriodPayload``) validated with pydantic. Field names are
  snake_case; camelCase aliases (``transactionDate``, ``paymentMethod``, ...)
  are accepted so HTTP bodies can be passed through unchanged.
- Read views (``TransactionView`` and the list/report shapes built from it).
  These are detached from the ORM so the split engine can derive synthetic
  rows without touching the session.
- Small internal records (``RequestContext``, ``TransactionDraft``,
  ``ParsedRow``) exchanged between the CSV importer and the services.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, NamedTuple, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError

ZERO = Decimal("0.00")

P = TypeVar("P", bound=BaseModel)


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Request-scoped data threaded explicitly through every core call.

    ``transaction_id`` is the caller's correlation id (e.g., an
    ``X-Transaction-ID`` header); a random one is minted when absent.
    """

    transaction_id: str = field(default_factory=lambda: str(uuid4()))

    @classmethod
    def ensure(cls, context: RequestContext | None) -> RequestContext:
        return context if context is not None else cls()


# ---------------------------------------------------------------------------
# Input payloads
# ---------------------------------------------------------------------------


class _Payload(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TransactionPayload(_Payload):
    """Business fields accepted when creating a transaction."""

    name: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    category: str = Field(min_length=1, max_length=128)
    criticality: str = Field(min_length=1, max_length=32)
    # Defaulted to today by the service when omitted.
    transaction_date: date | None = None
    account: str = Field(min_length=1, max_length=32)
    status: str | None = Field(default=None, max_length=64)
    payment_method: str = Field(min_length=1, max_length=64)
    statement_period: str = Field(min_length=1, max_length=32)


class TransactionUpdate(TransactionPayload):
    """Replacement business fields for an existing transaction.

    ``statement_period`` is optional here: omitted or blank keeps the current
    period.
    """

    statement_period: str | None = Field(default=None, max_length=32)


class StatementPeriodPayload(_Payload):
    period_name: str | None = None
    start_date: date | None = None
    end_date: date | None = None


def parse_payload(model: type[P], payload: P | Mapping[str, Any] | None) -> P:
    """Validate ``payload`` as ``model``, raising :class:`ValidationError` on failure."""

    if payload is None:
        raise ValidationError(f"{model.__name__} payload must not be null")
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        details = {
            ".".join(str(p) for p in err["loc"]) or "payload": err["msg"] for err in exc.errors()
        }
        raise ValidationError(f"Invalid {model.__name__}", details) from exc


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------


class TransactionView(BaseModel):
    """Detached, read-only shape of a stored (or derived) transaction."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    name: str | None = None
    amount: Decimal | None = None
    category: str | None = None
    criticality: str | None = None
    transaction_date: date | None = None
    account: str | None = None
    status: str | None = None
    payment_method: str | None = None
    statement_period: str | None = None
    created_time: datetime | None = None
    row_hash: str | None = None


def sum_amounts(transactions: Iterable[TransactionView]) -> Decimal:
    """Exact decimal sum; a missing amount contributes zero."""

    return sum((t.amount if t.amount is not None else ZERO for t in transactions), ZERO)


class TransactionList(BaseModel):
    transactions: list[TransactionView] = Field(default_factory=list)
    count: int = 0
    total: Decimal = ZERO

    @classmethod
    def of(cls, transactions: Iterable[TransactionView]) -> TransactionList:
        items = list(transactions)
        return cls(transactions=items, count=len(items), total=sum_amounts(items))


class AccountTransactionView(BaseModel):
    """An account's own transactions next to its share of joint ones."""

    personal: TransactionList = Field(default_factory=TransactionList)
    joint: TransactionList = Field(default_factory=TransactionList)
    personal_total: Decimal = ZERO
    joint_total: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(
        cls,
        personal: Iterable[TransactionView],
        joint: Iterable[TransactionView],
    ) -> AccountTransactionView:
        p = TransactionList.of(personal)
        j = TransactionList.of(joint)
        return cls(
            personal=p,
            joint=j,
            personal_total=p.total,
            joint_total=j.total,
            total=p.total + j.total,
        )


class PaymentSummary(BaseModel):
    """Amount owed per payment method for one account in one period.

    Map keys are trimmed, lower-cased payment methods (and categories in the
    breakdown); ``account`` is the label as the caller supplied it.
    """

    account: str
    totals_by_method: dict[str, Decimal] = Field(default_factory=dict)
    category_breakdown: dict[str, dict[str, Decimal]] = Field(default_factory=dict)


class RowError(BaseModel):
    row: int
    message: str
    field: str | None = None
    value: str | None = None


class BulkImportResult(BaseModel):
    inserted_count: int = 0
    duplicate_count: int = 0
    errors: list[RowError] = Field(default_factory=list)


class StatementPeriodView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    period_name: str
    start_date: date | None = None
    end_date: date | None = None
    created_at: datetime | None = None


class CacheEntryView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cache_key: str
    cache_value: str | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# CSV ingestion records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionDraft:
    """A parsed CSV row before it is bound to a statement period.

    Values are typed but not yet validated against business rules (e.g., a
    draft may carry a blank name); bulk import validates each draft as a
    :class:`TransactionPayload`.
    """

    name: str
    amount: Decimal
    category: str
    criticality: str
    transaction_date: date | None
    account: str
    status: str | None
    payment_method: str
    created_time: datetime | None = None


class ParsedRow(NamedTuple):
    """One CSV data row: ``draft`` is ``None`` when the row failed to parse."""

    row: int
    draft: TransactionDraft | None


__all__ = [
    "ZERO",
    "RequestContext",
    "TransactionPayload",
    "TransactionUpdate",
    "StatementPeriodPayload",
    "parse_payload",
    "TransactionView",
    "TransactionList",
    "AccountTransactionView",
    "PaymentSummary",
    "RowError",
    "BulkImportResult",
    "StatementPeriodView",
    "CacheEntryView",
    "TransactionDraft",
    "ParsedRow",
    "sum_amounts",
]
