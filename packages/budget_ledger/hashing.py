"""Canonical row hash for transaction deduplication.

The hash identifies a transaction's economic identity. It covers the business
key only, in this fixed order::

    name | account | amount | category | criticality | transaction_date |
    payment_method | statement_period

Strings are trimmed and lower-cased, the amount is rendered with two decimals
(half-up), the date as ``YYYY-MM-DD``; a missing value becomes ``""``. The
joined string is hashed with SHA-256 and rendered as lowercase hex.

``id`` and ``created_time`` are excluded, so edits that only touch metadata
keep the hash stable. A literal ``|`` inside a field can make two different
rows collide; this is accepted.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .logging_setup import get_logger

logger = get_logger("budget_ledger.hashing")

BUSINESS_KEY_FIELDS: tuple[str, ...] = (
    "name",
    "account",
    "amount",
    "category",
    "criticality",
    "transaction_date",
    "payment_method",
    "statement_period",
)

_SEPARATOR = "|"
_CENTS = Decimal("0.01")


def _norm_str(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip().lower()


def _norm_amount(v: Any) -> str:
    if v is None:
        return ""
    d = v if isinstance(v, Decimal) else Decimal(str(v))
    return format(d.quantize(_CENTS, rounding=ROUND_HALF_UP), "f")


def _norm_date(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, datetime):
        v = v.date()
    if isinstance(v, date):
        return v.isoformat()
    return str(v).strip()


def _get(tx: Any, name: str) -> Any:
    if isinstance(tx, Mapping):
        return tx.get(name)
    return getattr(tx, name, None)


def canonical_string(tx: Any) -> str:
    """Return the normalized, ``|``-joined business key for ``tx``.

    ``tx`` may be an ORM row, a pydantic model, or a mapping keyed by the
    snake_case field names.
    """

    parts: list[str] = []
    for name in BUSINESS_KEY_FIELDS:
        value = _get(tx, name)
        if name == "amount":
            parts.append(_norm_amount(value))
        elif name == "transaction_date":
            parts.append(_norm_date(value))
        else:
            parts.append(_norm_str(value))
    return _SEPARATOR.join(parts)


def compute_row_hash(tx: Any) -> str:
    """Compute the SHA-256 row hash (lowercase hex) over the business key."""

    raw = canonical_string(tx)
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    logger.debug("row hash computed raw=%r hash=%s", raw, digest)
    return digest


__all__ = [
    "BUSINESS_KEY_FIELDS",
    "canonical_string",
    "compute_row_hash",
]
