"""Importer for Notion-style budget CSV exports.

Header (matched case-insensitively, any column order, extra columns ignored)::

    Name, Amount, Category, Criticality, Transaction Date, Account, Status,
    Created time, Payment Method

Contract
--------
- Returns a :class:`ParsedCsv` with one ``ParsedRow(row, draft)`` per data
  record. Row numbers are 1-based file records: the header is row 1, the first
  data record row 2.
- A record with any unparseable field gets ``draft=None`` and one
  :class:`RowError` per bad field (``field``/``value`` set).
- A missing required column, an empty file, or a malformed CSV yields a single
  error at row 1 and no rows.
- Business rules (non-blank name, positive amount, ...) are not checked here;
  bulk import validates each draft.

Parsing
-------
- Amount: ``$`` and ``,`` stripped, then ``Decimal``.
- Transaction date: ``YYYY-MM-DD``, ``M/D/YYYY``, ``Mon D, YYYY`` or
  ``Month D, YYYY``; blank means absent.
- Created time: ISO forms, ``M/D/YYYY H:MM``, ``Mon D, YYYY H:MM`` and Notion's
  ``October 15, 2025 9:28 AM``; blank means absent. Naive values are UTC.
"""

from __future__ import annotations

import csv
from collections.abc import Sequence
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import NamedTuple, TextIO

from ..logging_setup import get_logger
from ..models import ParsedRow, RowError, TransactionDraft

logger = get_logger("budget_ledger.ingest.csv_importer")

# logical field -> header (lower-cased)
COLUMNS: dict[str, str] = {
    "name": "name",
    "amount": "amount",
    "category": "category",
    "criticality": "criticality",
    "transaction_date": "transaction date",
    "account": "account",
    "status": "status",
    "created_time": "created time",
    "payment_method": "payment method",
}

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%b %d, %Y", "%B %d, %Y")
_DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S.%f",
    "%m/%d/%Y %H:%M",
    "%b %d, %Y %H:%M",
    "%B %d, %Y %I:%M %p",
)
_BOM = "\ufeff"


class ParsedCsv(NamedTuple):
    rows: list[ParsedRow]
    errors: list[RowError]


class _FieldError(ValueError):
    def __init__(self, field: str, value: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


def parse_amount(raw: str) -> Decimal:
    cleaned = raw.replace("$", "").replace(",", "").strip()
    if not cleaned:
        raise _FieldError("amount", raw, "Amount is required")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise _FieldError("amount", raw, f"Invalid amount format: '{raw}'") from None
    if not value.is_finite():
        raise _FieldError("amount", raw, f"Invalid amount format: '{raw}'")
    return value


def parse_date(raw: str) -> date | None:
    s = raw.strip()
    if not s:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    raise _FieldError("transaction_date", raw, f"Invalid date format: '{raw}'")


def parse_datetime(raw: str) -> datetime | None:
    s = raw.strip()
    if not s:
        return None
    parsed: datetime | None = None
    for fmt in _DATETIME_FORMATS:
        try:
            parsed = datetime.strptime(s, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            raise _FieldError(
                "created_time", raw, f"Invalid datetime format: '{raw}'"
            ) from None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _header_index(header: Sequence[str]) -> dict[str, int]:
    cells = list(header)
    if cells and cells[0].startswith(_BOM):
        cells[0] = cells[0][len(_BOM) :]
    index: dict[str, int] = {}
    for i, cell in enumerate(cells):
        index.setdefault(cell.strip().lower(), i)
    return index


def _draft_from_record(
    record: Sequence[str], index: dict[str, int], row_no: int
) -> tuple[TransactionDraft | None, list[RowError]]:
    def cell(field: str) -> str:
        i = index[COLUMNS[field]]
        return record[i].strip() if i < len(record) else ""

    errors: list[RowError] = []
    values: dict[str, object] = {}
    for field, parser in (
        ("amount", parse_amount),
        ("transaction_date", parse_date),
        ("created_time", parse_datetime),
    ):
        try:
            values[field] = parser(cell(field))
        except _FieldError as exc:
            errors.append(RowError(row=row_no, field=exc.field, value=exc.value, message=str(exc)))
    if errors:
        return None, errors

    status = cell("status")
    draft = TransactionDraft(
        name=cell("name"),
        amount=values["amount"],  # type: ignore[arg-type]
        category=cell("category"),
        criticality=cell("criticality"),
        transaction_date=values["transaction_date"],  # type: ignore[arg-type]
        account=cell("account"),
        status=status or None,
        payment_method=cell("payment_method"),
        created_time=values["created_time"],  # type: ignore[arg-type]
    )
    return draft, []


def parse_csv(file: TextIO) -> ParsedCsv:
    """Parse an open text stream (``newline=''`` recommended) into drafts and row errors."""

    reader = csv.reader(file)
    try:
        header = next(reader, None)
        if header is None:
            logger.error("CSV file is empty")
            return ParsedCsv([], [RowError(row=1, message="CSV file is empty.")])

        index = _header_index(header)
        missing = [logical for logical, name in COLUMNS.items() if name not in index]
        if missing:
            names = ", ".join(COLUMNS[m] for m in missing)
            logger.error("CSV missing required columns: %s", names)
            return ParsedCsv([], [RowError(row=1, message=f"Missing required column for: {names}")])

        rows: list[ParsedRow] = []
        errors: list[RowError] = []
        for row_no, record in enumerate(reader, start=2):
            if not any(c.strip() for c in record):
                continue
            draft, row_errors = _draft_from_record(record, index, row_no)
            rows.append(ParsedRow(row_no, draft))
            errors.extend(row_errors)
    except csv.Error as exc:
        logger.error("Failed to parse CSV: %s", exc)
        return ParsedCsv([], [RowError(row=1, message=f"Failed to parse CSV: {exc}")])

    logger.info("CSV parsed rows=%s errors=%s", len(rows), len(errors))
    return ParsedCsv(rows, errors)


__all__ = ["COLUMNS", "ParsedCsv", "parse_amount", "parse_csv", "parse_date", "parse_datetime"]
