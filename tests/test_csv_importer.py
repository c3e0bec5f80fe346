from __future__ import annotations

import io
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from budget_ledger.ingest.csv_importer import parse_amount, parse_csv, parse_date, parse_datetime

HEADER = (
    "name,amount,category,criticality,transaction date,account,status,created time,"
    "payment method\n"
)


def test_header_is_case_insensitive_reordered_and_bom_tolerant():
    text = (
        "\ufeffPayment Method,Name,AMOUNT,Category,Criticality,Transaction Date,Account,Status,"
        "Created time,Notes\n"
        "Visa,Groceries,12.30,Food,Essential,2025-10-03,anna,posted,,ignored\n"
    )
    parsed = parse_csv(io.StringIO(text))

    assert parsed.errors == []
    [(row_no, draft)] = parsed.rows
    assert row_no == 2
    assert draft.name == "Groceries"
    assert draft.payment_method == "Visa"
    assert draft.amount == Decimal("12.30")
    assert draft.transaction_date == date(2025, 10, 3)
    assert draft.status == "posted"
    assert draft.created_time is None


def test_field_errors_null_the_row_and_carry_field_details():
    text = HEADER + "A,1.00,c,k,not-a-date,anna,,yesterday,Visa\nB,2.00,c,k,,anna,,,Visa\n"
    parsed = parse_csv(io.StringIO(text))

    assert [r.row for r in parsed.rows] == [2, 3]
    assert parsed.rows[0].draft is None
    assert parsed.rows[1].draft is not None
    assert parsed.rows[1].draft.transaction_date is None
    fields = {(e.row, e.field) for e in parsed.errors}
    assert fields == {(2, "transaction_date"), (2, "created_time")}


def test_missing_columns_yield_single_row_one_error():
    parsed = parse_csv(io.StringIO("name,amount\nx,1\n"))
    assert parsed.rows == []
    [err] = parsed.errors
    assert err.row == 1
    assert "payment method" in err.message


def test_empty_file():
    parsed = parse_csv(io.StringIO(""))
    assert parsed.rows == []
    assert parsed.errors[0].message == "CSV file is empty."


def test_blank_lines_are_skipped_but_numbering_follows_file_records():
    text = HEADER + "A,1.00,c,k,,anna,,,Visa\n\nB,2.00,c,k,,anna,,,Visa\n"
    parsed = parse_csv(io.StringIO(text))
    assert [r.row for r in parsed.rows] == [2, 4]


@pytest.mark.parametrize(
    "raw, expected",
    [("$1,234.50", Decimal("1234.50")), (" 12 ", Decimal("12")), ("-3.10", Decimal("-3.10"))],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", ["", "abc", "NaN", "1.2.3"])
def test_parse_amount_rejects(raw):
    with pytest.raises(ValueError):
        parse_amount(raw)


@pytest.mark.parametrize(
    "raw", ["2025-10-05", "10/5/2025", "Oct 5, 2025", "October 5, 2025"]
)
def test_parse_date_formats(raw):
    assert parse_date(raw) == date(2025, 10, 5)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("October 15, 2025 9:28 AM", datetime(2025, 10, 15, 9, 28, tzinfo=UTC)),
        ("2025-10-15T09:28:00", datetime(2025, 10, 15, 9, 28, tzinfo=UTC)),
        ("2025-10-15 21:05:00", datetime(2025, 10, 15, 21, 5, tzinfo=UTC)),
        ("10/15/2025 21:05", datetime(2025, 10, 15, 21, 5, tzinfo=UTC)),
    ],
)
def test_parse_datetime_formats(raw, expected):
    assert parse_datetime(raw) == expected
