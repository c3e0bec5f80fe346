from __future__ import annotations

import io
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from budget_ledger import api, repository
from budget_ledger.dedup import PROJECTED
from budget_ledger.errors import DuplicateError, NotFoundError, StorageError
from budget_ledger.models import ParsedRow, RequestContext, TransactionDraft
from budget_ledger.settings import LedgerSettings
from tests.helpers.db import tx_payload


def test_create_get_list_delete_round_through_their_own_sessions(db_url):
    ctx = RequestContext(transaction_id="req-1")
    created = api.create_transaction(tx_payload(), context=ctx, database_url=db_url)

    fetched = api.get_transaction(created.id, database_url=db_url)
    assert fetched.row_hash == created.row_hash

    listed = api.list_transactions(statement_period="october2025", database_url=db_url)
    assert listed.count == 1
    assert listed.total == Decimal("42.10")

    assert api.delete_transaction(created.id, database_url=db_url) is True
    with pytest.raises(NotFoundError):
        api.get_transaction(created.id, database_url=db_url)


def test_camel_case_aliases_point_at_the_same_operations():
    assert api.createTransaction is api.create_transaction
    assert api.updateTransaction is api.update_transaction
    assert api.bulkImport is api.bulk_import
    assert api.getAccountView is api.get_account_view
    assert api.getPaymentSummary is api.get_payment_summary


def test_failed_write_rolls_back_the_new_period(db_url, monkeypatch):
    def broken_save(session, row):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(repository, "save", broken_save)
    with pytest.raises(StorageError):
        api.create_transaction(tx_payload(statement_period="DECEMBER2025"), database_url=db_url)

    assert api.list_statement_periods(database_url=db_url) == []


def test_duplicate_create_leaves_store_unchanged(db_url):
    api.create_transaction(tx_payload(), database_url=db_url)
    with pytest.raises(DuplicateError):
        api.create_transaction(tx_payload(name="groceries run"), database_url=db_url)
    assert api.list_transactions(database_url=db_url).count == 1


def test_update_through_api(db_url):
    created = api.create_transaction(tx_payload(), database_url=db_url)
    updated = api.update_transaction(
        created.id,
        tx_payload(amount=Decimal("50"), statement_period=""),
        database_url=db_url,
    )
    assert updated.amount == Decimal("50.00")
    assert updated.statement_period == "OCTOBER2025"
    assert updated.row_hash != created.row_hash


def test_bulk_import_and_csv_import(db_url):
    draft = TransactionDraft(
        name="Coffee",
        amount=Decimal("4.50"),
        category="Dining",
        criticality="Nonessential",
        transaction_date=None,
        account="josh",
        status=None,
        created_time=None,
        payment_method="Amex",
    )
    result = api.bulk_import(
        [ParsedRow(1, draft), ParsedRow(2, draft)],
        "october2025",
        kind=PROJECTED,
        database_url=db_url,
    )
    assert (result.inserted_count, result.duplicate_count, result.errors) == (1, 1, [])

    csv_text = (
        "name,amount,category,criticality,transaction date,account,status,created time,"
        "payment method\n"
        "Coffee,4.50,Dining,Nonessential,2025-10-02,josh,,,Amex\n"
    )
    imported = api.import_csv(io.StringIO(csv_text), "OCTOBER2025", database_url=db_url)
    assert imported.inserted_count == 1

    assert api.delete_all_transactions(kind=PROJECTED, database_url=db_url) == 1
    assert api.list_transactions(kind=PROJECTED, database_url=db_url).count == 0
    assert api.list_transactions(database_url=db_url).count == 1


def test_reports_through_api(db_url, monkeypatch):
    api.create_transaction(tx_payload(), database_url=db_url)
    api.create_transaction(
        tx_payload(name="Rent", amount=Decimal("100.01"), account="joint"), database_url=db_url
    )

    view = api.get_account_view("anna", database_url=db_url)
    assert view.total == Decimal("92.11")

    monkeypatch.setenv("BUDGET_LEDGER_SPLITTING_ACCOUNTS", "anna")
    [anna] = api.get_payment_summary(["anna"], "OCTOBER2025", database_url=db_url)
    assert anna.totals_by_method == {"visa": Decimal("92.11")}

    explicit = LedgerSettings()
    [anna] = api.get_payment_summary(
        ["anna"], "OCTOBER2025", settings=explicit, database_url=db_url
    )
    assert anna.totals_by_method == {"visa": Decimal("42.10")}


def test_statement_period_crud_through_api(db_url):
    period = api.create_statement_period(
        {"periodName": "november2025", "startDate": "2025-11-01"}, database_url=db_url
    )
    assert period.period_name == "NOVEMBER2025"
    assert api.get_statement_period(period.id, database_url=db_url).start_date is not None

    renamed = api.update_statement_period(
        period.id, {"period_name": "DECEMBER2025"}, database_url=db_url
    )
    assert renamed.period_name == "DECEMBER2025"

    assert api.delete_statement_period(period.id, database_url=db_url) is True
    assert api.delete_statement_period(period.id, database_url=db_url) is False

    api.create_statement_period({"period_name": "JANUARY2026"}, database_url=db_url)
    assert api.delete_all_statement_periods(database_url=db_url) == 1


def test_cache_through_api(db_url):
    assert api.get_cache_entry("k", database_url=db_url) is None
    api.save_cache_entry("k", "v", database_url=db_url)
    assert api.get_cache_entry("k", database_url=db_url).cache_value == "v"
    assert [e.cache_key for e in api.list_cache_entries(database_url=db_url)] == ["k"]
    assert api.delete_cache_entry("k", database_url=db_url) is True
