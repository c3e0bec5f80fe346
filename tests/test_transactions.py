from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from db.client import session_scope
from db.models.budget import StatementPeriod
from sqlalchemy import func, select

from budget_ledger import repository, transactions
from budget_ledger.dedup import ACTUAL, PROJECTED
from budget_ledger.errors import DuplicateError, NotFoundError, StorageError, ValidationError
from budget_ledger.hashing import compute_row_hash
from tests.helpers.db import tx_payload


def _create(db_url: str, kind=ACTUAL, **overrides):
    with session_scope(database_url=db_url) as s:
        return transactions.create_transaction(s, tx_payload(**overrides), kind=kind)


def test_create_normalizes_period_and_hashes(db_url):
    view = _create(db_url, statement_period="october2025", transaction_date=None)

    assert view.id is not None
    assert view.statement_period == "OCTOBER2025"
    assert view.transaction_date == date.today()
    assert view.created_time is not None
    assert view.amount == Decimal("42.10")
    assert view.row_hash == compute_row_hash(view)

    with session_scope(database_url=db_url) as s:
        names = s.execute(select(StatementPeriod.period_name)).scalars().all()
    assert names == ["OCTOBER2025"]


def test_create_same_transaction_twice_is_duplicate(db_url):
    _create(db_url)
    with pytest.raises(DuplicateError):
        _create(db_url, name="  GROCERIES RUN ", payment_method="visa")

    with session_scope(database_url=db_url) as s:
        assert repository.count(s, ACTUAL) == 1


def test_same_transaction_in_another_period_is_allowed(db_url):
    _create(db_url)
    _create(db_url, statement_period="NOVEMBER2025")
    with session_scope(database_url=db_url) as s:
        assert repository.count(s, ACTUAL) == 2


@pytest.mark.parametrize(
    "payload",
    [
        None,
        tx_payload(amount=Decimal("0")),
        tx_payload(name="   "),
        tx_payload(statement_period="OCT2025"),
        {k: v for k, v in tx_payload().items() if k != "payment_method"},
    ],
)
def test_create_rejects_invalid_payloads(db_url, payload):
    with session_scope(database_url=db_url) as s, pytest.raises(ValidationError):
        transactions.create_transaction(s, payload)
    with session_scope(database_url=db_url) as s:
        assert repository.count(s, ACTUAL) == 0
        assert s.execute(select(func.count()).select_from(StatementPeriod)).scalar_one() == 0


def test_create_accepts_camel_case_payload(db_url):
    payload = {
        "name": "Coffee",
        "amount": "4.50",
        "category": "Dining",
        "criticality": "Nonessential",
        "transactionDate": "2025-10-02",
        "account": "josh",
        "paymentMethod": "Amex",
        "statementPeriod": "OCTOBER2025",
    }
    with session_scope(database_url=db_url) as s:
        view = transactions.create_transaction(s, payload)
    assert view.payment_method == "Amex"
    assert view.transaction_date == date(2025, 10, 2)


def test_update_without_key_change_matches_itself(db_url):
    created = _create(db_url)
    with session_scope(database_url=db_url) as s:
        updated = transactions.update_transaction(s, created.id, tx_payload(status="cleared"))

    assert updated.status == "cleared"
    assert updated.row_hash == created.row_hash
    assert updated.created_time.replace(tzinfo=None) == created.created_time.replace(tzinfo=None)


def test_update_onto_another_rows_key_is_duplicate(db_url):
    first = _create(db_url)
    second = _create(db_url, name="Pharmacy", amount=Decimal("9.99"))

    with session_scope(database_url=db_url) as s, pytest.raises(DuplicateError):
        transactions.update_transaction(s, second.id, tx_payload())

    with session_scope(database_url=db_url) as s:
        assert transactions.get_transaction(s, second.id).name == "Pharmacy"
        assert transactions.get_transaction(s, first.id).name == "Groceries run"


def test_update_blank_period_keeps_current_and_new_period_is_ensured(db_url):
    created = _create(db_url)
    with session_scope(database_url=db_url) as s:
        kept = transactions.update_transaction(
            s, created.id, tx_payload(statement_period="  ", amount=Decimal("50.00"))
        )
    assert kept.statement_period == "OCTOBER2025"
    assert kept.row_hash != created.row_hash

    with session_scope(database_url=db_url) as s:
        moved = transactions.update_transaction(
            s, created.id, tx_payload(statement_period="november2025")
        )
        names = set(s.execute(select(StatementPeriod.period_name)).scalars())
    assert moved.statement_period == "NOVEMBER2025"
    assert names == {"OCTOBER2025", "NOVEMBER2025"}


def test_rejected_projected_update_is_not_committed(db_url):
    first = _create(db_url, kind=PROJECTED)
    second = _create(db_url, kind=PROJECTED, name="Pharmacy", amount=Decimal("9.99"))

    # The caller handles the conflict and its scope still commits.
    with session_scope(database_url=db_url) as s:
        with pytest.raises(DuplicateError):
            transactions.update_transaction(s, second.id, tx_payload(), kind=PROJECTED)

    with session_scope(database_url=db_url) as s:
        listed = transactions.list_transactions(s, kind=PROJECTED)
    assert sorted(t.name for t in listed.transactions) == ["Groceries run", "Pharmacy"]
    assert first.id != second.id


def test_update_transaction_date_present_or_omitted(db_url):
    created = _create(db_url, kind=PROJECTED)
    omitted = tx_payload(amount=Decimal("1.00"))
    del omitted["transaction_date"]

    with session_scope(database_url=db_url) as s:
        kept = transactions.update_transaction(s, created.id, omitted, kind=PROJECTED)
    assert kept.transaction_date == date(2025, 10, 3)

    with session_scope(database_url=db_url) as s:
        cleared = transactions.update_transaction(
            s, created.id, tx_payload(transaction_date=None), kind=PROJECTED
        )
    assert cleared.transaction_date is None


def test_update_missing_row_is_not_found(db_url):
    with session_scope(database_url=db_url) as s, pytest.raises(NotFoundError):
        transactions.update_transaction(s, 12345, tx_payload())


def test_unique_violation_after_lookup_surfaces_as_duplicate(db_url, monkeypatch):
    _create(db_url)

    real = repository.find_by_natural_key
    calls = {"n": 0}

    def miss_first(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real(*args, **kwargs)

    monkeypatch.setattr(repository, "find_by_natural_key", miss_first)
    with pytest.raises(DuplicateError):
        _create(db_url)
    assert calls["n"] == 2


def test_unexpected_storage_failure_is_storage_error(db_url, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def boom(session, row):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(repository, "save", boom)
    with pytest.raises(StorageError):
        _create(db_url)


def test_projected_dedup_matches_columns_with_case_insensitive_account(db_url):
    first = _create(db_url, kind=PROJECTED, account="Anna")
    assert first.row_hash == compute_row_hash(first)

    with pytest.raises(DuplicateError):
        _create(db_url, kind=PROJECTED, account="anna")

    # Other columns are compared exactly.
    _create(db_url, kind=PROJECTED, account="anna", name="GROCERIES RUN")
    with session_scope(database_url=db_url) as s:
        assert repository.count(s, PROJECTED) == 2
        assert repository.count(s, ACTUAL) == 0


def test_projected_update_allows_self_match(db_url):
    created = _create(db_url, kind=PROJECTED)
    with session_scope(database_url=db_url) as s:
        updated = transactions.update_transaction(
            s, created.id, tx_payload(status="planned"), kind=PROJECTED
        )
    assert updated.status == "planned"


def test_list_get_and_delete(db_url):
    _create(db_url)
    _create(db_url, name="Fuel", amount=Decimal("30.00"), account="josh", payment_method="Amex")
    _create(
        db_url,
        name="Rent",
        amount=Decimal("1000.00"),
        account="joint",
        statement_period="NOVEMBER2025",
    )

    with session_scope(database_url=db_url) as s:
        october = transactions.list_transactions(s, statement_period="october2025")
        assert october.count == 2
        assert october.total == Decimal("72.10")

        amex = transactions.list_transactions(s, payment_method="Amex")
        assert [t.name for t in amex.transactions] == ["Fuel"]

        # Actual rows match account exactly.
        assert transactions.list_transactions(s, account="JOSH").count == 0

        fuel_id = amex.transactions[0].id
        assert transactions.delete_transaction(s, fuel_id) is True
        assert transactions.delete_transaction(s, fuel_id) is False
        with pytest.raises(NotFoundError):
            transactions.get_transaction(s, fuel_id)

        assert transactions.delete_all_transactions(s) == 2
        assert transactions.list_transactions(s).count == 0


def test_projected_list_matches_account_case_insensitively(db_url):
    _create(db_url, kind=PROJECTED, account="Anna")
    with session_scope(database_url=db_url) as s:
        assert transactions.list_transactions(s, kind=PROJECTED, account="ANNA").count == 1
