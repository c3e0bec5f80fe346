"""DB helpers for tests: bootstrap a temporary SQLite DB and seed ledger rows."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from db import Base
from db.client import get_engine, session_scope
from sqlalchemy import text as sql_text

from budget_ledger.dedup import ACTUAL, TransactionKind
from budget_ledger.hashing import compute_row_hash


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    assert_schema_in_sync(url)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def tx_payload(**overrides: Any) -> dict[str, Any]:
    """A valid transaction payload; keyword overrides replace single fields."""

    base: dict[str, Any] = {
        "name": "Groceries run",
        "amount": Decimal("42.10"),
        "category": "Groceries",
        "criticality": "Essential",
        "transaction_date": date(2025, 10, 3),
        "account": "anna",
        "status": "posted",
        "payment_method": "Visa",
        "statement_period": "OCTOBER2025",
    }
    base.update(overrides)
    return base


def seed_transactions(
    *,
    database_url: str,
    rows: Iterable[Mapping[str, Any]],
    kind: TransactionKind = ACTUAL,
) -> None:
    """Insert rows directly (bypassing dedup) for read-side tests."""

    with session_scope(database_url=database_url) as session:
        for data in rows:
            values = tx_payload(**data)
            values.setdefault("created_time", datetime.now(UTC))
            row = kind.model(**values)
            if kind.strategy.stores_hash:
                row.row_hash = compute_row_hash(row)
            session.add(row)


def assert_schema_in_sync(database_url: str) -> None:
    """Quick sanity check: ORM column sets match the SQLite tables."""

    with session_scope(database_url=database_url) as session:
        for table in Base.metadata.sorted_tables:
            expected = {c.name for c in table.columns}
            rows = session.execute(sql_text(f"PRAGMA table_info('{table.name}')")).fetchall()
            got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
            assert expected == got, f"{table.name} schema drift: expected={expected}, got={got}"
