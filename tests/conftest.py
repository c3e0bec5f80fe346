"""Pytest configuration for test isolation.

``db.client`` keeps one process-wide engine bound to the first URL it sees.
Each test bootstraps its own SQLite file, so the engine is reset around every
test. Ledger options read from the environment are cleared so a developer's
``.env`` or shell never changes split behavior under test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import reset_engine

from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_engine(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for var in (
        "DATABASE_URL",
        "BUDGET_LEDGER_SPLITTING_ACCOUNTS",
        "BUDGET_LEDGER_JOINT_ACCOUNT",
        "BUDGET_LEDGER_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger.db")
