from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from budget_ledger import api
from budget_ledger.dedup import PROJECTED
from tests.helpers.db import assert_schema_in_sync, tx_payload

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "libs" / "db" / "alembic"


def _config() -> Config:
    # No ini file: keeps alembic's fileConfig from reconfiguring test logging.
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    return cfg


@pytest.fixture
def migrated_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """A SQLite file built by ``alembic upgrade head`` instead of ``create_all``."""

    url = f"sqlite+pysqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", url)
    command.upgrade(_config(), "head")
    return url


def test_migrated_schema_matches_models(migrated_url):
    assert_schema_in_sync(migrated_url)


def test_migrated_schema_accepts_writes(migrated_url):
    created = api.create_transaction(tx_payload(), database_url=migrated_url)
    projected = api.create_transaction(tx_payload(), kind=PROJECTED, database_url=migrated_url)
    entry = api.save_cache_entry("ui.filters", "{}", database_url=migrated_url)

    assert created.id is not None and projected.id is not None
    assert entry.cache_key == "ui.filters"
    [period] = api.list_statement_periods(database_url=migrated_url)
    assert period.id is not None and period.period_name == "OCTOBER2025"


def test_downgrade_drops_every_table(migrated_url):
    command.downgrade(_config(), "base")

    engine = create_engine(migrated_url)
    try:
        assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
