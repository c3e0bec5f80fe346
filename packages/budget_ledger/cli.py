# ruff: noqa: I001
"""CLI for the ``budget_ledger`` package.

Command handlers (``cmd_*``) return a process exit code and print results as
JSON on stdout; errors go to stderr. The Typer app wraps them and loads a
local ``.env`` (without overriding the environment) before any command runs,
so ``DATABASE_URL`` and the ``BUDGET_LEDGER_*`` options can live there.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import BaseModel

from .errors import LedgerError
from .logging_setup import configure_logging


def _emit(result: BaseModel | list[BaseModel]) -> None:
    if isinstance(result, list):
        payload: Any = [r.model_dump(mode="json") for r in result]
    else:
        payload = result.model_dump(mode="json")
    print(json.dumps(payload, indent=2))


def _fail(err: LedgerError) -> int:
    print(f"Error: {err.message}", file=sys.stderr)
    for key, value in err.details.items():
        print(f"  {key}: {value}", file=sys.stderr)
    return 1


# ---- Command handlers --------------------------------------------------------


def cmd_import_csv(
    csv_path: str,
    statement_period: str,
    *,
    projected: bool = False,
    database_url: str | None = None,
) -> int:
    """Import a budget CSV export into ``statement_period``.

    Exit code is 0 when the batch ran, even if some rows were reported as
    errors; those are listed in the JSON result.
    """

    from .api import import_csv
    from .dedup import kind_for

    try:
        with open(csv_path, encoding="utf-8", newline="") as f:
            result = import_csv(
                f, statement_period, kind=kind_for(projected), database_url=database_url
            )
    except OSError as e:
        print(f"Error: failed to read CSV '{csv_path}': {e}", file=sys.stderr)
        return 1
    except LedgerError as e:
        return _fail(e)

    _emit(result)
    return 0


def cmd_account_view(
    account: str,
    *,
    statement_period: str | None = None,
    category: str | None = None,
    criticality: str | None = None,
    payment_method: str | None = None,
    projected: bool = False,
    database_url: str | None = None,
) -> int:
    from .api import get_account_view
    from .dedup import kind_for
    from .settings import LedgerSettings

    try:
        view = get_account_view(
            account,
            statement_period=statement_period,
            category=category,
            criticality=criticality,
            payment_method=payment_method,
            kind=kind_for(projected),
            settings=LedgerSettings.from_env(),
            database_url=database_url,
        )
    except LedgerError as e:
        return _fail(e)
    _emit(view)
    return 0


def cmd_payment_summary(
    accounts: str,
    statement_period: str,
    *,
    splitting_accounts: str | None = None,
    database_url: str | None = None,
) -> int:
    """Print what each account owes per payment method.

    ``accounts`` and ``splitting_accounts`` are comma-separated. When
    ``splitting_accounts`` is omitted, ``BUDGET_LEDGER_SPLITTING_ACCOUNTS``
    applies.
    """

    from .api import get_payment_summary
    from .settings import LedgerSettings

    names = [a for a in accounts.split(",") if a.strip()]
    if not names:
        print("Error: --accounts must name at least one account.", file=sys.stderr)
        return 1
    try:
        summaries = get_payment_summary(
            names,
            statement_period,
            settings=LedgerSettings.from_env(splitting_accounts=splitting_accounts),
            database_url=database_url,
        )
    except LedgerError as e:
        return _fail(e)
    _emit(summaries)
    return 0


def cmd_list_periods(*, database_url: str | None = None) -> int:
    from .api import list_statement_periods

    try:
        periods = list_statement_periods(database_url=database_url)
    except LedgerError as e:
        return _fail(e)
    _emit(periods)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Budget ledger: import statement CSVs, view account splits and payment "
        "summaries. Loads DATABASE_URL from a local .env before running."
    ),
)


def _exit(code: int) -> None:
    if code != 0:
        raise typer.Exit(code)


@app.command("import-csv")
def import_csv_cmd(
    csv_path: Annotated[
        Path, typer.Option("--csv-path", help="Path to the budget CSV export.", dir_okay=False)
    ],
    statement_period: Annotated[
        str, typer.Option("--statement-period", help="Statement period, e.g. OCTOBER2025.")
    ],
    *,
    projected: Annotated[
        bool, typer.Option("--projected", help="Import as projected transactions.")
    ] = False,
    database_url: Annotated[
        str | None,
        typer.Option("--database-url", help="Override DATABASE_URL (falls back to env var)."),
    ] = None,
) -> None:
    """Bulk-import a CSV, skipping duplicates and reporting row errors."""

    _exit(
        cmd_import_csv(
            str(csv_path), statement_period, projected=projected, database_url=database_url
        )
    )


@app.command("account-view")
def account_view_cmd(
    account: Annotated[str, typer.Option("--account", help="Account to report on.")],
    *,
    statement_period: Annotated[
        str | None, typer.Option("--statement-period", help="Filter by statement period.")
    ] = None,
    category: Annotated[str | None, typer.Option("--category")] = None,
    criticality: Annotated[str | None, typer.Option("--criticality")] = None,
    payment_method: Annotated[str | None, typer.Option("--payment-method")] = None,
    projected: Annotated[
        bool, typer.Option("--projected", help="Report on projected transactions.")
    ] = False,
    database_url: Annotated[
        str | None,
        typer.Option("--database-url", help="Override DATABASE_URL (falls back to env var)."),
    ] = None,
) -> None:
    """Show an account's own transactions and its half of joint ones."""

    _exit(
        cmd_account_view(
            account,
            statement_period=statement_period,
            category=category,
            criticality=criticality,
            payment_method=payment_method,
            projected=projected,
            database_url=database_url,
        )
    )


@app.command("payment-summary")
def payment_summary_cmd(
    accounts: Annotated[
        str, typer.Option("--accounts", help="Comma-separated accounts to summarize.")
    ],
    statement_period: Annotated[
        str, typer.Option("--statement-period", help="Statement period, e.g. OCTOBER2025.")
    ],
    *,
    splitting_accounts: Annotated[
        str | None,
        typer.Option(
            "--splitting-accounts",
            help=(
                "Comma-separated accounts that absorb half of joint charges "
                "(defaults to BUDGET_LEDGER_SPLITTING_ACCOUNTS)."
            ),
        ),
    ] = None,
    database_url: Annotated[
        str | None,
        typer.Option("--database-url", help="Override DATABASE_URL (falls back to env var)."),
    ] = None,
) -> None:
    """Show how much each account owes per payment method."""

    _exit(
        cmd_payment_summary(
            accounts,
            statement_period,
            splitting_accounts=splitting_accounts,
            database_url=database_url,
        )
    )


@app.command("list-periods")
def list_periods_cmd(
    database_url: Annotated[
        str | None,
        typer.Option("--database-url", help="Override DATABASE_URL (falls back to env var)."),
    ] = None,
) -> None:
    """List statement periods, newest first."""

    _exit(cmd_list_periods(database_url=database_url))


@app.callback()
def _root() -> None:
    """Load ``.env`` from the current directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()
