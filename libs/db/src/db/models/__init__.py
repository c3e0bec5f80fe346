"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the budgeting models used by ``budget_ledger``.
"""

from .budget import (
    Base,
    BudgetTransaction,
    LocalCache,
    ProjectedTransaction,
    StatementPeriod,
)

__all__ = [
    "Base",
    "BudgetTransaction",
    "ProjectedTransaction",
    "StatementPeriod",
    "LocalCache",
]
