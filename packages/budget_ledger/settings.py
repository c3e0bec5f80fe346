"""Runtime options for the split & aggregation engine.

Values come from explicit arguments first, then environment variables (the CLI
loads ``.env`` before reading them):

- ``BUDGET_LEDGER_SPLITTING_ACCOUNTS``: comma-separated accounts that absorb
  half of every joint charge in payment summaries.
- ``BUDGET_LEDGER_JOINT_ACCOUNT``: the joint pseudo-account literal.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field

DEFAULT_JOINT_ACCOUNT = "joint"
DEFAULT_SPLIT_NAME_PREFIX = "[split] "


def parse_account_list(raw: str | Iterable[str] | None) -> frozenset[str]:
    """Return trimmed, lower-cased, non-empty account names."""

    if raw is None:
        return frozenset()
    items = raw.split(",") if isinstance(raw, str) else raw
    return frozenset(s.strip().lower() for s in items if s and s.strip())


@dataclass(frozen=True, slots=True)
class LedgerSettings:
    splitting_accounts: frozenset[str] = field(default_factory=frozenset)
    joint_account: str = DEFAULT_JOINT_ACCOUNT
    split_name_prefix: str = DEFAULT_SPLIT_NAME_PREFIX

    def __post_init__(self) -> None:
        # Accept any iterable of names; store the normalized frozenset.
        object.__setattr__(
            self, "splitting_accounts", parse_account_list(self.splitting_accounts)
        )
        if not self.joint_account or not self.joint_account.strip():
            raise ValueError("joint_account must be non-empty")

    def is_splitting(self, account: str | None) -> bool:
        return (account or "").strip().lower() in self.splitting_accounts

    @classmethod
    def from_env(
        cls,
        *,
        splitting_accounts: str | Iterable[str] | None = None,
        joint_account: str | None = None,
    ) -> LedgerSettings:
        """Build settings, preferring explicit values over the environment."""

        if splitting_accounts is None:
            splitting_accounts = os.getenv("BUDGET_LEDGER_SPLITTING_ACCOUNTS")
        joint = joint_account or os.getenv("BUDGET_LEDGER_JOINT_ACCOUNT") or DEFAULT_JOINT_ACCOUNT
        return cls(
            splitting_accounts=parse_account_list(splitting_accounts),
            joint_account=joint.strip(),
        )


__all__ = [
    "DEFAULT_JOINT_ACCOUNT",
    "DEFAULT_SPLIT_NAME_PREFIX",
    "LedgerSettings",
    "parse_account_list",
]
