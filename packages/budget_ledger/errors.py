"""Error taxonomy for ledger operations.

Callers (HTTP layer, CLI) map these onto their own status codes:

- ``ValidationError``: malformed input (bad statement period, missing field,
  null payload). Never retried.
- ``DuplicateError``: natural-key collision on create/update. Retrying with the
  same input reproduces the conflict.
- ``NotFoundError``: no row for the requested id.
- ``StorageError``: unexpected persistence failure; already logged by the
  operation that raised it.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(LedgerError):
    """Raised when input validation fails."""


class DuplicateError(LedgerError):
    """Raised when a write would collide with an existing natural key."""


class NotFoundError(LedgerError):
    """Raised when a row is not found by id."""


class StorageError(LedgerError):
    """Raised when the store fails for reasons other than a known conflict."""


__all__ = [
    "LedgerError",
    "ValidationError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
]
