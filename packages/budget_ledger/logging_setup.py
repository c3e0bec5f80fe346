"""Logging configuration for the ``budget_ledger`` package.

Entrypoints (the CLI, an HTTP host) call :func:`configure_logging` once.
Library modules only ever do::

    logger = get_logger("budget_ledger.<module>")
    log = bind(logger, context)
    log.info("created id=%s", row.id)

``bind`` returns an adapter that appends ``transaction_id=<id>`` to every
message, so correlation ids travel with the explicit ``RequestContext`` rather
than through thread-local or global state.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import MutableMapping
from typing import IO, TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import RequestContext

_PKG_LOGGER_NAME = "budget_ledger"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv("BUDGET_LEDGER_LOG_LEVEL") or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Attach one ``StreamHandler`` to the package logger; later calls are no-ops.

    ``level`` falls back to ``BUDGET_LEDGER_LOG_LEVEL`` and then INFO. ``stream``
    defaults to ``sys.stderr`` so command output on stdout stays clean.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, keeping the package silent until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


class ContextAdapter(logging.LoggerAdapter):
    """Suffix each record with the request's ``transaction_id``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        return f"{msg} transaction_id={self.extra['transaction_id']}", kwargs


def bind(logger: logging.Logger, context: RequestContext) -> ContextAdapter:
    return ContextAdapter(logger, {"transaction_id": context.transaction_id})


__all__ = ["ContextAdapter", "bind", "configure_logging", "get_logger"]
