"""Key/value store backing UI state (``local_cache`` table).

Entries are opaque strings keyed by ``cache_key``. Saving an existing key
replaces its value and bumps ``updated_at``.
"""

from __future__ import annotations

from datetime import UTC, datetime

from db.models.budget import LocalCache
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ValidationError
from .logging_setup import bind, get_logger
from .models import CacheEntryView, RequestContext

_MAX_KEY_LENGTH = 128

_logger = get_logger("budget_ledger.cache")


def _validate_key(cache_key: str | None) -> str:
    if cache_key is None or not cache_key.strip():
        raise ValidationError("cache_key is required", {"cache_key": cache_key})
    key = cache_key.strip()
    if len(key) > _MAX_KEY_LENGTH:
        raise ValidationError(
            f"cache_key must be at most {_MAX_KEY_LENGTH} characters", {"cache_key": key}
        )
    return key


def _find(session: Session, key: str) -> LocalCache | None:
    return session.execute(
        select(LocalCache).where(LocalCache.cache_key == key)
    ).scalar_one_or_none()


def list_cache_entries(session: Session) -> list[CacheEntryView]:
    rows = session.execute(select(LocalCache).order_by(LocalCache.cache_key)).scalars().all()
    return [CacheEntryView.model_validate(r) for r in rows]


def get_cache_entry(
    session: Session, cache_key: str, *, context: RequestContext | None = None
) -> CacheEntryView | None:
    """Return the entry for ``cache_key`` or ``None`` when absent."""

    key = _validate_key(cache_key)
    row = _find(session, key)
    if row is None:
        bind(_logger, RequestContext.ensure(context)).warning("cache entry not found key=%s", key)
        return None
    return CacheEntryView.model_validate(row)


def save_cache_entry(
    session: Session,
    cache_key: str,
    cache_value: str | None,
    *,
    context: RequestContext | None = None,
) -> CacheEntryView:
    """Insert or replace the value stored under ``cache_key``."""

    log = bind(_logger, RequestContext.ensure(context))
    key = _validate_key(cache_key)
    now = datetime.now(UTC)

    row = _find(session, key)
    if row is None:
        row = LocalCache(cache_key=key, cache_value=cache_value, updated_at=now)
        try:
            with session.begin_nested():
                session.add(row)
        except IntegrityError:
            # Another writer inserted the key first; overwrite theirs.
            row = _find(session, key)
            if row is None:
                raise
            row.cache_value = cache_value
            row.updated_at = now
            session.flush()
    else:
        row.cache_value = cache_value
        row.updated_at = now
        session.flush()

    log.info("cache entry saved key=%s id=%s", key, row.id)
    return CacheEntryView.model_validate(row)


def delete_cache_entry(
    session: Session, cache_key: str, *, context: RequestContext | None = None
) -> bool:
    key = _validate_key(cache_key)
    row = _find(session, key)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    bind(_logger, RequestContext.ensure(context)).info("cache entry deleted key=%s", key)
    return True


__all__ = [
    "delete_cache_entry",
    "get_cache_entry",
    "list_cache_entries",
    "save_cache_entry",
]
