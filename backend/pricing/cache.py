from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable

from django.core.cache import cache
from django.db import transaction

from .conf import engine_setting

logger = logging.getLogger(__name__)

GENERATION_KEY = "quote_engine:rates:generation"
_MISSING = object()
_writes = threading.local()


def _generation() -> int:
    gen = cache.get(GENERATION_KEY)
    if gen is None:
        cache.add(GENERATION_KEY, 1, timeout=None)
        gen = cache.get(GENERATION_KEY) or 1
    return gen


def _bump() -> None:
    try:
        cache.incr(GENERATION_KEY)
    except ValueError:
        cache.set(GENERATION_KEY, 2, timeout=None)
    logger.debug("Rate cache generation bumped")


def _uncommitted_writes() -> bool:
    """True while this thread is inside a transaction that has written rate data."""
    if not transaction.get_connection().in_atomic_block:
        _writes.pending = False
        return False
    return getattr(_writes, "pending", False)


def invalidate_rate_cache() -> None:
    """
    Bump the generation so every cached FX/vendor lookup is ignored from now on.

    Inside a transaction the bump is repeated on commit, so other processes that
    cached the pre-commit rows drop them too. Until then this thread reads straight
    from the database.
    """
    _bump()
    if transaction.get_connection().in_atomic_block:
        _writes.pending = True
        transaction.on_commit(_bump)


def make_key(namespace: str, parts: Iterable[Any]) -> str:
    joined = ":".join("" if p is None else str(p) for p in parts)
    return f"quote_engine:{namespace}:g{_generation()}:{joined}"


def cached_lookup(namespace: str, parts: Iterable[Any], compute: Callable[[], Any]) -> Any:
    """
    Serve a read-only lookup from the cache.

    `None` results are cached too, so a missing rate is not re-queried on every line.
    Lookups that could see uncommitted rate rows are never cached.
    """
    if _uncommitted_writes():
        return compute()
    key = make_key(namespace, parts)
    hit = cache.get(key, _MISSING)
    if hit is not _MISSING:
        return hit
    value = compute()
    cache.set(key, value, timeout=engine_setting("RATE_CACHE_TIMEOUT"))
    return value
