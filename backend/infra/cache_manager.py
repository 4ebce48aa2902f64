"""Process-wide TTL cache for computed admin views.

Entries are grouped by prefix; ``invalidate_cache(prefix)`` drops every entry
of a view so the next read recomputes it from the store.
"""

import copy
import os
import time
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

CacheEntry = Tuple[float, object]

ADMIN_VIEW_PREFIX = "admin"
ADMIN_VIEW_CACHE_TTL = int(os.environ.get("ADMIN_VIEW_CACHE_TTL", "120"))

_cache_storage: Dict[str, CacheEntry] = {}
_cache_lock = Lock()
_time_provider: Callable[[], float] = time.time


def build_cache_key(prefix: str, key_parts: Tuple) -> str:
    key_str = "::".join(str(part) for part in key_parts)
    return f"{prefix}::{key_str}"


def cache_get(prefix: str, key_parts: Tuple) -> Optional[object]:
    key = build_cache_key(prefix, key_parts)
    with _cache_lock:
        entry = _cache_storage.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if expires_at <= _time_provider():
            del _cache_storage[key]
            return None
        return copy.deepcopy(value)


def cache_set(prefix: str, key_parts: Tuple, value: object, ttl: int) -> None:
    key = build_cache_key(prefix, key_parts)
    with _cache_lock:
        _cache_storage[key] = (_time_provider() + ttl, copy.deepcopy(value))


def invalidate_cache(prefix: str) -> None:
    key_prefix = prefix + "::"
    with _cache_lock:
        for key in [key for key in _cache_storage if key.startswith(key_prefix)]:
            del _cache_storage[key]


def reset_cache() -> None:
    with _cache_lock:
        _cache_storage.clear()


def cache_health() -> bool:
    acquired = _cache_lock.acquire(timeout=1)
    if acquired:
        _cache_lock.release()
    return acquired


def set_time_provider(func: Callable[[], float]) -> None:
    """Override time provider (used in tests)."""
    global _time_provider
    _time_provider = func
