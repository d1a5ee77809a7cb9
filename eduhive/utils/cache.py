"""
In-memory TTL cache for feed pages and notification counters.

One instance is created with the app and handed to request handlers through
the `get_cache` dependency.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from fastapi import Request


class TTLCache:
    def __init__(self, default_ttl: int = 180):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._default_ttl = default_ttl

    def _is_expired(self, cache_entry: Dict[str, Any]) -> bool:
        return datetime.utcnow() >= cache_entry["expires_at"]

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None when missing or expired"""
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            del self._cache[key]
            return None
        return entry["value"]

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        seconds = self._default_ttl if ttl is None else ttl
        self._cache[key] = {
            "value": value,
            "expires_at": datetime.utcnow() + timedelta(seconds=seconds)
        }

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> None:
        for key in [k for k in self._cache if k.startswith(prefix)]:
            del self._cache[key]

    def clear(self) -> None:
        self._cache.clear()

    def cleanup_expired(self) -> None:
        expired_keys = [key for key, entry in self._cache.items() if self._is_expired(entry)]
        for key in expired_keys:
            del self._cache[key]

    def __len__(self) -> int:
        return len(self._cache)


def feed_key(user_id: str, offset: int, limit: int) -> str:
    return f"feed:{user_id}:{offset}:{limit}"


def feed_prefix(user_id: str) -> str:
    return f"feed:{user_id}:"


def unread_count_key(user_id: str) -> str:
    return f"unread:{user_id}"


def get_cache(request: Request) -> TTLCache:
    """FastAPI dependency returning the app's cache"""
    return request.app.state.cache


async def start_cache_cleanup(cache: TTLCache, interval_seconds: int = 60):
    """Background task to clean up expired cache entries"""
    while True:
        await asyncio.sleep(interval_seconds)
        cache.cleanup_expired()
