"""
Result Cache.

One slot per model id holding the last successful output. Every write
overwrites the slot (last-good-wins, no history, no TTL). Freshness is
available through get_cache_entry().
"""

from datetime import datetime, timezone
from typing import Any, Optional

from inference_guard.models.domain import CacheEntry
from inference_guard.resilience.locks import KeyedLock


class ResultCache:
    """Last-known-good outputs keyed by model id."""

    def __init__(self, locks: Optional[KeyedLock] = None) -> None:
        self._locks = locks if locks is not None else KeyedLock()
        self._entries: dict[str, CacheEntry] = {}

    def cache_result(self, model_id: str, value: Any) -> CacheEntry:
        """Overwrite the model's slot with value."""
        entry = CacheEntry(value=value, cached_at=datetime.now(timezone.utc))
        with self._locks.hold(model_id):
            self._entries[model_id] = entry
        return entry

    def get_cached_result(self, model_id: str) -> Optional[Any]:
        """Return the cached value (not the entry), or None."""
        entry = self.get_cache_entry(model_id)
        return entry.value if entry is not None else None

    def get_cache_entry(self, model_id: str) -> Optional[CacheEntry]:
        """Return the cache entry including cached_at, or None."""
        with self._locks.hold(model_id):
            return self._entries.get(model_id)

    def clear(self, model_id: str) -> None:
        with self._locks.hold(model_id):
            self._entries.pop(model_id, None)

    def clear_all(self) -> None:
        for model_id in list(self._entries):
            self.clear(model_id)
