"""Thread-safe in-memory cache of (tag, module) to tag provider id."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping

logger = logging.getLogger(__name__)

TagKey = tuple[str, str]
TagRow = tuple[str, str, int]
InsertTagProvider = Callable[[str, str, str, "str | None", "str | None", "str | None"], int]


def _rows_to_map(rows: Iterable[TagRow]) -> dict[TagKey, int]:
    return {(tag, module): tag_id for tag, module, tag_id in rows}


class TagCache:
    """Maps (tag, module) pairs to tag provider ids; safe to share between threads."""

    def __init__(self, entries: Mapping[TagKey, int] | None = None) -> None:
        self._lock = threading.Lock()
        self._cache: dict[TagKey, int] = dict(entries or {})

    @classmethod
    def load(cls, rows: Iterable[TagRow]) -> TagCache:
        """Build a cache from (tag, module, id) rows of the tag_providers table."""
        cache = cls(_rows_to_map(rows))
        logger.info("TagCache loaded %d tag providers from database", len(cache))
        return cache

    def upsert_tag(
        self,
        tag: str,
        module: str,
        prefix: str,
        repository: str | None,
        description: str | None,
        category: str | None,
        insert: InsertTagProvider,
    ) -> int:
        """Return the cached id, or store the provider with insert and cache the id it returns."""
        key = (tag, module)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached
        tag_id = insert(tag, module, prefix, repository, description, category)
        with self._lock:
            self._cache[key] = tag_id
        return tag_id

    def get_tag_id(self, tag: str, module: str) -> int | None:
        """Look up a tag id without touching the database."""
        with self._lock:
            return self._cache.get((tag, module))

    def refresh(self, rows: Iterable[TagRow]) -> None:
        """Replace the cache contents with the given (tag, module, id) rows."""
        new_map = _rows_to_map(rows)
        with self._lock:
            self._cache = new_map
        logger.info("TagCache refreshed: %d tag providers", len(self))

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def is_empty(self) -> bool:
        return len(self) == 0