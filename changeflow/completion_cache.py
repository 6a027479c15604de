"""Short-lived cache of item IDs for completion suggestions.

Tab completion can fire several queries a second; each query kind keeps
its last result for a short TTL and recomputes it lazily once expired.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from .config import COMPLETION_CACHE_TTL_MS
from .workspace import Workspace

T = TypeVar("T")

CHANGES_KEY = "changes"
SPECS_KEY = "specs"


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    """Cached data with the clock reading it was stored at (seconds)."""

    data: T
    timestamp: float


class CompletionProvider:
    """Provide change and spec IDs for completion with a TTL cache."""

    def __init__(
        self,
        cache_ttl_ms: int = COMPLETION_CACHE_TTL_MS,
        project_root: Optional[Path | str] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cache_ttl = cache_ttl_ms / 1000.0
        self.workspace = Workspace(project_root or Path.cwd())
        self._clock = clock
        self._cache: Dict[str, CacheEntry[List[str]]] = {}
        self._loaders: Dict[str, Callable[[], List[str]]] = {
            CHANGES_KEY: self.workspace.list_change_ids,
            SPECS_KEY: self.workspace.list_spec_ids,
        }

    def _is_valid(self, entry: Optional[CacheEntry[Any]], now: float) -> bool:
        return entry is not None and now - entry.timestamp < self.cache_ttl

    def _get(self, key: str) -> List[str]:
        now = self._clock()
        entry = self._cache.get(key)
        if self._is_valid(entry, now):
            return entry.data

        data = self._loaders[key]()
        self._cache[key] = CacheEntry(data=data, timestamp=now)
        return data

    def get_change_ids(self) -> List[str]:
        """Active change IDs, cached for the TTL."""
        return self._get(CHANGES_KEY)

    def get_spec_ids(self) -> List[str]:
        """Spec IDs, cached for the TTL."""
        return self._get(SPECS_KEY)

    def get_all_ids(self) -> Dict[str, List[str]]:
        return {"change_ids": self.get_change_ids(), "spec_ids": self.get_spec_ids()}

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> Dict[str, Dict[str, Any]]:
        """Validity and age (seconds) of each cache slot, for debugging."""
        now = self._clock()
        stats: Dict[str, Dict[str, Any]] = {}
        for key in self._loaders:
            entry = self._cache.get(key)
            stats[key] = {
                "valid": self._is_valid(entry, now),
                "age": now - entry.timestamp if entry else None,
            }
        return stats
