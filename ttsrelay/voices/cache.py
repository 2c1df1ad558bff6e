"""Thread-safe in-memory cache for voice-model search results.

Responsibilities:
- Reuse search results for repeated identical search terms.
- Index every cached model by token for direct lookups.
- Optionally bound entries by age and count for long-running processes.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
import threading
from time import monotonic
from typing import Callable

from ..models.datatypes import VoiceModel


@dataclass(slots=True)
class _CacheEntry:
    models: tuple[VoiceModel, ...]
    stored_at: float


@dataclass(slots=True)
class ModelCache:
    """Search-term keyed model cache with hit/miss telemetry.

    Attributes:
        ttl_seconds: Optional entry lifetime; `None` keeps entries until cleared.
        max_entries: Optional bound on cached search terms (oldest evicted first).
        clock: Injectable monotonic clock.
    """

    ttl_seconds: float | None = None
    max_entries: int | None = None
    clock: Callable[[], float] = monotonic
    hits: int = 0
    misses: int = 0
    _entries: OrderedDict[str, _CacheEntry] = field(default_factory=OrderedDict)
    _tokens: dict[str, VoiceModel] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get(self, search_term: str) -> tuple[VoiceModel, ...] | None:
        """Return cached models for an exact search term and update counters."""

        with self._lock:
            entry = self._entries.get(search_term)
            if entry is not None and self._is_expired(entry):
                self._drop(search_term)
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry.models

    def set(self, search_term: str, models: tuple[VoiceModel, ...]) -> None:
        """Store search results and index their tokens."""

        with self._lock:
            if search_term in self._entries:
                self._drop(search_term)
            self._entries[search_term] = _CacheEntry(models=models, stored_at=self.clock())
            for model in models:
                self._tokens[model.token] = model
            while self.max_entries is not None and len(self._entries) > self.max_entries:
                oldest_term = next(iter(self._entries))
                self._drop(oldest_term)

    def get_by_token(self, token: str) -> VoiceModel | None:
        """Return a cached model by token, or `None` when not indexed."""

        with self._lock:
            return self._tokens.get(token)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tokens.clear()

    def hit_rate(self) -> float:
        """Return cache hit rate for the current cache lifecycle."""

        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / float(total)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: _CacheEntry) -> bool:
        if self.ttl_seconds is None:
            return False
        return self.clock() - entry.stored_at >= self.ttl_seconds

    def _drop(self, search_term: str) -> None:
        """Remove one entry and the token index rows no other entry still holds."""

        entry = self._entries.pop(search_term, None)
        if entry is None:
            return
        still_cached = {
            model.token for other in self._entries.values() for model in other.models
        }
        for model in entry.models:
            if model.token not in still_cached:
                self._tokens.pop(model.token, None)
