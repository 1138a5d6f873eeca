"""In-memory, content-addressed cache for correction results."""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..errors import CacheImportError
from ..logging import get_logger

DEFAULT_MAX_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_AGE_MS = 7 * 24 * 60 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """Stored correction plus bookkeeping used for expiry and eviction."""

    value: str
    timestamp: int
    hits: int
    size: int


@dataclass
class CacheStats:
    size: int
    entries: int
    hits: int
    misses: int
    hit_rate: float
    oldest_entry: int
    newest_entry: int


class CorrectionCache:
    """Maps a digest of (text, options) to corrected text.

    Entries expire after ``max_age_ms``. When an insert would push the total
    stored size above ``max_size`` bytes, entries with the lowest hits-per-age
    score are evicted first. All mutations are serialised by a lock so the
    cache can be shared by concurrent corrections.
    """

    def __init__(
        self,
        *,
        max_size: int = DEFAULT_MAX_SIZE,
        max_age_ms: int = DEFAULT_MAX_AGE_MS,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.max_size = max_size
        self.max_age_ms = max_age_ms
        self._clock = clock or _now_ms
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()
        self.logger = get_logger("cache")

    def get(self, key: str) -> Optional[str]:
        digest = self.hash_key(key)
        with self._lock:
            entry = self._entries.get(digest)
            if entry is None:
                self._misses += 1
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[digest]
                self._misses += 1
                return None
            entry.hits += 1
            self._hits += 1
            return entry.value

    def set(self, key: str, value: str) -> None:
        digest = self.hash_key(key)
        size = len(value.encode("utf-8"))
        if size > self.max_size:
            self.logger.debug("Value of %d bytes exceeds cache capacity; not stored", size)
            return
        with self._lock:
            # A replaced entry must not count towards the space check.
            self._entries.pop(digest, None)
            self._ensure_space(size)
            self._entries[digest] = CacheEntry(
                value=value, timestamp=self._clock(), hits=0, size=size
            )

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(self.hash_key(key), None) is not None

    def has(self, key: str) -> bool:
        digest = self.hash_key(key)
        with self._lock:
            entry = self._entries.get(digest)
            if entry is None:
                return False
            if self._is_expired(entry, self._clock()):
                del self._entries[digest]
                return False
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [
                digest
                for digest, entry in self._entries.items()
                if self._is_expired(entry, now)
            ]
            for digest in expired:
                del self._entries[digest]
        if expired:
            self.logger.debug("Removed %d expired cache entries", len(expired))
        return len(expired)

    @property
    def total_size(self) -> int:
        with self._lock:
            return sum(entry.size for entry in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            entries = list(self._entries.values())
            accesses = self._hits + self._misses
            timestamps = [entry.timestamp for entry in entries]
            return CacheStats(
                size=sum(entry.size for entry in entries),
                entries=len(entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / accesses if accesses else 0.0,
                oldest_entry=min(timestamps, default=now),
                newest_entry=max(timestamps, default=0),
            )

    def top_entries(self, limit: int = 10) -> List[Tuple[str, int]]:
        """Return (short digest, hits) pairs for the most requested entries."""
        with self._lock:
            ranked = sorted(
                self._entries.items(), key=lambda item: item[1].hits, reverse=True
            )
        return [(digest[:16], entry.hits) for digest, entry in ranked[:limit]]

    def optimize(self, max_entries: int = 1000) -> int:
        """Keep only the ``max_entries`` best-scoring entries."""
        now = self._clock()
        with self._lock:
            if len(self._entries) <= max_entries:
                return 0
            ranked = sorted(
                self._entries.items(),
                key=lambda item: self._score(item[1], now),
                reverse=True,
            )
            removed = len(ranked) - max_entries
            self._entries = dict(ranked[:max_entries])
        self.logger.debug("Cache optimisation dropped %d entries", removed)
        return removed

    def preload(self, entries: Iterable[Tuple[str, str]]) -> None:
        for key, value in entries:
            self.set(key, value)

    def configure(
        self, *, max_size: int | None = None, max_age_ms: int | None = None
    ) -> None:
        with self._lock:
            if max_size is not None:
                self.max_size = max_size
            if max_age_ms is not None:
                self.max_age_ms = max_age_ms

    def export(self) -> str:
        """Serialise entries and counters to a JSON document."""
        with self._lock:
            payload = {
                "cache": [[digest, asdict(entry)] for digest, entry in self._entries.items()],
                "stats": {"hits": self._hits, "misses": self._misses},
                "timestamp": self._clock(),
            }
        return json.dumps(payload)

    def import_(self, payload: str) -> bool:
        """Replace the cache with an exported payload; ``False`` leaves it untouched."""
        try:
            entries, hits, misses = _parse_export(payload)
        except CacheImportError as exc:
            self.logger.warning("Cache import rejected: %s", exc)
            return False
        with self._lock:
            self._entries = entries
            self._hits = hits
            self._misses = misses
        return True

    @staticmethod
    def hash_key(key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def _is_expired(self, entry: CacheEntry, now: int) -> bool:
        return now - entry.timestamp > self.max_age_ms

    @staticmethod
    def _score(entry: CacheEntry, now: int) -> float:
        return entry.hits / max(now - entry.timestamp, 1)

    def _ensure_space(self, required: int) -> None:
        current = sum(entry.size for entry in self._entries.values())
        if current + required <= self.max_size:
            return
        now = self._clock()
        ranked = sorted(self._entries.items(), key=lambda item: self._score(item[1], now))
        evicted = 0
        for digest, entry in ranked:
            if current + required <= self.max_size:
                break
            del self._entries[digest]
            current -= entry.size
            evicted += 1
        self.logger.debug("Evicted %d cache entries to free %d bytes", evicted, required)


def _parse_export(payload: str) -> Tuple[Dict[str, CacheEntry], int, int]:
    try:
        data = json.loads(payload)
    except (TypeError, json.JSONDecodeError) as exc:
        raise CacheImportError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise CacheImportError("payload must be a JSON object")
    raw_entries = data.get("cache")
    stats = data.get("stats")
    if not isinstance(raw_entries, list) or not isinstance(stats, dict):
        raise CacheImportError("payload must contain 'cache' and 'stats'")

    entries: Dict[str, CacheEntry] = {}
    for item in raw_entries:
        if not isinstance(item, list) or len(item) != 2:
            raise CacheImportError("cache items must be [key, entry] pairs")
        digest, raw = item
        if not isinstance(digest, str) or not isinstance(raw, dict):
            raise CacheImportError("cache item has an invalid key or entry")
        value = raw.get("value")
        numbers = [raw.get(name) for name in ("timestamp", "hits", "size")]
        if not isinstance(value, str) or not all(
            isinstance(number, int) and not isinstance(number, bool) for number in numbers
        ):
            raise CacheImportError(f"cache entry {digest[:16]} is malformed")
        timestamp, hits, size = numbers
        entries[digest] = CacheEntry(value=value, timestamp=timestamp, hits=hits, size=size)

    hits = stats.get("hits", 0)
    misses = stats.get("misses", 0)
    if not isinstance(hits, int) or not isinstance(misses, int):
        raise CacheImportError("stats counters must be integers")
    return entries, hits, misses


__all__ = [
    "CacheEntry",
    "CacheStats",
    "CorrectionCache",
    "DEFAULT_MAX_AGE_MS",
    "DEFAULT_MAX_SIZE",
]
