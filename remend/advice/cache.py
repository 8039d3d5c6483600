"""Advice deduplication cache (TTL + LRU bound, in-memory only).

Prevents repeated formatter calls for the same user, program and set of
logs. A new log or a corrected score changes the key, so stale advice is
never served for new data. Safe to share across threads.
"""

import hashlib
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from loguru import logger

from remend.plans.types import Advice


@dataclass
class _CacheEntry:
    advice: Advice
    stored_at: float


class AdviceCache:
    """Lock-protected advice cache.

    Args:
        ttl_seconds: Entry lifetime; an entry exactly ttl old is still valid
        max_entries: LRU bound; the least recently used entry is evicted first
        sweep_every: Sweep expired entries once per this many insertions
        clock: Time source in seconds (time.monotonic by default)
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 1000,
        sweep_every: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, max_entries)
        self.sweep_every = max(1, sweep_every)
        self._clock = clock
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._inserts = 0
        self._hits = 0
        self._misses = 0

    @staticmethod
    def generate_key(
        user_id: str,
        program_id: int,
        log_ids: Iterable[int],
        scores: Mapping[int, tuple[int, int]] | None = None,
    ) -> str:
        """Key from user, program and a hash of the (order-independent) log ids.

        When ``scores`` maps log ids to (pain, stiffness), the scores are
        hashed too, so correcting a log's scores in place changes the key.
        """
        parts = []
        for log_id in sorted(log_ids):
            if scores and log_id in scores:
                pain, stiffness = scores[log_id]
                parts.append(f"{log_id}:{pain}:{stiffness}")
            else:
                parts.append(str(log_id))
        log_hash = hashlib.sha256(",".join(parts).encode("utf-8")).hexdigest()[:16]
        return f"{user_id}_{program_id}_{log_hash}"

    def get(self, key: str) -> Advice | None:
        """Cached advice if present and not expired; expired entries are evicted."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._clock() - entry.stored_at > self.ttl_seconds:
                del self._entries[key]
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.advice

    def set(self, key: str, advice: Advice) -> None:
        with self._lock:
            self._entries[key] = _CacheEntry(advice=advice, stored_at=self._clock())
            self._entries.move_to_end(key)

            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Advice cache evicted LRU entry", key=evicted)

            self._inserts += 1
            if self._inserts % self.sweep_every == 0:
                self._sweep_locked()

    def cleanup(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        with self._lock:
            return self._sweep_locked()

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now - entry.stored_at > self.ttl_seconds]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Advice cache swept expired entries", removed=len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        with self._lock:
            return {
                "size": len(self._entries),
                "ttl_seconds": self.ttl_seconds,
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def advice_cache_from_settings() -> AdviceCache:
    from remend.config.settings import settings

    return AdviceCache(
        ttl_seconds=settings.advice_cache_ttl_seconds,
        max_entries=settings.advice_cache_max_entries,
        sweep_every=settings.advice_cache_sweep_every,
    )
