"""
TTL response cache with stale-while-revalidate and request coalescing.

Read modes:
- Plain (``get_or_fetch``): cached value while ``now < expires_at``,
  otherwise fetch, store and return.
- Stale-while-revalidate (``get_with_revalidate``), by entry age:
    fresh            age < stale_after          -> cached value, no fetch
    stale-but-valid  stale_after <= age < ttl   -> cached value + background refresh
    expired/absent   age >= ttl or no entry     -> wait for a fetch; on failure
                                                   fall back to stale data if any

At most one fetch per key is ever outstanding: concurrent readers of the same
key join the pending fetch task. Fetches run as tasks awaited through
``asyncio.shield``, so a caller that stops waiting does not cancel the fetch;
it still completes and populates the cache.
"""

import asyncio
import functools
import re
import threading
import time
from typing import Any, Awaitable, Callable, Optional, Pattern, TypeVar, Union

import structlog

from resilience_layer.cache.entry import CacheEntry, CacheStats
from resilience_layer.monitoring.metrics import cache_evictions_total, cache_lookups_total
from resilience_layer.models.timing import Clock, SleepFunc

T = TypeVar("T")

FetchFn = Callable[[], Awaitable[T]]

logger = structlog.get_logger(__name__)


class ResponseCache:
    """
    In-memory TTL cache keyed by endpoint/request key.

    The entry map and pending-fetch map are guarded by one lock that is never
    held across an await.

    Attributes:
        name: Label used in logs and stats
        default_ttl: Lifetime in seconds for entries stored without a ttl
        max_size: Maximum number of entries (oldest-created evicted first)
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        max_size: int = 100,
        *,
        name: str = "default",
        clock: Optional[Clock] = None,
        sleep_func: Optional[SleepFunc] = None,
    ):
        """
        Initialize response cache.

        Args:
            default_ttl: Entry lifetime in seconds
            max_size: Maximum entry count
            name: Cache label for logs and stats
            clock: Clock in seconds (default time.monotonic)
            sleep_func: Async sleep used by the periodic sweeper
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be > 0")
        if max_size < 1:
            raise ValueError("max_size must be >= 1")

        self.name = name
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock or time.monotonic
        self._sleep = sleep_func or asyncio.sleep
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Plain store operations
    # ------------------------------------------------------------------

    def _store_locked(self, key: str, value: Any, ttl: float) -> None:
        now = self._clock()
        if key not in self._entries and len(self._entries) >= self.max_size:
            oldest_key = min(self._entries, key=lambda k: self._entries[k].created_at)
            del self._entries[oldest_key]
            cache_evictions_total.labels(reason="capacity").inc()
            logger.debug("Evicted oldest cache entry", cache=self.name, key=oldest_key)
        self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return the cached value for ``key`` if it has not expired.

        Expired entries are dropped on read.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired(now):
                self._hits += 1
                return entry.value
            if entry is not None:
                del self._entries[key]
                cache_evictions_total.labels(reason="expired").inc()
            self._misses += 1
            return default

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds (default_ttl if None)."""
        with self._lock:
            self._store_locked(key, value, self.default_ttl if ttl is None else ttl)

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """
        Remove every entry and reset hit/miss counters.

        In-flight fetches are left running; they still populate the cache
        when they settle.
        """
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Cache cleared", cache=self.name)

    def clear_expired(self) -> int:
        """Remove entries whose expiry has passed. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            cache_evictions_total.labels(reason="expired").inc(len(expired))
        return len(expired)

    def invalidate(self, pattern: Union[str, Pattern[str]]) -> int:
        """
        Remove entries whose key matches ``pattern`` (regex search).

        Args:
            pattern: Regular expression string or compiled pattern

        Returns:
            Number of entries removed
        """
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        with self._lock:
            matched = [k for k in self._entries if regex.search(k)]
            for key in matched:
                del self._entries[key]
        if matched:
            cache_evictions_total.labels(reason="invalidated").inc(len(matched))
        logger.info(
            "Cache entries invalidated",
            cache=self.name,
            pattern=regex.pattern,
            removed=len(matched),
        )
        return len(matched)

    def stats(self) -> CacheStats:
        """Entry counts, pending fetches and hit rate."""
        now = self._clock()
        with self._lock:
            total = len(self._entries)
            valid = sum(1 for e in self._entries.values() if not e.is_expired(now))
            lookups = self._hits + self._misses
            return CacheStats(
                name=self.name,
                total_entries=total,
                valid_entries=valid,
                expired_entries=total - valid,
                pending_requests=len(self._pending),
                max_size=self.max_size,
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / lookups if lookups else 0.0,
            )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    # ------------------------------------------------------------------
    # Fetch coordination
    # ------------------------------------------------------------------

    async def _fetch_and_store(self, key: str, fetch_fn: FetchFn[T], ttl: float) -> T:
        try:
            value = await fetch_fn()
            self.set(key, value, ttl)
            return value
        finally:
            with self._lock:
                if self._pending.get(key) is asyncio.current_task():
                    del self._pending[key]

    def _on_fetch_done(self, key: str, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Cache fetch failed",
                cache=self.name,
                key=key,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def _ensure_fetch(
        self, key: str, fetch_fn: FetchFn[T], ttl: float
    ) -> tuple[asyncio.Task, bool]:
        """
        Return the pending fetch for ``key``, starting one if none exists.

        Returns:
            (task, created) where created is False when an existing fetch was joined
        """
        with self._lock:
            task = self._pending.get(key)
            if task is not None:
                return task, False
            task = asyncio.get_running_loop().create_task(
                self._fetch_and_store(key, fetch_fn, ttl)
            )
            self._pending[key] = task
        task.add_done_callback(functools.partial(self._on_fetch_done, key))
        return task, True

    # ------------------------------------------------------------------
    # Read-through operations
    # ------------------------------------------------------------------

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: FetchFn[T],
        ttl: Optional[float] = None,
    ) -> T:
        """
        Plain read-through: cached value until expiry, otherwise fetch.

        Args:
            key: Cache key
            fetch_fn: Zero-argument async callable producing a fresh value
            ttl: Lifetime for the stored value (default_ttl if None)

        Returns:
            Cached or freshly fetched value

        Raises:
            Exception: Whatever fetch_fn raised
        """
        ttl = self.default_ttl if ttl is None else ttl
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired(now):
                self._hits += 1
                cache_lookups_total.labels(mode="plain", result="fresh").inc()
                return entry.value
            self._misses += 1

        task, created = self._ensure_fetch(key, fetch_fn, ttl)
        cache_lookups_total.labels(mode="plain", result="miss" if created else "coalesced").inc()
        return await asyncio.shield(task)

    async def get_with_revalidate(
        self,
        key: str,
        fetch_fn: FetchFn[T],
        ttl: Optional[float] = None,
        stale_after: Optional[float] = None,
    ) -> T:
        """
        Stale-while-revalidate read.

        Args:
            key: Cache key
            fetch_fn: Zero-argument async callable producing a fresh value
            ttl: Entry lifetime (default_ttl if None)
            stale_after: Age from which a background refresh is triggered
                (ttl / 2 if None; capped at ttl)

        Returns:
            Fresh, stale-but-valid, freshly fetched, or (on fetch failure) stale value

        Raises:
            Exception: fetch_fn's error when no stale entry exists
        """
        ttl = self.default_ttl if ttl is None else ttl
        stale_after = ttl / 2 if stale_after is None else min(stale_after, ttl)
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            usable = entry is not None and entry.age(now) < ttl and not entry.is_expired(now)
            if usable:
                self._hits += 1
            else:
                self._misses += 1

        if usable:
            assert entry is not None
            if entry.age(now) < stale_after:
                cache_lookups_total.labels(mode="swr", result="fresh").inc()
                return entry.value

            _, created = self._ensure_fetch(key, fetch_fn, ttl)
            if created:
                logger.debug(
                    "Background refresh scheduled",
                    cache=self.name,
                    key=key,
                    age_seconds=round(entry.age(now), 3),
                )
            cache_lookups_total.labels(mode="swr", result="stale").inc()
            return entry.value

        task, created = self._ensure_fetch(key, fetch_fn, ttl)
        cache_lookups_total.labels(mode="swr", result="miss" if created else "coalesced").inc()
        try:
            return await asyncio.shield(task)
        except Exception:
            with self._lock:
                stale = self._entries.get(key)
            if stale is None:
                raise
            cache_lookups_total.labels(mode="swr", result="stale_fallback").inc()
            logger.warning(
                "Fetch failed, serving stale cache entry",
                cache=self.name,
                key=key,
                age_seconds=round(stale.age(self._clock()), 3),
            )
            return stale.value

    async def prefetch(
        self,
        key: str,
        fetch_fn: FetchFn[Any],
        ttl: Optional[float] = None,
    ) -> None:
        """
        Warm the cache for ``key``. Failures are logged, not raised.
        """
        ttl = self.default_ttl if ttl is None else ttl
        task, _ = self._ensure_fetch(key, fetch_fn, ttl)
        try:
            await asyncio.shield(task)
        except Exception as exc:
            logger.warning("Prefetch failed", cache=self.name, key=key, error=str(exc))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await self._sleep(interval)
            removed = self.clear_expired()
            if removed:
                logger.debug("Swept expired cache entries", cache=self.name, removed=removed)

    def start_sweeper(self, interval: float) -> None:
        """Start the periodic expired-entry sweep (idempotent)."""
        if interval <= 0:
            raise ValueError("interval must be > 0")
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop(interval))
        logger.info("Cache sweeper started", cache=self.name, interval_seconds=interval)

    async def stop_sweeper(self) -> None:
        """Stop the periodic sweep if running."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Cache sweeper stopped", cache=self.name)

    async def aclose(self) -> None:
        """Stop the sweeper and let in-flight fetches settle."""
        await self.stop_sweeper()
        with self._lock:
            pending = list(self._pending.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
