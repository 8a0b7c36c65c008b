"""
Two-tier snapshot cache with stale-while-revalidate and stale fallback.
"""
import threading
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Any, Callable, Dict, Optional, Set, Tuple

from app.errors import UpstreamUnavailable

from .core import CacheEntry, CacheMeta, CacheSource, CacheTier, Snapshot
from .coalescer import RequestCoalescer
from .ttl_policies import TTL_CONFIG

logger = logging.getLogger("cache.manager")

SnapshotFn = Callable[[], Snapshot]


class SnapshotCache:
    """
    Holds the latest snapshot per tier and decides, on each read, whether to
    serve it, serve it and refresh in the background, or rebuild it first.

    - age <= fresh TTL: serve, nothing else
    - fresh TTL < age <= fresh + stale TTL (SWR tiers): serve, and submit one
      background refresh unless one is already running for the tier
    - older, or no snapshot: rebuild synchronously (coalesced across callers)

    If a synchronous rebuild fails for any reason (including a timeout while
    waiting on another caller's rebuild) and any earlier snapshot exists for
    the tier, that snapshot is served instead and the error is logged.
    """

    def __init__(
        self,
        max_revalidation_workers: int = 1,
        coalesce_timeout: float = 120.0,
        ttl_config: Optional[Dict[CacheTier, Dict[str, Any]]] = None,
    ):
        self._entries: Dict[CacheTier, CacheEntry] = {}
        self._lock = threading.RLock()
        self._coalescer = RequestCoalescer(timeout=coalesce_timeout)
        self._ttl_config = ttl_config or TTL_CONFIG

        self._revalidation_pool = ThreadPoolExecutor(
            max_workers=max_revalidation_workers,
            thread_name_prefix="snapshot-revalidate",
        )
        self._revalidating: Set[CacheTier] = set()
        self._revalidating_lock = threading.Lock()
        self._pending: Set[Future] = set()

        self._stats = {
            "hits_fresh": 0,
            "hits_stale": 0,
            "misses": 0,
            "revalidations": 0,
            "fallbacks": 0,
        }

    def _ttl(self, tier: CacheTier) -> Tuple[int, int, bool]:
        config = self._ttl_config[tier]
        return config["fresh_ttl"], config.get("stale_ttl", 0), config.get("allow_swr", False)

    def peek(self, tier: CacheTier) -> Optional[Snapshot]:
        """Current snapshot of a tier, regardless of age."""
        with self._lock:
            entry = self._entries.get(tier)
        return entry.snapshot if entry else None

    def get(self, tier: CacheTier, fetch_fn: SnapshotFn) -> Tuple[Snapshot, CacheMeta]:
        """
        Get a tier's snapshot, rebuilding it with fetch_fn when needed.

        Raises:
            UpstreamUnavailable: rebuild failed and the tier has no snapshot
        """
        _, _, allow_swr = self._ttl(tier)

        with self._lock:
            entry = self._entries.get(tier)

        if entry is not None and entry.is_fresh:
            logger.debug(f"CACHE HIT (fresh): {tier.value} [age={entry.age_seconds:.1f}s]")
            self._count("hits_fresh")
            return entry.snapshot, self._make_meta(entry.snapshot, CacheSource.FRESH)

        if entry is not None and entry.is_usable_stale and allow_swr:
            logger.info(
                f"CACHE HIT (stale, revalidating): {tier.value} "
                f"[age={entry.age_seconds:.1f}s]"
            )
            self.trigger_background_revalidate(tier, fetch_fn)
            self._count("hits_stale")
            return entry.snapshot, self._make_meta(entry.snapshot, CacheSource.STALE)

        if entry is None or entry.snapshot.is_empty:
            logger.info(f"CACHE MISS: {tier.value}")
        else:
            logger.info(f"CACHE EXPIRED: {tier.value} [age={entry.age_seconds:.1f}s]")
        self._count("misses")

        try:
            snapshot = self._coalescer.get_or_fetch(
                tier.value, lambda: self._rebuild(tier, fetch_fn)
            )
        except Exception as e:
            fallback = self.peek(tier)
            if fallback is None or fallback.is_empty:
                if isinstance(e, UpstreamUnavailable):
                    raise
                raise UpstreamUnavailable(f"No {tier.value} snapshot available: {e}") from e
            logger.warning(
                f"Serving expired {tier.value} snapshot "
                f"[age={fallback.age_seconds:.1f}s] after rebuild failure: {e}"
            )
            self._count("fallbacks")
            return fallback, self._make_meta(fallback, CacheSource.STALE)

        return snapshot, self._make_meta(snapshot, CacheSource.UPSTREAM)

    def _rebuild(self, tier: CacheTier, fetch_fn: SnapshotFn) -> Snapshot:
        snapshot = fetch_fn()
        self.store(tier, snapshot)
        return snapshot

    def store(self, tier: CacheTier, snapshot: Snapshot) -> bool:
        """
        Replace a tier's snapshot.

        A snapshot captured before the current one is dropped so the tier's
        timestamp never moves backwards.

        Returns:
            True if the snapshot was stored
        """
        fresh_ttl, stale_ttl, _ = self._ttl(tier)
        with self._lock:
            current = self._entries.get(tier)
            if current is not None and snapshot.captured_at < current.snapshot.captured_at:
                logger.debug(
                    f"Dropping out-of-order {tier.value} snapshot "
                    f"captured at {snapshot.captured_at.isoformat()}"
                )
                return False
            self._entries[tier] = CacheEntry(
                snapshot=snapshot,
                ttl_seconds=fresh_ttl,
                stale_ttl_seconds=stale_ttl,
            )
        return True

    def trigger_background_revalidate(
        self, tier: CacheTier, fetch_fn: SnapshotFn
    ) -> Optional[Future]:
        """Submit a background rebuild unless one is already running for the tier."""
        with self._revalidating_lock:
            if tier in self._revalidating:
                logger.debug(f"Already revalidating: {tier.value}")
                return None
            self._revalidating.add(tier)

        def do_revalidate():
            try:
                logger.info(f"Background refresh started: {tier.value}")
                self._coalescer.get_or_fetch(
                    f"{tier.value}:revalidate",
                    lambda: self._rebuild(tier, fetch_fn),
                )
                self._count("revalidations")
                logger.info(f"Background refresh complete: {tier.value}")
            except Exception as e:
                logger.warning(f"Background refresh failed: {tier.value} - {e}")
            finally:
                with self._revalidating_lock:
                    self._revalidating.discard(tier)

        future = self._revalidation_pool.submit(do_revalidate)
        with self._revalidating_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._revalidating_lock:
            self._pending.discard(future)

    def wait_for_revalidations(self, timeout: Optional[float] = None) -> None:
        """Block until background refreshes submitted so far have finished."""
        with self._revalidating_lock:
            pending = list(self._pending)
        if pending:
            wait_futures(pending, timeout=timeout)

    def _count(self, stat: str) -> None:
        with self._lock:
            self._stats[stat] += 1

    def _make_meta(self, snapshot: Snapshot, source: CacheSource) -> CacheMeta:
        return CacheMeta(
            tier=snapshot.tier.value,
            cache_source=source.value,
            captured_at=snapshot.captured_at.isoformat(),
            age_seconds=snapshot.age_seconds,
            record_count=len(snapshot),
        )

    def clear(self) -> int:
        """
        Drop all tiers.

        Returns:
            Number of tiers cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} cache tiers")
        return count

    def shutdown(self, wait: bool = True) -> None:
        self._revalidation_pool.shutdown(wait=wait)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            tiers = {
                tier.value: {
                    "records": len(entry.snapshot),
                    "age": round(entry.age_seconds, 1),
                    "source": entry.cache_source.value,
                }
                for tier, entry in self._entries.items()
            }
            total_hits = self._stats["hits_fresh"] + self._stats["hits_stale"]
            total_requests = total_hits + self._stats["misses"]
            hit_rate = (total_hits / total_requests * 100) if total_requests > 0 else 0
            stats = dict(self._stats)

        with self._revalidating_lock:
            revalidating = sorted(t.value for t in self._revalidating)

        return {
            "tiers": tiers,
            **stats,
            "hit_rate_percent": round(hit_rate, 1),
            "revalidating": revalidating,
            "coalescer": self._coalescer.get_stats(),
        }
