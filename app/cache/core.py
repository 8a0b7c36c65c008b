"""
Core cache data structures.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Tuple
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheTier(Enum):
    """Cache tiers with different freshness rules."""
    RAW = "raw"          # Fetched, not yet decoded. 5 min fresh, SWR up to 30 min
    PARSED = "parsed"    # Item tags decoded. 3 min, no SWR


class CacheSource(Enum):
    """Source of cached data."""
    FRESH = "fresh"        # Within TTL
    STALE = "stale"        # Past TTL, served while revalidating or as a fallback
    UPSTREAM = "upstream"  # Rebuilt for this request


@dataclass(frozen=True)
class Snapshot:
    """
    Point-in-time copy of the whole auction collection at one tier.

    Never mutated; a refresh builds a new Snapshot and swaps it in.
    """
    records: Tuple[Any, ...]
    captured_at: datetime = field(default_factory=utc_now)
    tier: CacheTier = CacheTier.RAW

    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return len(self.records) == 0

    @property
    def age_seconds(self) -> float:
        """Seconds since the snapshot was captured."""
        return (utc_now() - self.captured_at).total_seconds()


@dataclass
class CacheEntry:
    """
    A cached snapshot with the TTL rules of its tier.

    Windows are inclusive at the top: an entry exactly ttl_seconds old is
    still fresh.
    """
    snapshot: Snapshot
    ttl_seconds: int
    stale_ttl_seconds: int = 0  # Additional time stale data can be served

    @property
    def age_seconds(self) -> float:
        return self.snapshot.age_seconds

    @property
    def is_fresh(self) -> bool:
        """Check if data is within its TTL."""
        return not self.snapshot.is_empty and self.age_seconds <= self.ttl_seconds

    @property
    def is_usable_stale(self) -> bool:
        """Check if data is stale but can still be served while revalidating."""
        if self.snapshot.is_empty:
            return False
        age = self.age_seconds
        return self.ttl_seconds < age <= (self.ttl_seconds + self.stale_ttl_seconds)

    @property
    def cache_source(self) -> CacheSource:
        if self.is_fresh:
            return CacheSource.FRESH
        elif self.is_usable_stale:
            return CacheSource.STALE
        else:
            return CacheSource.UPSTREAM


@dataclass
class CacheMeta:
    """
    Metadata about a cache access.
    """
    tier: str
    cache_source: str  # "fresh", "stale", or "upstream"
    captured_at: str   # ISO timestamp of the served snapshot
    age_seconds: Optional[float] = None
    record_count: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        return {
            "tier": self.tier,
            "cacheSource": self.cache_source,
            "capturedAt": self.captured_at,
            "age": round(self.age_seconds, 1) if self.age_seconds is not None else None,
            "records": self.record_count,
        }
