"""
Two-tier snapshot cache with stale-while-revalidate, request coalescing, and
stale fallback on upstream failure.
"""
from .core import CacheEntry, CacheMeta, CacheSource, CacheTier, Snapshot
from .ttl_policies import TTL_CONFIG, build_ttl_config
from .coalescer import RequestCoalescer
from .manager import SnapshotCache

__all__ = [
    # Core types
    "CacheEntry",
    "CacheMeta",
    "CacheSource",
    "CacheTier",
    "Snapshot",
    # TTL policies
    "TTL_CONFIG",
    "build_ttl_config",
    # Coalescing
    "RequestCoalescer",
    # Manager
    "SnapshotCache",
]
