"""
TTL configuration per cache tier.
"""
from typing import Any, Dict

from config.settings import settings

from .core import CacheTier


def build_ttl_config() -> Dict[CacheTier, Dict[str, Any]]:
    """
    Build the TTL table from settings.

    The raw tier is fresh up to the background TTL, then served stale while a
    background refresh runs until the fresh TTL is reached. The parsed tier
    has no stale window.
    """
    background_ttl = settings.raw_background_ttl_seconds
    fresh_ttl = settings.raw_fresh_ttl_seconds
    if fresh_ttl < background_ttl:
        raise ValueError(
            f"raw_fresh_ttl_seconds ({fresh_ttl}) must not be shorter than "
            f"raw_background_ttl_seconds ({background_ttl})"
        )

    return {
        CacheTier.RAW: {
            "fresh_ttl": background_ttl,             # 5 minutes
            "stale_ttl": fresh_ttl - background_ttl,  # up to 30 minutes total
            "allow_swr": True,
        },
        CacheTier.PARSED: {
            "fresh_ttl": settings.parsed_ttl_seconds,  # 3 minutes
            "stale_ttl": 0,
            "allow_swr": False,
        },
    }


TTL_CONFIG: Dict[CacheTier, Dict[str, Any]] = build_ttl_config()

