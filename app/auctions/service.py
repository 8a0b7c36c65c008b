"""
Auction aggregation: raw tier -> tag decoding -> parsed tier.
"""
import json
import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from app.cache import CacheMeta, CacheSource, CacheTier, Snapshot, SnapshotCache
from config.settings import settings

from .batcher import decode_snapshot
from .fetcher import fetch_collection
from .tag_decoder import TagDecoder

logger = logging.getLogger("auctions.service")


class AuctionService:
    """
    Serves the full, decoded auction collection.

    A fresh parsed snapshot is returned as-is. Otherwise the raw snapshot is
    obtained through the raw tier (cached, served stale while refreshing, or
    fetched), decoded in batches, and stored as the new parsed snapshot.
    """

    def __init__(
        self,
        cache: Optional[SnapshotCache] = None,
        decoder: Optional[TagDecoder] = None,
        collection_fetcher: Callable[[], Snapshot] = fetch_collection,
        batch_size: Optional[int] = None,
    ):
        self.cache = cache or SnapshotCache(
            max_revalidation_workers=settings.revalidation_workers,
            coalesce_timeout=settings.coalesce_timeout_seconds,
        )
        self.decoder = decoder or TagDecoder()
        self._collection_fetcher = collection_fetcher
        self._batch_size = batch_size or settings.decode_batch_size

        self._render_lock = threading.Lock()
        self._rendered: Optional[Tuple[Snapshot, bytes]] = None

    def get_raw(self) -> Tuple[Snapshot, CacheMeta]:
        return self.cache.get(CacheTier.RAW, self._collection_fetcher)

    def _build_parsed(self) -> Snapshot:
        raw, meta = self.get_raw()
        logger.debug(f"Decoding raw snapshot ({meta.cache_source}, {len(raw)} records)")
        return decode_snapshot(raw, self.decoder, batch_size=self._batch_size)

    def get_auctions(self) -> Tuple[Snapshot, CacheMeta]:
        """
        Get the decoded auction collection.

        Raises:
            UpstreamUnavailable: nothing could be fetched and nothing is cached
        """
        snapshot, meta = self.cache.get(CacheTier.PARSED, self._build_parsed)
        if meta.cache_source == CacheSource.FRESH.value:
            logger.info(
                f"Using cached parsed auctions ({round(meta.age_seconds or 0)}s old)"
            )
        return snapshot, meta

    def render(self, snapshot: Snapshot) -> bytes:
        """
        Serialize a snapshot to the response body.

        The body of the last rendered snapshot is reused, so repeated hits on
        one parsed snapshot return identical bytes without re-serializing.
        """
        with self._render_lock:
            if self._rendered is not None and self._rendered[0] is snapshot:
                return self._rendered[1]

        payload = {
            "totalAuctions": len(snapshot),
            "auctions": [record.to_dict() for record in snapshot.records],
        }
        body = json.dumps(
            payload, ensure_ascii=False, allow_nan=False, separators=(",", ":")
        ).encode("utf-8")

        with self._render_lock:
            self._rendered = (snapshot, body)
        return body

    def get_stats(self) -> Dict[str, Any]:
        return {
            "cache": self.cache.get_stats(),
            "tag_decoder": self.decoder.get_stats(),
        }


# Global service instance
_auction_service: Optional[AuctionService] = None
_service_lock = threading.Lock()


def get_auction_service() -> AuctionService:
    """Get or create the global auction service."""
    global _auction_service
    with _service_lock:
        if _auction_service is None:
            _auction_service = AuctionService()
        return _auction_service
