"""
Batched item tag decoding over a whole snapshot.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional

from app.cache.core import CacheTier, Snapshot
from config.settings import settings

from .models import AuctionRecord
from .tag_decoder import TagDecoder

logger = logging.getLogger("auctions.batcher")

PROGRESS_EVERY = 1000


def _decode_batch(
    batch: List[AuctionRecord],
    decoder: TagDecoder,
    executor: ThreadPoolExecutor,
) -> List[AuctionRecord]:
    """Decode one batch; returns when every decode in it has settled."""
    blobs = {record.item_bytes for record in batch if record.needs_decode}
    futures = {blob: executor.submit(decoder.decode, blob) for blob in blobs}
    wait(futures.values())

    tags: Dict[str, Optional[str]] = {}
    for blob, future in futures.items():
        try:
            tags[blob] = future.result()
        except Exception as e:
            logger.error(f"Unexpected error decoding item tag: {e}")
            tags[blob] = None

    return [
        record.with_item_tag(tags[record.item_bytes]) if record.needs_decode else record
        for record in batch
    ]


def decode_snapshot(
    snapshot: Snapshot,
    decoder: TagDecoder,
    batch_size: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> Snapshot:
    """
    Fill in item_tag for every record of a snapshot.

    Records are processed in fixed-size batches; a batch starts only after
    the previous one has fully settled. Records that already have a tag, or
    have no item bytes, pass through untouched. The input snapshot is not
    modified.

    Returns:
        New parsed-tier Snapshot with the same records in the same order
    """
    batch_size = batch_size or settings.decode_batch_size
    max_workers = max_workers or settings.decode_workers
    records = snapshot.records
    total = len(records)

    started = time.monotonic()
    logger.info(f"Parsing {total} auction tags...")

    decoded: List[AuctionRecord] = []
    next_progress = PROGRESS_EVERY
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tag-decode") as executor:
        for offset in range(0, total, batch_size):
            batch = list(records[offset:offset + batch_size])
            decoded.extend(_decode_batch(batch, decoder, executor))

            done = len(decoded)
            if next_progress <= done < total:
                logger.info(f"Parsed {done}/{total} auctions...")
                while next_progress <= done:
                    next_progress += PROGRESS_EVERY

    logger.info(f"Parsed {total} auction tags in {time.monotonic() - started:.1f}s")
    return Snapshot(records=tuple(decoded), tier=CacheTier.PARSED)
