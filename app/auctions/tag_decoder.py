"""
Item tag decoding with a content-addressed result cache.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from app.errors import DecodeError

from . import nbt

logger = logging.getLogger("auctions.tag_decoder")

# root -> i[0] -> tag -> ExtraAttributes -> id
ITEM_ID_PATH: List[Any] = ["i", 0, "tag", "ExtraAttributes", "id"]


def extract_item_id(item_bytes: str) -> Optional[str]:
    """
    Decode one item blob and return its internal item id.

    Returns None when the id path is absent.

    Raises:
        DecodeError: the blob is not valid base64/gzip/NBT
    """
    root = nbt.parse_base64(item_bytes)
    item_id = nbt.get_path(root, ITEM_ID_PATH)
    if isinstance(item_id, str) and item_id:
        return str(item_id)
    return None


class TagDecoder:
    """
    Maps item blobs to item ids, decoding each distinct blob once.

    Results are cached by the exact base64 text, including "no id" results
    and decode failures, for the lifetime of the decoder. The cache is not
    bounded; distinct blobs are limited by item diversity, not traffic.
    """

    def __init__(self, decode_fn: Callable[[str], Optional[str]] = extract_item_id):
        self._decode_fn = decode_fn
        self._cache: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()
        self.decode_count = 0
        self._hits = 0
        self._failures = 0

    def decode(self, item_bytes: str) -> Optional[str]:
        """Return the item id for a blob, or None if it has none."""
        with self._lock:
            if item_bytes in self._cache:
                self._hits += 1
                return self._cache[item_bytes]
            self.decode_count += 1

        try:
            item_id = self._decode_fn(item_bytes)
        except DecodeError as e:
            logger.warning(f"Failed to parse item tag: {e}")
            item_id = None
            self._count_failure()
        except Exception as e:
            logger.error(f"Unexpected error parsing item tag: {e}", exc_info=True)
            item_id = None
            self._count_failure()

        with self._lock:
            # A racing thread may have stored the same blob; the value is identical
            self._cache.setdefault(item_bytes, item_id)
        return item_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _count_failure(self) -> None:
        with self._lock:
            self._failures += 1

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._cache),
                "decodes": self.decode_count,
                "hits": self._hits,
                "failures": self._failures,
            }
