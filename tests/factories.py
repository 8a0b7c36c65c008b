"""
Test factories: NBT item blobs, auction records, and a fake paginated source.
"""
import base64
import gzip
import struct
import threading
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from app.auctions.models import AuctionPage, AuctionRecord
from app.cache.core import CacheTier, Snapshot, utc_now


# =============================================================================
# NBT writer (test side only)
# =============================================================================

TAG_IDS = {
    "byte": 1,
    "short": 2,
    "int": 3,
    "long": 4,
    "float": 5,
    "double": 6,
    "byte_array": 7,
    "string": 8,
    "list": 9,
    "compound": 10,
    "int_array": 11,
    "long_array": 12,
}


def encode_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack(">H", len(raw)) + raw


def encode_payload(kind: str, value: Any) -> bytes:
    """
    Encode a tag payload. Compounds are {name: (kind, value)}, lists are
    (item_kind, [values]).
    """
    if kind in ("byte", "short", "int", "long", "float", "double"):
        fmt = {"byte": ">b", "short": ">h", "int": ">i", "long": ">q", "float": ">f", "double": ">d"}[kind]
        return struct.pack(fmt, value)
    if kind == "string":
        return encode_string(value)
    if kind == "byte_array":
        return struct.pack(">i", len(value)) + struct.pack(f">{len(value)}b", *value)
    if kind == "int_array":
        return struct.pack(">i", len(value)) + struct.pack(f">{len(value)}i", *value)
    if kind == "long_array":
        return struct.pack(">i", len(value)) + struct.pack(f">{len(value)}q", *value)
    if kind == "list":
        item_kind, items = value
        header = struct.pack(">bi", TAG_IDS[item_kind], len(items))
        return header + b"".join(encode_payload(item_kind, item) for item in items)
    if kind == "compound":
        out = b""
        for name, (child_kind, child_value) in value.items():
            out += struct.pack(">b", TAG_IDS[child_kind]) + encode_string(name)
            out += encode_payload(child_kind, child_value)
        return out + b"\x00"
    raise ValueError(f"unknown kind {kind}")


def encode_document(root: Dict[str, Any], name: str = "", gzipped: bool = True) -> bytes:
    data = struct.pack(">b", TAG_IDS["compound"]) + encode_string(name)
    data += encode_payload("compound", root)
    return gzip.compress(data) if gzipped else data


def nested_document(depth: int) -> bytes:
    """Uncompressed document with `depth` compounds nested below the root."""
    opening = struct.pack(">b", TAG_IDS["compound"]) + encode_string("x")
    return struct.pack(">b", TAG_IDS["compound"]) + encode_string("") + opening * depth + b"\x00" * (depth + 1)


def list_document(item_kind: str, declared_length: int, body: bytes = b"") -> bytes:
    """Uncompressed document whose "i" list header claims declared_length items."""
    header = struct.pack(">b", TAG_IDS["list"]) + encode_string("i")
    header += struct.pack(">bi", TAG_IDS[item_kind], declared_length)
    return struct.pack(">b", TAG_IDS["compound"]) + encode_string("") + header + body + b"\x00"


def to_blob(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def item_blob(item_id: Optional[str] = "ASPECT_OF_THE_END", gzipped: bool = True, **extra: str) -> str:
    """
    Base64 item blob shaped like the auction house's item_bytes.

    item_id=None leaves ExtraAttributes.id out.
    """
    attributes = {key: ("string", value) for key, value in extra.items()}
    if item_id is not None:
        attributes["id"] = ("string", item_id)
    item = {
        "id": ("short", 267),
        "Count": ("byte", 1),
        "tag": ("compound", {
            "display": ("compound", {"Name": ("string", "§9Sword")}),
            "ExtraAttributes": ("compound", attributes),
        }),
        "Damage": ("short", 0),
    }
    root = {"i": ("list", ("compound", [item]))}
    return base64.b64encode(encode_document(root, gzipped=gzipped)).decode("ascii")


# =============================================================================
# Auction records
# =============================================================================

def auction_dict(index: int, item_bytes: Optional[str] = None, item_tag: Optional[str] = None) -> Dict[str, Any]:
    return {
        "uuid": f"auction-{index:05d}",
        "auctioneer": f"seller-{index % 7}",
        "profile_id": f"profile-{index % 7}",
        "coop": [f"seller-{index % 7}"],
        "start": 1700000000000 + index,
        "end": 1700086400000 + index,
        "item_name": f"Item {index}",
        "item_lore": "§7Damage: §c+100",
        "extra": f"Item {index} Sword",
        "category": "weapon",
        "tier": "LEGENDARY",
        "starting_bid": 1000 + index,
        "item_bytes": item_bytes if item_bytes is not None else item_blob(),
        "item_tag": item_tag,
        "claimed": False,
        "claimed_bidders": [],
        "highest_bid_amount": 0,
        "last_updated": 1700000000000,
        "bin": index % 2 == 0,
        "bids": [],
    }


def make_records(count: int, start: int = 0, **kwargs) -> List[AuctionRecord]:
    return [AuctionRecord.from_api(auction_dict(start + i, **kwargs)) for i in range(count)]


def make_snapshot(records: List[AuctionRecord], age: timedelta = timedelta(0), tier: CacheTier = CacheTier.RAW) -> Snapshot:
    return Snapshot(records=tuple(records), captured_at=utc_now() - age, tier=tier)


# =============================================================================
# Fake paginated source
# =============================================================================

class FakeSource:
    """
    Page fetcher serving canned pages. A page mapped to an exception raises it.
    """

    def __init__(self, pages: Dict[int, Union[List[AuctionRecord], Exception]]):
        self.pages = pages
        self.calls: List[int] = []
        self._lock = threading.Lock()

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    def __call__(self, page: int) -> AuctionPage:
        with self._lock:
            self.calls.append(page)
        content = self.pages[page]
        if isinstance(content, Exception):
            raise content
        return AuctionPage(
            page=page,
            total_pages=self.total_pages,
            total_auctions=sum(len(p) for p in self.pages.values() if isinstance(p, list)),
            records=tuple(content),
        )
