"""
Data models for auction house records.

These dataclasses are the canonical shape of one auction as returned by the
paginated auction source. Records are frozen: the only field filled in after
fetch is item_tag, and that produces a new record.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from app.utils.helpers import optional_str, safe_bool, safe_int, safe_list, safe_str


@dataclass(frozen=True)
class Bid:
    """A single bid on an auction."""
    auction_id: str
    bidder: str
    profile_id: str
    amount: int
    timestamp: int  # epoch millis

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Bid":
        return cls(
            auction_id=safe_str(data.get("auction_id")),
            bidder=safe_str(data.get("bidder")),
            profile_id=safe_str(data.get("profile_id")),
            amount=safe_int(data.get("amount")),
            timestamp=safe_int(data.get("timestamp")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "auction_id": self.auction_id,
            "bidder": self.bidder,
            "profile_id": self.profile_id,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


def _bids(value: Any) -> Tuple[Bid, ...]:
    return tuple(Bid.from_api(b) for b in safe_list(value) if isinstance(b, dict))


@dataclass(frozen=True)
class AuctionRecord:
    """One auction: seller, timing window, item, and bid/claim state."""
    uuid: str
    auctioneer: str
    profile_id: str
    start: int  # epoch millis
    end: int    # epoch millis
    item_name: str
    item_lore: str
    item_bytes: str  # base64, gzipped NBT
    item_tag: Optional[str] = None
    coop: Tuple[str, ...] = ()
    extra: str = ""
    category: str = ""
    tier: str = ""
    starting_bid: int = 0
    highest_bid_amount: int = 0
    claimed: bool = False
    claimed_bidders: Tuple[Any, ...] = ()
    bids: Tuple[Bid, ...] = ()
    bin: bool = False
    last_updated: int = 0
    item_uuid: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AuctionRecord":
        """Build a record from one entry of a page's `auctions` array."""
        return cls(
            uuid=safe_str(data.get("uuid")),
            auctioneer=safe_str(data.get("auctioneer")),
            profile_id=safe_str(data.get("profile_id")),
            start=safe_int(data.get("start")),
            end=safe_int(data.get("end")),
            item_name=safe_str(data.get("item_name")),
            item_lore=safe_str(data.get("item_lore")),
            item_bytes=safe_str(data.get("item_bytes")),
            item_tag=optional_str(data.get("item_tag")),
            coop=tuple(safe_str(c) for c in safe_list(data.get("coop"))),
            extra=safe_str(data.get("extra")),
            category=safe_str(data.get("category")),
            tier=safe_str(data.get("tier")),
            starting_bid=safe_int(data.get("starting_bid")),
            highest_bid_amount=safe_int(data.get("highest_bid_amount")),
            claimed=safe_bool(data.get("claimed")),
            # Upstream sends either bidder uuids or bid objects here
            claimed_bidders=tuple(safe_list(data.get("claimed_bidders"))),
            bids=_bids(data.get("bids")),
            bin=safe_bool(data.get("bin")),
            last_updated=safe_int(data.get("last_updated")),
            item_uuid=optional_str(data.get("item_uuid")),
        )

    @property
    def needs_decode(self) -> bool:
        """True when the item tag is missing and there is a blob to decode."""
        return self.item_tag is None and bool(self.item_bytes)

    def with_item_tag(self, item_tag: Optional[str]) -> "AuctionRecord":
        """
        Return a copy carrying item_tag.

        A record that already has a tag is returned unchanged.
        """
        if self.item_tag is not None or item_tag is None:
            return self
        return replace(self, item_tag=item_tag)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "auctioneer": self.auctioneer,
            "profile_id": self.profile_id,
            "coop": list(self.coop),
            "start": self.start,
            "end": self.end,
            "item_name": self.item_name,
            "item_lore": self.item_lore,
            "item_tag": self.item_tag,
            "extra": self.extra,
            "category": self.category,
            "tier": self.tier,
            "starting_bid": self.starting_bid,
            "item_bytes": self.item_bytes,
            "claimed": self.claimed,
            "claimed_bidders": list(self.claimed_bidders),
            "highest_bid_amount": self.highest_bid_amount,
            "last_updated": self.last_updated,
            "bin": self.bin,
            "bids": [b.to_dict() for b in self.bids],
            "item_uuid": self.item_uuid,
        }


@dataclass(frozen=True)
class AuctionPage:
    """One page of the paginated auction source."""
    page: int
    total_pages: int
    total_auctions: int
    records: Tuple[AuctionRecord, ...] = field(default_factory=tuple)
    last_updated: int = 0

    @classmethod
    def from_api(cls, page: int, data: Dict[str, Any]) -> "AuctionPage":
        records: List[AuctionRecord] = [
            AuctionRecord.from_api(a) for a in safe_list(data.get("auctions")) if isinstance(a, dict)
        ]
        return cls(
            page=page,
            total_pages=safe_int(data.get("totalPages"), default=1),
            total_auctions=safe_int(data.get("totalAuctions")),
            records=tuple(records),
            last_updated=safe_int(data.get("lastUpdated")),
        )
