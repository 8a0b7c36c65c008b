"""
Auction house ingestion: paginated fetch, item tag decoding, and the
aggregated auction collection.
"""
from .models import AuctionPage, AuctionRecord, Bid
from .tag_decoder import TagDecoder, extract_item_id
from .fetcher import fetch_collection, fetch_page
from .batcher import decode_snapshot
from .service import AuctionService, get_auction_service

__all__ = [
    # Models
    "AuctionPage",
    "AuctionRecord",
    "Bid",
    # Decoding
    "TagDecoder",
    "extract_item_id",
    "decode_snapshot",
    # Fetching
    "fetch_collection",
    "fetch_page",
    # Service
    "AuctionService",
    "get_auction_service",
]
