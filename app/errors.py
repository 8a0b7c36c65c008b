"""
Error types for the auction pipeline.
"""
from typing import Optional


class AuctionViewError(Exception):
    """Base class for auction pipeline errors."""


class FetchError(AuctionViewError):
    """A page of the auction source could not be retrieved."""

    def __init__(self, page: int, status: Optional[int] = None, reason: str = ""):
        self.page = page
        self.status = status
        self.reason = reason
        message = f"Failed to fetch page {page}"
        if status is not None:
            message += f": {status}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        """True for rate limiting, gateway errors and transport failures."""
        return self.status is None or self.status in (429, 502, 503, 504)


class DecodeError(AuctionViewError):
    """An item blob is not valid base64/gzip/NBT."""


class UpstreamUnavailable(AuctionViewError):
    """No snapshot could be fetched and no fallback snapshot exists."""
