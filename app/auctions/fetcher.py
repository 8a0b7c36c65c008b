"""
Paginated fetch of the auction house.

Page 0 tells us how many pages the current snapshot has; the remaining pages
are fetched concurrently and concatenated in page order.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Tuple

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.cache.core import CacheTier, Snapshot
from app.errors import FetchError
from app.utils.helpers import safe_str
from config.settings import settings

from .models import AuctionPage, AuctionRecord

logger = logging.getLogger("auctions.fetcher")

PageFetcher = Callable[[int], AuctionPage]


def _get_headers() -> dict:
    headers = {"Accept": "application/json"}
    if settings.api_key:
        headers["API-Key"] = settings.api_key
    return headers


def fetch_page(page: int, session: Optional[requests.Session] = None) -> AuctionPage:
    """
    Fetch one page of the auction source.

    Does not retry; retry policy belongs to the caller.

    Raises:
        FetchError: transport failure, non-2xx status, or an unusable body
    """
    http = session or requests
    try:
        response = http.get(
            settings.auction_source_url,
            params={"page": page},
            headers=_get_headers(),
            timeout=settings.request_timeout_seconds,
        )
    except requests.RequestException as e:
        raise FetchError(page, reason=str(e)) from e

    if not 200 <= response.status_code < 300:
        raise FetchError(page, response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        raise FetchError(page, response.status_code, "invalid JSON") from e

    if not isinstance(data, dict):
        raise FetchError(page, response.status_code, "unexpected response body")
    if data.get("success") is False:
        raise FetchError(page, response.status_code, safe_str(data.get("cause"), "unsuccessful"))

    return AuctionPage.from_api(page, data)


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, FetchError) and error.is_transient


def with_retries(page_fetcher: PageFetcher, attempts: int) -> PageFetcher:
    """Wrap a page fetcher so rate-limited and transient failures are retried."""
    if attempts <= 1:
        return page_fetcher

    def fetch(page: int) -> AuctionPage:
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(page_fetcher, page)

    return fetch


def fetch_collection(
    page_fetcher: PageFetcher = fetch_page,
    max_workers: Optional[int] = None,
    attempts: Optional[int] = None,
) -> Snapshot:
    """
    Fetch every page of the current auction snapshot.

    A failed page after page 0 contributes no records and is logged. Page 0
    failing is fatal since the page count is unknown.

    Returns:
        Raw-tier Snapshot, records ordered by page then position in page

    Raises:
        FetchError: page 0 could not be fetched
    """
    max_workers = max_workers or settings.page_fetch_workers
    attempts = attempts if attempts is not None else settings.page_fetch_attempts
    fetch = with_retries(page_fetcher, attempts)

    started = time.monotonic()
    logger.info("Fetching fresh auctions...")

    first = fetch(0)
    pages: Dict[int, Tuple[AuctionRecord, ...]] = {0: first.records}
    remaining = list(range(1, first.total_pages))
    failed: List[int] = []

    if remaining:
        with ThreadPoolExecutor(
            max_workers=min(max_workers, len(remaining)),
            thread_name_prefix="auction-page",
        ) as executor:
            future_to_page = {executor.submit(fetch, page): page for page in remaining}

            for future in as_completed(future_to_page):
                page = future_to_page[future]
                try:
                    pages[page] = future.result().records
                    logger.debug(f"Fetched page {page}")
                except Exception as e:
                    logger.error(f"Failed to fetch page {page}: {e}")
                    failed.append(page)

    records = tuple(record for page in sorted(pages) for record in pages[page])
    elapsed = time.monotonic() - started

    if failed:
        logger.warning(
            f"Partial fetch: {len(failed)}/{first.total_pages} pages failed "
            f"({sorted(failed)}), kept {len(records)} auctions"
        )
    logger.info(f"Fetched {len(records)} auctions from {first.total_pages} pages in {elapsed:.1f}s")

    return Snapshot(records=records, tier=CacheTier.RAW)
