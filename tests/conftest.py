"""
Shared fixtures.
"""
import pytest

from app.auctions import service as service_module
from app.auctions.fetcher import fetch_collection
from app.auctions.service import AuctionService
from app.cache import SnapshotCache


@pytest.fixture
def snapshot_cache():
    cache = SnapshotCache(max_revalidation_workers=1, coalesce_timeout=5.0)
    yield cache
    cache.shutdown(wait=True)


@pytest.fixture
def install_service(monkeypatch, snapshot_cache):
    """
    Install an AuctionService backed by a given page fetcher as the global
    service used by the HTTP routes.
    """
    def install(page_fetcher, batch_size=100):
        svc = AuctionService(
            cache=snapshot_cache,
            collection_fetcher=lambda: fetch_collection(
                page_fetcher=page_fetcher, max_workers=4, attempts=1
            ),
            batch_size=batch_size,
        )
        monkeypatch.setattr(service_module, "_auction_service", svc)
        return svc

    return install
