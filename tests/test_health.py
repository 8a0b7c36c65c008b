"""
Health, version and stats endpoints
"""
from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)


def _no_fetch(page):
    raise AssertionError(f"unexpected fetch of page {page}")


def test_health_endpoint_returns_200():
    """Test that /health returns HTTP 200"""
    response = client.get("/health")
    assert response.status_code == 200


def test_health_endpoint_returns_ok_status():
    """Test that /health returns status: ok"""
    response = client.get("/health")
    data = response.json()
    assert data["status"] == "ok"


def test_version_endpoint():
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json()["name"] == "Auction View"


def test_cache_stats_reports_tiers_and_decoder(install_service):
    """Stats are available before anything has been fetched"""
    install_service(_no_fetch)
    response = client.get("/cache/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["cache"]["tiers"] == {}
    assert data["cache"]["misses"] == 0
    assert data["tag_decoder"]["entries"] == 0
