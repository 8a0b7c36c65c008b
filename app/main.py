"""
Auction View - Main FastAPI Application
Aggregated SkyBlock auction house with decoded item tags
"""
import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response

from app import profile_client
from app.auctions import get_auction_service
from config.settings import settings

# Version tracking
APP_VERSION = "v0.1.0"
APP_NAME = "Auction View"

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("app.main")

app = FastAPI(
    title=APP_NAME,
    description="SkyBlock auction house, cached and enriched with item tags",
    version=APP_VERSION,
)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "full": f"{APP_NAME} {APP_VERSION}",
    }


@app.get("/cache/stats")
def cache_stats():
    """Get cache and tag decoder statistics."""
    return get_auction_service().get_stats()


@app.get("/auctions")
def list_auctions():
    """
    All current auctions with item tags decoded.

    Returns {"totalAuctions": n, "auctions": [...]}, or a 500 with
    {"error": ...} when nothing could be fetched and nothing is cached.
    """
    service = get_auction_service()
    try:
        snapshot, meta = service.get_auctions()
        body = service.render(snapshot)
    except Exception as e:
        logger.error(f"Error processing request: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    logger.debug(f"Served {meta.record_count} auctions ({meta.cache_source})")
    return Response(content=body, media_type="application/json")


@app.get("/users/username/{username}")
def user_by_username(username: str):
    """Profile lookup by username (passthrough)."""
    try:
        return profile_client.get_profile_by_username(username)
    except Exception as e:
        logger.error(f"Failed to fetch user: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch user"})


@app.get("/users/uuid/{uuid}")
def user_by_uuid(uuid: str):
    """Profile lookup by uuid (passthrough)."""
    try:
        return profile_client.get_profile_by_uuid(uuid)
    except Exception as e:
        logger.error(f"Failed to fetch user: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch user"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port)
