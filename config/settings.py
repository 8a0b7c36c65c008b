"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    host: str = "0.0.0.0"
    port: int = 3001

    # Auction house source (paginated)
    auction_source_url: str = "https://api.hypixel.net/skyblock/auctions"
    api_key: Optional[str] = None

    # Profile lookups (passthrough only)
    mojang_profile_url: str = "https://api.mojang.com/users/profiles/minecraft"
    mojang_lookup_url: str = "https://api.minecraftservices.com/minecraft/profile/lookup"

    # HTTP
    request_timeout_seconds: float = 30.0
    page_fetch_workers: int = 16
    page_fetch_attempts: int = 2

    # Cache tiers (seconds)
    # Raw tier: served as-is up to the background TTL, served while
    # revalidating up to the fresh TTL, refetched synchronously after that.
    raw_background_ttl_seconds: int = 300
    raw_fresh_ttl_seconds: int = 1800
    parsed_ttl_seconds: int = 180
    revalidation_workers: int = 1
    coalesce_timeout_seconds: float = 120.0

    # Item tag decoding
    decode_batch_size: int = 100
    decode_workers: int = 8

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
