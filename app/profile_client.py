"""
Player profile lookups (username <-> uuid).

Plain passthrough to the Mojang profile services; nothing is cached.
"""
import logging
from typing import Any

import requests

from config.settings import settings

logger = logging.getLogger("profile_client")


def _get_json(url: str) -> Any:
    logger.debug(f"Profile lookup: {url}")
    response = requests.get(url, timeout=settings.request_timeout_seconds)
    return response.json()


def get_profile_by_username(username: str) -> Any:
    """Look up a player's profile (name and id) by username."""
    return _get_json(f"{settings.mojang_profile_url}/{username}")


def get_profile_by_uuid(uuid: str) -> Any:
    """Look up a player's profile (name and id) by uuid."""
    return _get_json(f"{settings.mojang_lookup_url}/{uuid}")
