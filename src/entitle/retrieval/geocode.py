"""Mapbox address resolution — free-text address to coordinates.

Only the address-first snapshot path calls this. Without a Mapbox token the
geocoder degrades to the configured default point and says so in the
result ("degraded": True) rather than pretending to have located the address.

Includes in-memory cache with 1hr TTL.
"""

import hashlib
import logging
import time
from urllib.parse import quote

import httpx
import mlflow
from mlflow.entities import SpanType

from entitle.config import settings
from entitle.core.errors import InvalidInputError

logger = logging.getLogger(__name__)

MAPBOX_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json"

# In-memory geocode cache: 1hr TTL, SHA256 key
_geocode_cache: dict[str, tuple[dict, float]] = {}
GEOCODE_CACHE_TTL = 3600  # 1 hour


def _cache_key(address: str) -> str:
    """Generate a stable cache key from an address."""
    normalized = address.strip().lower()
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


def clear_cache() -> None:
    _geocode_cache.clear()


@mlflow.trace(name="geocode_address", span_type=SpanType.TOOL)
async def geocode_address(address: str) -> dict:
    """Geocode an address.

    Returns:
        Dict with keys: normalized_address, lat, lng, degraded.

    Raises:
        InvalidInputError: the provider found no match for the address.
        httpx.HTTPError: the provider call failed.
    """
    if not settings.mapbox_token:
        logger.warning("MAPBOX_TOKEN not set — using default location for: %s", address[:40])
        return {
            "normalized_address": address.strip(),
            "lat": settings.default_lat,
            "lng": settings.default_lng,
            "degraded": True,
        }

    key = _cache_key(address)
    if key in _geocode_cache:
        cached_result, cached_time = _geocode_cache[key]
        if time.monotonic() - cached_time < GEOCODE_CACHE_TTL:
            logger.info("Geocode cache hit for: %s", address[:40])
            return cached_result

    async with httpx.AsyncClient(timeout=15.0) as client:
        resp = await client.get(
            MAPBOX_URL.format(query=quote(address.strip(), safe="")),
            params={"access_token": settings.mapbox_token, "limit": "1"},
        )
        resp.raise_for_status()
        data = resp.json()

    features = data.get("features", [])
    if not features:
        logger.warning("No geocoding results for: %s", address)
        raise InvalidInputError(f"Address not found: {address}")

    top = features[0]
    lng, lat = top.get("center", [None, None])[:2]
    if lat is None or lng is None:
        raise InvalidInputError(f"Geocoder returned no coordinates for: {address}")

    result = {
        "normalized_address": top.get("place_name", address.strip()),
        "lat": float(lat),
        "lng": float(lng),
        "degraded": False,
    }
    _geocode_cache[key] = (result, time.monotonic())
    return result
