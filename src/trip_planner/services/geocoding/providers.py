"""Request and response shapes of the supported geocoding providers."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from ...config import settings

PROVIDERS = ("nominatim", "locationiq", "mapbox")
PAID_PROVIDERS = ("locationiq", "mapbox")

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
LOCATIONIQ_URL = "https://us1.locationiq.com/v1/search.php"
MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"


def requires_api_key(provider: str) -> bool:
    return provider in PAID_PROVIDERS


def build_request(provider: str, query: str, api_key: str | None = None) -> tuple[str, dict[str, Any]]:
    """Return the URL and query parameters for a single lookup."""
    match provider:
        case "nominatim":
            return NOMINATIM_URL, {"format": "json", "q": query, "limit": 1}
        case "locationiq":
            return LOCATIONIQ_URL, {"key": api_key, "q": query, "format": "json", "limit": 1}
        case "mapbox":
            return f"{MAPBOX_GEOCODING_URL}/{quote(query, safe='')}.json", {"access_token": api_key, "limit": 1}
        case _:
            raise ValueError(f"Unknown geocoding provider '{provider}'.")


def parse_response(provider: str, payload: Any) -> tuple[float, float] | None:
    """Normalise a provider payload to (lat, lon), or None when nothing matched.

    Nominatim and LocationIQ answer with a list of candidates carrying string
    coordinates; Mapbox answers with GeoJSON features whose ``center`` is
    ``[lon, lat]``.
    """
    if provider == "mapbox":
        features = payload.get("features") if isinstance(payload, dict) else None
        if not features:
            return None
        lon, lat = features[0]["center"][:2]
        return float(lat), float(lon)

    if not isinstance(payload, list) or not payload:
        return None
    return float(payload[0]["lat"]), float(payload[0]["lon"])


def request_delay(provider: str) -> float:
    """Pause between consecutive lookups so the provider's rate limit is honoured."""
    if provider == "nominatim":
        return settings.nominatim_delay_seconds
    return settings.provider_delay_seconds
