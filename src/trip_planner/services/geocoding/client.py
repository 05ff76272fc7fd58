"""Cached, variant-retrying geocoding client."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...models.domain import GeocodeResult
from .cache import GeocodeCache, InMemoryGeocodeCache
from .normalizer import address_variants
from .providers import PROVIDERS, build_request, parse_response, request_delay, requires_api_key

logger = logging.getLogger(__name__)


class GeocodingClient:
    """Resolve free-text addresses through one provider, caching successes.

    Lookups are made one at a time; callers running a batch are expected to
    pause ``delay`` seconds between addresses.
    """

    def __init__(
        self,
        provider: str | None = None,
        api_key: str | None = None,
        cache: GeocodeCache | None = None,
        common_locality: str | None = None,
        http_client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self.provider = provider or settings.geocode_provider
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown geocoding provider '{self.provider}'.")
        self.api_key = (api_key or settings.geocode_api_key or "").strip() or None
        if requires_api_key(self.provider) and not self.api_key:
            raise ValueError(f"Please enter an API key for {self.provider}.")
        self.cache = cache if cache is not None else InMemoryGeocodeCache()
        self.common_locality = common_locality if common_locality is not None else settings.common_locality
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout or settings.http_timeout_seconds, connect=10.0),
            headers={"User-Agent": settings.geocode_user_agent},
        )

    @property
    def delay(self) -> float:
        return request_delay(self.provider)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "GeocodingClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _lookup(self, query: str) -> tuple[float, float] | None:
        url, params = build_request(self.provider, query, self.api_key)
        try:
            response = self._client.get(url, params=params)
            response.raise_for_status()
            return parse_response(self.provider, response.json())
        except httpx.HTTPError as exc:
            logger.debug(f"{self.provider} request failed for '{query}': {exc}")
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.debug(f"Unreadable {self.provider} response for '{query}': {exc}")
        return None

    def geocode(self, address: str | None) -> GeocodeResult | None:
        """Return coordinates for ``address`` or None when every variant fails."""
        if not address or not address.strip():
            return None

        cached = self.cache.get(address)
        if cached:
            return GeocodeResult.from_cache(cached)

        for variant in address_variants(address, self.common_locality):
            coordinates = self._lookup(variant)
            if coordinates is None:
                continue
            lat, lon = coordinates
            result = GeocodeResult(lat=lat, lon=lon, used_variant=variant or "original")
            self.cache.set(address, result.to_cache())
            return result
        return None
