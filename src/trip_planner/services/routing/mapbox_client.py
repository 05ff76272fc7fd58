"""HTTP client for the Mapbox matrix and directions services."""

from __future__ import annotations

import logging
import math
import time
from typing import Sequence

import httpx

from ...config import settings

MATRIX_URL = "https://api.mapbox.com/directions-matrix/v1/mapbox"
DIRECTIONS_URL = "https://api.mapbox.com/directions/v5/mapbox"

logger = logging.getLogger(__name__)


class MatrixUnavailableError(ConnectionError):
    """Raised when a travel-time matrix could not be assembled."""


def _coordinate_path(coordinates: Sequence[tuple[float, float]]) -> str:
    return ";".join(f"{lon},{lat}" for lat, lon in coordinates)


class MapboxClient:
    def __init__(
        self,
        access_token: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_coordinates_per_request: int | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.access_token = (access_token or settings.mapbox_api_key or "").strip()
        if not self.access_token:
            raise ValueError("Road Network metric requires a Mapbox API key.")
        self.profile = profile or settings.mapbox_profile
        self.max_retries = max_retries if max_retries is not None else settings.http_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.http_backoff_seconds
        # Mapbox caps a matrix call at 25 coordinates; 12 sources + 12 destinations stays under it
        self.max_coordinates_per_request = max_coordinates_per_request or settings.mapbox_matrix_max_coordinates
        self.timeout = timeout or settings.http_timeout_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _get_json(self, url: str, params: dict) -> dict:
        attempt = 0
        while True:
            try:
                response = self._client.get(url, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                # client errors other than rate limiting will not improve on retry
                if exc.response.status_code < 500 and exc.response.status_code != 429:
                    raise
                attempt += 1
                if attempt > self.max_retries:
                    raise
                time.sleep(self.backoff_seconds * attempt)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning(f"Mapbox request failed after {self.max_retries} retries: {exc}")
                    raise
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"Mapbox network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                time.sleep(wait_time)

    def _matrix_block(
        self,
        sources: Sequence[tuple[float, float]],
        destinations: Sequence[tuple[float, float]],
        same_block: bool,
    ) -> list[list[float]]:
        if same_block:
            coordinates = list(sources)
            source_idx = list(range(len(sources)))
            destination_idx = source_idx
        else:
            coordinates = [*sources, *destinations]
            source_idx = list(range(len(sources)))
            destination_idx = list(range(len(sources), len(coordinates)))

        params = {
            "access_token": self.access_token,
            "annotations": "duration",
            "sources": ";".join(str(i) for i in source_idx),
            "destinations": ";".join(str(i) for i in destination_idx),
        }
        url = f"{MATRIX_URL}/{self.profile}/{_coordinate_path(coordinates)}"
        data = self._get_json(url, params)
        if not isinstance(data, dict):
            raise ValueError("Mapbox matrix response is not a JSON object")
        if data.get("code") != "Ok" or "durations" not in data:
            raise ValueError(f"Mapbox matrix error: {data.get('code')} {data.get('message', '')}".strip())
        durations = data["durations"]
        if len(durations) != len(source_idx) or any(len(row) != len(destination_idx) for row in durations):
            raise ValueError("Mapbox matrix durations do not match the requested block")
        return [[math.inf if value is None else float(value) for value in row] for row in durations]

    def matrix(self, coordinates: Sequence[tuple[float, float]]) -> list[list[float]]:
        """Pairwise travel durations in seconds for (lat, lon) pairs.

        Large inputs are split into source/destination blocks. Pairs with no
        route come back as ``math.inf``. Any failed block raises
        ``MatrixUnavailableError``.
        """
        count = len(coordinates)
        if count == 0:
            return []
        if count == 1:
            return [[0.0]]

        size = self.max_coordinates_per_request
        full: list[list[float]] = [[0.0] * count for _ in range(count)]
        requests_made = 0
        for src_start in range(0, count, size):
            sources = coordinates[src_start : src_start + size]
            for dst_start in range(0, count, size):
                destinations = coordinates[dst_start : dst_start + size]
                same_block = src_start == dst_start
                if same_block and len(sources) < 2:
                    continue
                try:
                    block = self._matrix_block(sources, destinations, same_block)
                except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
                    raise MatrixUnavailableError(
                        f"Mapbox matrix block [{src_start}:{src_start + len(sources)}] -> "
                        f"[{dst_start}:{dst_start + len(destinations)}] failed: {exc}"
                    ) from exc
                requests_made += 1
                for row, durations in enumerate(block):
                    for col, value in enumerate(durations):
                        i, j = src_start + row, dst_start + col
                        if i == j:
                            continue
                        full[i][j] = value

        logger.debug(f"Built {count}x{count} Mapbox matrix with {requests_made} requests")
        return full

    def route_duration(self, origin: tuple[float, float], destination: tuple[float, float]) -> float | None:
        """Driving duration in seconds between two (lat, lon) pairs, or None without a route."""
        url = f"{DIRECTIONS_URL}/{self.profile}/{_coordinate_path([origin, destination])}"
        data = self._get_json(url, {"access_token": self.access_token})
        routes = data.get("routes") if isinstance(data, dict) else None
        if not routes or not isinstance(routes[0], dict):
            return None
        duration = routes[0].get("duration")
        if isinstance(duration, bool) or not isinstance(duration, (int, float)):
            return None
        return float(duration)
