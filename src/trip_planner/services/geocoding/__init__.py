"""Geocoding with caching, address variants and failure diagnosis."""

from .cache import GeocodeCache, InMemoryGeocodeCache, JsonFileGeocodeCache, shared_geocode_cache
from .classifier import classify_failure, summarize_failures
from .client import GeocodingClient
from .service import GeocodeBatch, apply_manual_fix, geocode_records

__all__ = [
    "GeocodeBatch",
    "GeocodeCache",
    "GeocodingClient",
    "InMemoryGeocodeCache",
    "JsonFileGeocodeCache",
    "apply_manual_fix",
    "classify_failure",
    "geocode_records",
    "shared_geocode_cache",
    "summarize_failures",
]
