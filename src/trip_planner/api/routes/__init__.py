"""Route group exports."""

from . import clusters, geocoding, health, routes, trips

__all__ = ["clusters", "geocoding", "health", "routes", "trips"]
