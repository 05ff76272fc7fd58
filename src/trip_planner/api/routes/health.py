"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/config", status_code=status.HTTP_200_OK)
def health_config() -> dict:
    """Report which optional credentials are configured, without exposing them."""
    return {
        "geocode_provider": settings.geocode_provider,
        "geocode_api_key_configured": bool(settings.geocode_api_key),
        "mapbox_api_key_configured": bool(settings.mapbox_api_key),
        "geocode_cache_file": str(settings.geocode_cache_file),
    }
