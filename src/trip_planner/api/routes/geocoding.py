"""Geocoding endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.trips import FailedGeocodeModel, GeocodeRequest, GeocodeResponse, GeoPointModel
from ...services.geocoding.cache import shared_geocode_cache
from ...services.geocoding.client import GeocodingClient
from ...services.geocoding.service import geocode_records

router = APIRouter(prefix="/geocode", tags=["geocoding"])
logger = logging.getLogger(__name__)


@router.post("", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
def geocode(payload: GeocodeRequest) -> GeocodeResponse:
    try:
        client = GeocodingClient(
            provider=payload.provider,
            api_key=payload.api_key,
            cache=shared_geocode_cache(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        batch = geocode_records([record.to_domain() for record in payload.records], client)
    except Exception as exc:
        logger.exception(f"Error geocoding records: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to geocode records: {str(exc)}",
        ) from exc
    finally:
        client.close()

    return GeocodeResponse(
        geocoded=[GeoPointModel.from_domain(point) for point in batch.geocoded],
        failed=[FailedGeocodeModel.from_domain(failure) for failure in batch.failed],
        failure_summary=batch.failure_summary(),
    )
