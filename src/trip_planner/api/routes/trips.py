"""Full trip planning endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.trips import (
    FailedGeocodeModel,
    GeoPointModel,
    RouteModel,
    TripPlanRequest,
    TripPlanResponse,
)
from ...services.geocoding.cache import shared_geocode_cache
from ...services.geocoding.client import GeocodingClient
from ...services.pipeline import run_pipeline
from ...services.routing.service import total_distance

router = APIRouter(prefix="/trips", tags=["trips"])
logger = logging.getLogger(__name__)


@router.post("/plan", response_model=TripPlanResponse, status_code=status.HTTP_200_OK)
def plan_trip(payload: TripPlanRequest) -> TripPlanResponse:
    config = payload.config
    try:
        client = GeocodingClient(provider=config.provider, api_key=config.api_key, cache=shared_geocode_cache())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        context = run_pipeline([record.to_domain() for record in payload.records], config, client=client)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error planning trip: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan trip: {str(exc)}",
        ) from exc
    finally:
        client.close()

    return TripPlanResponse(
        geocoded=[GeoPointModel.from_domain(point) for point in context.geocoded],
        failed=[FailedGeocodeModel.from_domain(failure) for failure in context.failed],
        clustered=[GeoPointModel.from_domain(point) for point in context.clustered],
        routes=[RouteModel.from_domain(route) for route in context.routes],
        total_distance=total_distance(context.routes),
        unit="minutes" if config.metric == "mapbox" else "miles",
    )
