"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.trips import OptimizeRequest, OptimizeResponse, RouteModel
from ...services.routing.cost import build_cost_model
from ...services.routing.service import optimize_routes, total_distance

router = APIRouter(prefix="/routes", tags=["routes"])
logger = logging.getLogger(__name__)


@router.post("/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest) -> OptimizeResponse:
    try:
        cost_model = build_cost_model(payload.metric, payload.api_key)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        starting_point = payload.starting_point.to_domain() if payload.starting_point else None
        routes = optimize_routes([point.to_domain() for point in payload.points], cost_model, starting_point)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize routes: {str(exc)}",
        ) from exc
    finally:
        cost_model.close()

    return OptimizeResponse(
        routes=[RouteModel.from_domain(route) for route in routes],
        total_distance=total_distance(routes),
        unit=cost_model.unit,
    )
