"""Clustering endpoints."""

from __future__ import annotations

import logging
from collections import Counter

from fastapi import APIRouter, HTTPException, status

from ...schemas.trips import ClusterRequest, ClusterResponse, GeoPointModel
from ...services.clustering.engine import cluster_points

router = APIRouter(prefix="/clusters", tags=["clusters"])
logger = logging.getLogger(__name__)


@router.post("", response_model=ClusterResponse, status_code=status.HTTP_200_OK)
def create_clusters(payload: ClusterRequest) -> ClusterResponse:
    try:
        clustered = cluster_points(
            [point.to_domain() for point in payload.points],
            payload.strategy,
            k=payload.k,
            min_size=payload.min_size,
            max_size=payload.max_size,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error clustering points: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to cluster points: {str(exc)}",
        ) from exc

    sizes = Counter(point.cluster for point in clustered if point.cluster is not None and point.cluster != -1)
    return ClusterResponse(
        points=[GeoPointModel.from_domain(point) for point in clustered],
        cluster_count=len(sizes),
        cluster_sizes=dict(sorted(sizes.items())),
    )
