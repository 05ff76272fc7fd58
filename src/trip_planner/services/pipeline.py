"""End-to-end trip planning: geocode, cluster, renumber, route."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Sequence

from ..models.domain import FailedGeocode, GeoPoint, Record
from ..schemas.trips import TripPlanConfig
from .clustering.base import ClusteringPrimitive
from .clustering.engine import cluster_points
from .geocoding.client import GeocodingClient
from .geocoding.service import geocode_records
from .routing.cost import CostModel, build_cost_model
from .routing.models import Route
from .routing.service import optimize_routes

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineContext:
    """Output of each stage, handed to the next one."""

    records: list[Record] = field(default_factory=list)
    geocoded: list[GeoPoint] = field(default_factory=list)
    failed: list[FailedGeocode] = field(default_factory=list)
    clustered: list[GeoPoint] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    cancelled: bool = False


def validate_config(config: TripPlanConfig) -> None:
    """Reject a configuration before any network or clustering work."""
    # re-run the model validators; configs may have been mutated after construction
    TripPlanConfig.model_validate(config.model_dump())


def run_geocoding(
    context: PipelineContext,
    client: GeocodingClient,
    *,
    cancel: threading.Event | None = None,
    delay: float | None = None,
) -> PipelineContext:
    batch = geocode_records(context.records, client, cancel=cancel, delay=delay)
    context.geocoded = batch.geocoded
    context.failed = batch.failed
    context.cancelled = batch.cancelled
    return context


def run_clustering(
    context: PipelineContext,
    config: TripPlanConfig,
    partitioner: ClusteringPrimitive | None = None,
) -> PipelineContext:
    context.routes = []
    context.clustered = cluster_points(
        context.geocoded,
        config.strategy,
        k=config.k,
        min_size=config.min_size,
        max_size=config.max_size,
        partitioner=partitioner,
    )
    return context


def resolve_starting_point(address: str | None, client: GeocodingClient | None) -> GeoPoint | None:
    if not address or not address.strip():
        return None
    if client is None:
        raise ValueError("A geocoding client is required to resolve the starting address.")
    logger.info(f"Geocoding starting address: {address}...")
    result = client.geocode(address.strip())
    if result is None:
        raise ValueError(f"Could not geocode starting address: '{address}'. Please check the address.")
    logger.info(f"Starting address geocoded: [{result.lat:.6f}, {result.lon:.6f}]")
    return GeoPoint(name="Starting Point", address=address.strip(), lat=result.lat, lon=result.lon)


def run_optimization(
    context: PipelineContext,
    config: TripPlanConfig,
    *,
    cost_model: CostModel | None = None,
    client: GeocodingClient | None = None,
) -> PipelineContext:
    if not context.clustered:
        logger.warning("No clustered points to optimize.")
        context.routes = []
        return context
    owns_model = cost_model is None
    cost_model = cost_model or build_cost_model(config.metric, config.api_key)
    try:
        starting_point = resolve_starting_point(config.starting_address, client)
        context.routes = optimize_routes(context.clustered, cost_model, starting_point)
    finally:
        if owns_model:
            cost_model.close()
    return context


def run_pipeline(
    records: Sequence[Record],
    config: TripPlanConfig,
    *,
    client: GeocodingClient,
    partitioner: ClusteringPrimitive | None = None,
    cost_model: CostModel | None = None,
    cancel: threading.Event | None = None,
    delay: float | None = None,
) -> PipelineContext:
    """Run every stage; a cancelled geocoding run stops before clustering."""
    validate_config(config)
    context = PipelineContext(records=list(records))
    run_geocoding(context, client, cancel=cancel, delay=delay)
    if context.cancelled or not context.geocoded:
        return context
    run_clustering(context, config, partitioner)
    run_optimization(context, config, cost_model=cost_model, client=client)
    return context
