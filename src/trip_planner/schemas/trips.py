"""Trip planning request/response schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ..models.domain import FailedGeocode, GeoPoint, Record
from ..services.routing.models import Route


class TripPlanConfig(BaseModel):
    """User-facing options for one planning run."""

    strategy: Literal["byCount", "bySize"] = "byCount"
    k: Optional[int] = Field(default=None, description="Number of clusters for the byCount strategy.")
    min_size: Optional[int] = Field(default=None, description="Smallest allowed cluster for bySize.")
    max_size: Optional[int] = Field(default=None, description="Largest allowed cluster for bySize.")
    metric: Literal["straight", "mapbox"] = Field(
        default="straight",
        description="'straight' for great-circle miles, 'mapbox' for driving minutes.",
    )
    provider: Literal["nominatim", "locationiq", "mapbox"] = "nominatim"
    api_key: Optional[str] = Field(default=None, description="Key for paid geocoding providers and Mapbox routing.")
    starting_address: Optional[str] = Field(default=None, description="Where the first route begins.")

    @model_validator(mode="after")
    def _check_consistency(self) -> "TripPlanConfig":
        if self.strategy == "byCount":
            if self.k is None or self.k < 1:
                raise ValueError("Invalid number of clusters.")
        else:
            if self.min_size is None or self.max_size is None or self.min_size < 1 or self.min_size > self.max_size:
                raise ValueError("Invalid min/max cluster size.")
        key = (self.api_key or "").strip()
        if self.metric == "mapbox" and not key:
            raise ValueError("Road Network metric requires a Mapbox API key.")
        if self.provider in ("locationiq", "mapbox") and not key:
            raise ValueError(f"Please enter an API key for {self.provider}.")
        return self


class RecordModel(BaseModel):
    name: str
    address: str = ""
    columns: Dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> Record:
        return Record(name=self.name, address=self.address, columns=dict(self.columns))


class GeoPointModel(BaseModel):
    name: str
    address: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    columns: Dict[str, Any] = Field(default_factory=dict)
    cluster: Optional[int] = None

    @classmethod
    def from_domain(cls, point: GeoPoint) -> "GeoPointModel":
        return cls(
            name=point.name,
            address=point.address,
            lat=point.lat,
            lon=point.lon,
            columns=point.columns,
            cluster=point.cluster,
        )

    def to_domain(self) -> GeoPoint:
        return GeoPoint(
            name=self.name,
            address=self.address,
            lat=self.lat,
            lon=self.lon,
            columns=dict(self.columns),
            cluster=self.cluster,
        )


class FailedGeocodeModel(BaseModel):
    name: str
    address: Optional[str] = None
    reason: str

    @classmethod
    def from_domain(cls, failure: FailedGeocode) -> "FailedGeocodeModel":
        return cls(name=failure.name, address=failure.address, reason=failure.reason)


class RouteModel(BaseModel):
    cluster: int
    points: List[GeoPointModel]
    distance: Optional[float]
    unit: str

    @classmethod
    def from_domain(cls, route: Route) -> "RouteModel":
        return cls(
            cluster=route.cluster,
            points=[GeoPointModel.from_domain(point) for point in route.points],
            distance=route.distance,
            unit=route.unit,
        )


class GeocodeRequest(BaseModel):
    records: List[RecordModel]
    provider: Literal["nominatim", "locationiq", "mapbox"] = "nominatim"
    api_key: Optional[str] = None


class GeocodeResponse(BaseModel):
    geocoded: List[GeoPointModel]
    failed: List[FailedGeocodeModel]
    failure_summary: Dict[str, int]


class ClusterRequest(BaseModel):
    points: List[GeoPointModel]
    strategy: Literal["byCount", "bySize"] = "byCount"
    k: Optional[int] = None
    min_size: Optional[int] = None
    max_size: Optional[int] = None

    @model_validator(mode="after")
    def _check_parameters(self) -> "ClusterRequest":
        if self.strategy == "byCount" and (self.k is None or self.k < 1):
            raise ValueError("Invalid number of clusters.")
        if self.strategy == "bySize" and (
            self.min_size is None or self.max_size is None or self.min_size < 1 or self.min_size > self.max_size
        ):
            raise ValueError("Invalid min/max cluster size.")
        return self


class ClusterResponse(BaseModel):
    points: List[GeoPointModel]
    cluster_count: int
    cluster_sizes: Dict[int, int]


class OptimizeRequest(BaseModel):
    points: List[GeoPointModel]
    metric: Literal["straight", "mapbox"] = "straight"
    api_key: Optional[str] = None
    starting_point: Optional[GeoPointModel] = None

    @model_validator(mode="after")
    def _check_key(self) -> "OptimizeRequest":
        if self.metric == "mapbox" and not (self.api_key or "").strip():
            raise ValueError("Road Network metric requires a Mapbox API key.")
        return self


class OptimizeResponse(BaseModel):
    routes: List[RouteModel]
    total_distance: Optional[float]
    unit: str


class TripPlanRequest(BaseModel):
    records: List[RecordModel]
    config: TripPlanConfig


class TripPlanResponse(BaseModel):
    geocoded: List[GeoPointModel]
    failed: List[FailedGeocodeModel]
    clustered: List[GeoPointModel]
    routes: List[RouteModel]
    total_distance: Optional[float]
    unit: str
