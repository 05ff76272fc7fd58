"""Domain models for address records and geocoded points."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

OUTLIER_CLUSTER = -1


@dataclass(slots=True)
class Record:
    """Raw input row as delivered by the import collaborator."""

    name: str
    address: str
    columns: dict = field(default_factory=dict)


@dataclass(slots=True)
class GeoPoint:
    """A record with coordinates and, once clustered, a cluster id.

    ``cluster`` is ``None`` until clustering runs; ``-1`` marks an outlier
    that is never routed.
    """

    name: str
    address: str
    lat: float
    lon: float
    columns: dict = field(default_factory=dict)
    cluster: Optional[int] = None

    @classmethod
    def from_record(cls, record: Record, lat: float, lon: float, address: str | None = None) -> "GeoPoint":
        return cls(
            name=record.name,
            address=address if address is not None else record.address,
            lat=lat,
            lon=lon,
            columns=dict(record.columns),
        )

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.lat, self.lon)

    def same_location(self, other: "GeoPoint") -> bool:
        return self.lat == other.lat and self.lon == other.lon


@dataclass(slots=True)
class FailedGeocode:
    name: str
    address: str
    reason: str


@dataclass(slots=True)
class GeocodeResult:
    lat: float
    lon: float
    used_variant: str

    def to_cache(self) -> dict:
        return {"lat": self.lat, "lon": self.lon, "used_variant": self.used_variant}

    @classmethod
    def from_cache(cls, value: dict) -> "GeocodeResult":
        return cls(
            lat=float(value["lat"]),
            lon=float(value["lon"]),
            used_variant=str(value.get("used_variant") or value.get("usedVariant") or "original"),
        )
