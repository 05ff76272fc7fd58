"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ...models.domain import GeoPoint


@dataclass(slots=True)
class Route:
    cluster: int
    points: List[GeoPoint]
    distance: float
    unit: str = "miles"
    metadata: dict = field(default_factory=dict)

    @property
    def stop_count(self) -> int:
        return len(self.points)
