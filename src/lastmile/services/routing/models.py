"""Routing provider payloads and assignment results."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...models.domain import Coordinate, ValidatedStop

TIER_INDEX_HINT = "index_hint"
TIER_EXACT_COORDINATE = "exact_coordinate"
TIER_NEAREST = "nearest"
TIER_POSITIONAL = "positional"


class Waypoint(BaseModel):
    """A provider-returned point, not yet correlated to an order.

    ``original_index`` is the position the point had in the submitted
    coordinate list, where 0 is the origin and stops start at 1.
    """

    model_config = ConfigDict(frozen=True)

    location: tuple[float, float]
    waypoint_index: Optional[int] = Field(default=None, ge=0)
    original_index: Optional[int] = Field(default=None, ge=0)

    @field_validator("location")
    @classmethod
    def _finite_location(cls, value: tuple[float, float]) -> tuple[float, float]:
        if not all(math.isfinite(axis) for axis in value):
            raise ValueError("waypoint location must contain finite numbers")
        return value

    @property
    def coordinate(self) -> Coordinate:
        lng, lat = self.location
        return Coordinate(lat=lat, lng=lng)


class Leg(BaseModel):
    model_config = ConfigDict(frozen=True)

    distance: float = Field(ge=0, description="Meters.")
    duration: float = Field(ge=0, description="Seconds.")


class OptimizationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    waypoints: List[Waypoint] = Field(min_length=1)
    legs: List[Leg] = Field(default_factory=list)
    distance_km: float = Field(ge=0)
    duration_min: float = Field(ge=0)
    geometry: Optional[str] = None
    request_id: Optional[str] = None


class DistanceResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    distance_km: float = Field(ge=0)
    duration_min: float = Field(ge=0)


@dataclass(slots=True)
class AssignedStop:
    """A waypoint resolved back onto one submitted stop."""

    stop: ValidatedStop
    stop_index: int
    waypoint: Waypoint
    leg: Optional[Leg]
    tier: str
