"""Route origin resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...config import Settings
from ...errors import OriginNotConfiguredError
from ...models.domain import Coordinate
from ..geospatial import is_finite_coordinate


@dataclass(frozen=True, slots=True)
class OriginDefaults:
    lat: Optional[float] = None
    lng: Optional[float] = None

    @classmethod
    def from_settings(cls, config: Settings) -> "OriginDefaults":
        return cls(lat=config.routing_origin_lat, lng=config.routing_origin_lng)


class CoordinateResolver:
    """Resolve the origin from request overrides, falling back per axis to defaults."""

    def __init__(self, defaults: OriginDefaults) -> None:
        self.defaults = defaults

    def resolve(self, lat: Optional[float] = None, lng: Optional[float] = None) -> Coordinate:
        resolved_lat = lat if lat is not None else self.defaults.lat
        resolved_lng = lng if lng is not None else self.defaults.lng
        if not is_finite_coordinate(resolved_lat, resolved_lng):
            raise OriginNotConfiguredError(
                "No route origin found. Configure LASTMILE_ROUTING_ORIGIN_LAT and "
                "LASTMILE_ROUTING_ORIGIN_LNG or send the origin in the request."
            )
        resolved = Coordinate(lat=float(resolved_lat), lng=float(resolved_lng))
        if not (-90.0 <= resolved.lat <= 90.0 and -180.0 <= resolved.lng <= 180.0):
            raise OriginNotConfiguredError(f"Route origin ({resolved.lat}, {resolved.lng}) is out of range.")
        return resolved
