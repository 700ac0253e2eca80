"""Turn resolved assignments into a sequenced route aggregate."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ...models.domain import ROUTE_STATUS_PENDING, Coordinate, Route, RouteStop
from .models import AssignedStop, Leg, OptimizationResult


def _leg_metrics(leg: Leg | None) -> tuple[Optional[float], Optional[float]]:
    # no leg means unknown, never zero travel
    if leg is None:
        return None, None
    return round(leg.distance / 1000, 2), round(leg.duration / 60, 2)


def build_route_stops(assignments: Sequence[AssignedStop]) -> list[RouteStop]:
    """Number stops 1..N in optimized order."""
    stops: list[RouteStop] = []
    for sequence, assignment in enumerate(assignments, start=1):
        distance_km, duration_min = _leg_metrics(assignment.leg)
        stops.append(
            RouteStop(
                order_id=assignment.stop.order_id,
                sequence=sequence,
                lat=assignment.stop.location.lat,
                lng=assignment.stop.location.lng,
                address_label=assignment.stop.label,
                distance_km=distance_km,
                duration_min=duration_min,
            )
        )
    return stops


def build_route(
    *,
    assignments: Sequence[AssignedStop],
    optimization: OptimizationResult,
    origin: Coordinate,
    profile: str,
    name: Optional[str] = None,
    handler_id: Optional[int] = None,
    scheduled_at: Optional[datetime] = None,
) -> Route:
    return Route(
        name=name,
        handler_id=handler_id,
        status=ROUTE_STATUS_PENDING,
        scheduled_at=scheduled_at,
        distance_km=optimization.distance_km,
        duration_min=optimization.duration_min,
        geometry=optimization.geometry,
        provider_request_id=optimization.request_id,
        profile=profile,
        origin=origin,
        stops=build_route_stops(assignments),
    )
