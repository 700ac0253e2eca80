"""Resolve provider waypoints back onto the submitted stops.

The optimizer does not echo caller identifiers, so every returned waypoint
is mapped onto exactly one submitted stop through four tiers, tried in order:

1. ``index_hint``: the waypoint's ``original_index`` points at an unused stop.
2. ``exact_coordinate``: an unused stop sits at the waypoint location within
   the match tolerance.
3. ``nearest``: the unused stop closest to the waypoint in degree space, ties
   going to the lowest submission index.
4. ``positional``: the first unused stop in submission order.

A stop index is never assigned twice.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ...config import settings
from ...errors import ProviderContractError
from ...models.domain import Coordinate, ValidatedStop
from ..geospatial import coordinate_distance, coordinates_match
from .models import (
    TIER_EXACT_COORDINATE,
    TIER_INDEX_HINT,
    TIER_NEAREST,
    TIER_POSITIONAL,
    AssignedStop,
    Leg,
    OptimizationResult,
    Waypoint,
)

logger = logging.getLogger(__name__)


class WaypointAssignmentResolver:
    def __init__(
        self,
        match_tolerance: float | None = None,
        proximity_tolerance: float | None = None,
    ) -> None:
        self.match_tolerance = match_tolerance if match_tolerance is not None else settings.waypoint_match_tolerance
        self.proximity_tolerance = (
            proximity_tolerance if proximity_tolerance is not None else settings.waypoint_proximity_tolerance
        )

    def is_origin(self, waypoint: Waypoint, origin: Coordinate) -> bool:
        if waypoint.original_index is not None:
            return waypoint.original_index == 0
        return coordinates_match(waypoint.coordinate, origin, self.match_tolerance)

    def delivery_waypoints(self, waypoints: Sequence[Waypoint], origin: Coordinate) -> list[Waypoint]:
        """Drop the origin and return the rest in optimizer-assigned order.

        Waypoints are sorted by ``waypoint_index`` only when every one of
        them carries it; otherwise the response order is kept as is.
        """
        remaining = [waypoint for waypoint in waypoints if not self.is_origin(waypoint, origin)]
        if remaining and all(waypoint.waypoint_index is not None for waypoint in remaining):
            remaining.sort(key=lambda waypoint: waypoint.waypoint_index)
        return remaining

    def resolve(
        self,
        result: OptimizationResult,
        stops: Sequence[ValidatedStop],
        origin: Coordinate,
    ) -> list[AssignedStop]:
        """Map each delivery waypoint to one stop, in optimized order."""
        if not stops:
            raise ValueError("At least one stop is required to resolve waypoints.")

        waypoints = self.delivery_waypoints(result.waypoints, origin)
        if not waypoints:
            raise ProviderContractError("The optimizer returned no delivery waypoints for the route.")
        if len(waypoints) < len(stops):
            raise ProviderContractError(
                f"The optimizer returned {len(waypoints)} delivery waypoints for {len(stops)} orders."
            )
        if len(waypoints) > len(stops):
            logger.warning(
                f"Received {len(waypoints)} waypoints for {len(stops)} orders; "
                f"keeping the first {len(stops)} in optimized order."
            )
            waypoints = waypoints[: len(stops)]

        used: set[int] = set()
        assignments: list[AssignedStop] = []
        for position, waypoint in enumerate(waypoints):
            index, tier = self._resolve_index(waypoint, stops, used)
            used.add(index)
            assignments.append(
                AssignedStop(
                    stop=stops[index],
                    stop_index=index,
                    waypoint=waypoint,
                    leg=_leg_at(result.legs, position),
                    tier=tier,
                )
            )
            logger.debug(f"Waypoint {position} -> order {stops[index].order_id} via {tier}")
        return assignments

    def _resolve_index(
        self,
        waypoint: Waypoint,
        stops: Sequence[ValidatedStop],
        used: set[int],
    ) -> tuple[int, str]:
        hint = waypoint.original_index
        if hint is not None and hint > 0:
            candidate = hint - 1
            if candidate < len(stops) and candidate not in used:
                return candidate, TIER_INDEX_HINT

        location = waypoint.coordinate
        for index, stop in enumerate(stops):
            if index not in used and coordinates_match(stop.location, location, self.match_tolerance):
                return index, TIER_EXACT_COORDINATE

        closest = self._closest_unused(location, stops, used)
        if closest is not None:
            index, distance = closest
            if distance < self.proximity_tolerance:
                logger.warning(
                    f"Waypoint without exact match assigned to order {stops[index].order_id} "
                    f"by proximity ({distance:.6f} deg)."
                )
            else:
                logger.warning(
                    f"Waypoint outside tolerance ({distance:.6f} deg); "
                    f"assigning order {stops[index].order_id} by proximity."
                )
            return index, TIER_NEAREST

        for index, stop in enumerate(stops):
            if index not in used:
                logger.warning(f"Waypoint without a usable match; assigning order {stop.order_id} by elimination.")
                return index, TIER_POSITIONAL

        raise ProviderContractError("Could not determine the order for a waypoint returned by the optimizer.")

    @staticmethod
    def _closest_unused(
        location: Coordinate,
        stops: Sequence[ValidatedStop],
        used: set[int],
    ) -> tuple[int, float] | None:
        best: tuple[int, float] | None = None
        for index, stop in enumerate(stops):
            if index in used:
                continue
            distance = coordinate_distance(stop.location, location)
            # strict comparison keeps the lowest submission index on ties
            if best is None or distance < best[1]:
                best = (index, distance)
        return best


def _leg_at(legs: Sequence[Leg], position: int) -> Leg | None:
    if 0 <= position < len(legs):
        return legs[position]
    return None
