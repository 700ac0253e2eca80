"""Geospatial helper functions."""

from __future__ import annotations

import math

from shapely.geometry import Point

from ..models.domain import Coordinate


def to_point(coordinate: Coordinate) -> Point:
    """Planar point in (lng, lat) axis order."""

    return Point(coordinate.lng, coordinate.lat)


def coordinate_distance(a: Coordinate, b: Coordinate) -> float:
    """Euclidean distance in degree space, not a ground distance."""

    return to_point(a).distance(to_point(b))


def coordinates_match(a: Coordinate, b: Coordinate, tolerance: float) -> bool:
    """Return True if both axes differ by less than ``tolerance`` degrees."""

    return abs(a.lat - b.lat) < tolerance and abs(a.lng - b.lng) < tolerance


def is_finite_coordinate(lat: object, lng: object) -> bool:
    try:
        return math.isfinite(float(lat)) and math.isfinite(float(lng))
    except (TypeError, ValueError):
        return False
