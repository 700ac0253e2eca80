"""Routing request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import Route, RouteStop


class CreateRouteRequest(BaseModel):
    name: Optional[str] = Field(default=None, description="Friendly name to identify the route.")
    handler_id: Optional[int] = Field(default=None, description="Delivery handler assigned to the route.")
    order_ids: List[int] = Field(..., description="Orders to optimize, in submission order.")
    scheduled_at: Optional[datetime] = Field(default=None, description="Date and time the route starts.")
    profile: Optional[str] = Field(
        default=None,
        description="Travel profile (driving, driving-traffic, walking, cycling).",
    )
    origin_lat: Optional[float] = Field(default=None, description="Overrides the configured origin latitude.")
    origin_lng: Optional[float] = Field(default=None, description="Overrides the configured origin longitude.")
    round_trip: bool = Field(default=False, description="Whether the route returns to the origin.")


class RouteStopModel(BaseModel):
    order_id: int
    sequence: int
    lat: float
    lng: float
    address_label: str
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None

    @classmethod
    def from_domain(cls, stop: RouteStop) -> "RouteStopModel":
        return cls(
            order_id=stop.order_id,
            sequence=stop.sequence,
            lat=stop.lat,
            lng=stop.lng,
            address_label=stop.address_label,
            distance_km=stop.distance_km,
            duration_min=stop.duration_min,
        )


class RouteModel(BaseModel):
    route_id: int
    name: Optional[str]
    handler_id: Optional[int]
    status: str
    scheduled_at: Optional[datetime]
    distance_km: float
    duration_min: float
    geometry: Optional[str]
    provider_request_id: Optional[str]
    profile: str
    origin_lat: float
    origin_lng: float
    created_at: Optional[datetime] = None
    stops: List[RouteStopModel]

    @classmethod
    def from_domain(cls, route: Route) -> "RouteModel":
        return cls(
            route_id=route.route_id,
            name=route.name,
            handler_id=route.handler_id,
            status=route.status,
            scheduled_at=route.scheduled_at,
            distance_km=route.distance_km,
            duration_min=route.duration_min,
            geometry=route.geometry,
            provider_request_id=route.provider_request_id,
            profile=route.profile,
            origin_lat=route.origin.lat,
            origin_lng=route.origin.lng,
            created_at=route.created_at,
            stops=[RouteStopModel.from_domain(stop) for stop in route.ordered_stops()],
        )
