"""Domain models for orders, routes and shipments."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

ROUTE_STATUS_PENDING = "pending"
SHIPMENT_STATUS_PROGRAMMED = "programmed"
SHIPMENT_STATUS_DELIVERED = "delivered"

ROLE_DRIVER = "driver"


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class OrderForDelivery:
    """An order as loaded for routing; immutable for one route-creation call."""

    order_id: int
    destination: Optional[Coordinate]
    address_label: Optional[str] = None
    handler_id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ValidatedStop:
    """An order whose destination is usable, in caller submission order."""

    order_id: int
    location: Coordinate
    label: str
    handler_id: Optional[int] = None


@dataclass(slots=True)
class RouteStop:
    order_id: int
    sequence: int
    lat: float
    lng: float
    address_label: str
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    stop_id: Optional[int] = None


@dataclass(slots=True)
class Route:
    """Route aggregate root; owns its stops exclusively."""

    name: Optional[str]
    handler_id: Optional[int]
    status: str
    scheduled_at: Optional[datetime]
    distance_km: float
    duration_min: float
    geometry: Optional[str]
    provider_request_id: Optional[str]
    profile: str
    origin: Coordinate
    stops: List[RouteStop] = field(default_factory=list)
    route_id: Optional[int] = None
    created_at: Optional[datetime] = None

    def ordered_stops(self) -> list[RouteStop]:
        return sorted(self.stops, key=lambda stop: stop.sequence)


@dataclass(slots=True)
class Shipment:
    """Per-order delivery tracking record; one per order."""

    order_id: int
    status: str
    handler_id: Optional[int]
    scheduled_at: Optional[datetime]
    origin: Optional[Coordinate]
    destination: Optional[Coordinate]
    route_id: Optional[int]
    distance_km: Optional[float]
    shipment_id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class RequestingIdentity:
    """Identity resolved by the external auth collaborator."""

    user_id: Optional[str] = None
    roles: tuple[str, ...] = ()
    handler_id: Optional[int] = None

    @property
    def is_driver(self) -> bool:
        return ROLE_DRIVER in {role.strip().lower() for role in self.roles}
