"""Supabase persistence for orders, routes and shipments.

Tables:
    orders       (order_id, handler_id, address_id -> addresses)
    addresses    (address_id, lat, lng, formatted_address)
    handlers     (handler_id)
    routes       (route_id, name, handler_id, status, scheduled_at, distance_km,
                  duration_min, geometry, provider_request_id, profile,
                  origin_lat, origin_lng, created_at)
    route_stops  (stop_id, route_id, order_id, sequence, distance_km,
                  duration_min, lat, lng, address_label)
    shipments    (shipment_id, order_id unique, handler_id, status, scheduled_at,
                  origin_lat, origin_lng, destination_lat, destination_lng,
                  route_id, distance_km)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from supabase import Client

from ..errors import PersistenceError
from ..models.domain import Coordinate, OrderForDelivery, Route, RouteStop, Shipment
from .repositories import HandlerRepository, OrderRepository, RouteRepository, ShipmentRepository

logger = logging.getLogger(__name__)

ROUTE_SELECT = "*, route_stops(*)"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _optional_coordinate(lat: Any, lng: Any) -> Optional[Coordinate]:
    if lat is None or lng is None:
        return None
    return Coordinate(lat=float(lat), lng=float(lng))


class _SupabaseRepository:
    def __init__(self, client: Client | None) -> None:
        if client is None:
            raise PersistenceError("Supabase is not configured. Set LASTMILE_SUPABASE_URL and LASTMILE_SUPABASE_KEY.")
        self.client = client

    def _execute(self, query: Any, action: str) -> list[dict]:
        try:
            response = query.execute()
        except Exception as exc:
            logger.error(f"Supabase {action} failed: {exc}")
            raise PersistenceError(f"Failed to {action}: {exc}") from exc
        return response.data or []


class SupabaseOrderRepository(_SupabaseRepository, OrderRepository):
    def find_many(self, order_ids: Sequence[int]) -> list[OrderForDelivery]:
        if not order_ids:
            return []
        rows = self._execute(
            self.client.table("orders")
            .select("order_id, handler_id, addresses(lat, lng, formatted_address)")
            .in_("order_id", list(order_ids)),
            "load orders",
        )
        orders = []
        for row in rows:
            address = row.get("addresses") or {}
            orders.append(
                OrderForDelivery(
                    order_id=int(row["order_id"]),
                    destination=_optional_coordinate(address.get("lat"), address.get("lng")),
                    address_label=address.get("formatted_address"),
                    handler_id=row.get("handler_id"),
                )
            )
        return orders


class SupabaseHandlerRepository(_SupabaseRepository, HandlerRepository):
    def exists(self, handler_id: int) -> bool:
        rows = self._execute(
            self.client.table("handlers").select("handler_id").eq("handler_id", handler_id).limit(1),
            "look up handler",
        )
        return bool(rows)


def _route_to_row(route: Route) -> dict[str, Any]:
    return {
        "name": route.name,
        "handler_id": route.handler_id,
        "status": route.status,
        "scheduled_at": _format_datetime(route.scheduled_at),
        "distance_km": route.distance_km,
        "duration_min": route.duration_min,
        "geometry": route.geometry,
        "provider_request_id": route.provider_request_id,
        "profile": route.profile,
        "origin_lat": route.origin.lat,
        "origin_lng": route.origin.lng,
    }


def _stop_to_row(route_id: int, stop: RouteStop) -> dict[str, Any]:
    return {
        "route_id": route_id,
        "order_id": stop.order_id,
        "sequence": stop.sequence,
        "distance_km": stop.distance_km,
        "duration_min": stop.duration_min,
        "lat": stop.lat,
        "lng": stop.lng,
        "address_label": stop.address_label,
    }


def _row_to_route(row: dict) -> Route:
    stops = [
        RouteStop(
            order_id=int(stop["order_id"]),
            sequence=int(stop["sequence"]),
            lat=float(stop["lat"]),
            lng=float(stop["lng"]),
            address_label=stop.get("address_label") or f"Order {stop['order_id']}",
            distance_km=_optional_float(stop.get("distance_km")),
            duration_min=_optional_float(stop.get("duration_min")),
            stop_id=stop.get("stop_id"),
        )
        for stop in row.get("route_stops") or []
    ]
    stops.sort(key=lambda stop: stop.sequence)
    return Route(
        route_id=int(row["route_id"]),
        name=row.get("name"),
        handler_id=row.get("handler_id"),
        status=row["status"],
        scheduled_at=_parse_datetime(row.get("scheduled_at")),
        distance_km=float(row.get("distance_km") or 0.0),
        duration_min=float(row.get("duration_min") or 0.0),
        geometry=row.get("geometry"),
        provider_request_id=row.get("provider_request_id"),
        profile=row["profile"],
        origin=Coordinate(lat=float(row["origin_lat"]), lng=float(row["origin_lng"])),
        stops=stops,
        created_at=_parse_datetime(row.get("created_at")),
    )


class SupabaseRouteRepository(_SupabaseRepository, RouteRepository):
    def save(self, route: Route) -> Route:
        """Insert the route and its stops; the route row is removed if the stops fail."""
        inserted = self._execute(self.client.table("routes").insert(_route_to_row(route)), "save route")
        if not inserted:
            raise PersistenceError("Route insert returned no row.")
        route_id = int(inserted[0]["route_id"])

        try:
            self._execute(
                self.client.table("route_stops").insert([_stop_to_row(route_id, stop) for stop in route.stops]),
                "save route stops",
            )
        except PersistenceError:
            logger.warning(f"Rolling back route {route_id} after stop insert failure")
            self._execute(self.client.table("routes").delete().eq("route_id", route_id), "roll back route")
            raise

        saved = self.find(route_id)
        if saved is None:
            raise PersistenceError(f"Route {route_id} not readable after insert.")
        return saved

    def find(self, route_id: int) -> Optional[Route]:
        rows = self._execute(
            self.client.table("routes").select(ROUTE_SELECT).eq("route_id", route_id).limit(1),
            "load route",
        )
        return _row_to_route(rows[0]) if rows else None

    def list(self, handler_id: Optional[int] = None) -> list[Route]:
        query = self.client.table("routes").select(ROUTE_SELECT)
        if handler_id is not None:
            query = query.eq("handler_id", handler_id)
        rows = self._execute(query.order("created_at", desc=True), "list routes")
        return [_row_to_route(row) for row in rows]


def _shipment_to_row(shipment: Shipment) -> dict[str, Any]:
    row: dict[str, Any] = {
        "order_id": shipment.order_id,
        "handler_id": shipment.handler_id,
        "status": shipment.status,
        "scheduled_at": _format_datetime(shipment.scheduled_at),
        "origin_lat": shipment.origin.lat if shipment.origin else None,
        "origin_lng": shipment.origin.lng if shipment.origin else None,
        "destination_lat": shipment.destination.lat if shipment.destination else None,
        "destination_lng": shipment.destination.lng if shipment.destination else None,
        "route_id": shipment.route_id,
        "distance_km": shipment.distance_km,
    }
    if shipment.shipment_id is not None:
        row["shipment_id"] = shipment.shipment_id
    return row


def _row_to_shipment(row: dict) -> Shipment:
    return Shipment(
        shipment_id=row.get("shipment_id"),
        order_id=int(row["order_id"]),
        status=row.get("status") or "",
        handler_id=row.get("handler_id"),
        scheduled_at=_parse_datetime(row.get("scheduled_at")),
        origin=_optional_coordinate(row.get("origin_lat"), row.get("origin_lng")),
        destination=_optional_coordinate(row.get("destination_lat"), row.get("destination_lng")),
        route_id=row.get("route_id"),
        distance_km=_optional_float(row.get("distance_km")),
    )


class SupabaseShipmentRepository(_SupabaseRepository, ShipmentRepository):
    def find_by_order(self, order_id: int) -> Optional[Shipment]:
        rows = self._execute(
            self.client.table("shipments").select("*").eq("order_id", order_id).limit(1),
            f"load shipment for order {order_id}",
        )
        return _row_to_shipment(rows[0]) if rows else None

    def upsert(self, shipment: Shipment) -> Shipment:
        rows = self._execute(
            self.client.table("shipments").upsert(_shipment_to_row(shipment), on_conflict="order_id"),
            f"save shipment for order {shipment.order_id}",
        )
        return _row_to_shipment(rows[0]) if rows else shipment
