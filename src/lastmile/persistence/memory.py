"""Process-local repositories used when no database is configured."""

from __future__ import annotations

import copy
import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from ..models.domain import OrderForDelivery, Route, Shipment
from .repositories import HandlerRepository, OrderRepository, RouteRepository, ShipmentRepository


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, orders: Iterable[OrderForDelivery] = ()) -> None:
        self._orders = {order.order_id: order for order in orders}

    def add(self, order: OrderForDelivery) -> None:
        self._orders[order.order_id] = order

    def find_many(self, order_ids: Sequence[int]) -> list[OrderForDelivery]:
        return [self._orders[order_id] for order_id in dict.fromkeys(order_ids) if order_id in self._orders]


class InMemoryHandlerRepository(HandlerRepository):
    def __init__(self, handler_ids: Iterable[int] = ()) -> None:
        self._handler_ids = set(handler_ids)

    def add(self, handler_id: int) -> None:
        self._handler_ids.add(handler_id)

    def exists(self, handler_id: int) -> bool:
        return handler_id in self._handler_ids


class InMemoryRouteRepository(RouteRepository):
    """Stores deep copies so callers never share state with the store."""

    def __init__(self) -> None:
        self._routes: dict[int, Route] = {}
        self._route_ids = itertools.count(1)
        self._stop_ids = itertools.count(1)
        self._lock = threading.Lock()

    def save(self, route: Route) -> Route:
        with self._lock:
            route_id = route.route_id if route.route_id is not None else next(self._route_ids)
            stops = [
                replace(stop, stop_id=stop.stop_id if stop.stop_id is not None else next(self._stop_ids))
                for stop in route.stops
            ]
            stored = replace(
                route,
                route_id=route_id,
                stops=stops,
                created_at=route.created_at or datetime.now(timezone.utc),
            )
            self._routes[route_id] = stored
            return copy.deepcopy(stored)

    def find(self, route_id: int) -> Optional[Route]:
        with self._lock:
            route = self._routes.get(route_id)
            return copy.deepcopy(route) if route is not None else None

    def list(self, handler_id: Optional[int] = None) -> list[Route]:
        with self._lock:
            routes = [
                route for route in self._routes.values() if handler_id is None or route.handler_id == handler_id
            ]
            routes.sort(key=lambda route: (route.created_at, route.route_id), reverse=True)
            return copy.deepcopy(routes)


class InMemoryShipmentRepository(ShipmentRepository):
    def __init__(self, shipments: Iterable[Shipment] = ()) -> None:
        self._shipments: dict[int, Shipment] = {}
        self._shipment_ids = itertools.count(1)
        self._lock = threading.Lock()
        for shipment in shipments:
            self.upsert(shipment)

    def find_by_order(self, order_id: int) -> Optional[Shipment]:
        with self._lock:
            shipment = self._shipments.get(order_id)
            return replace(shipment) if shipment is not None else None

    def upsert(self, shipment: Shipment) -> Shipment:
        with self._lock:
            existing = self._shipments.get(shipment.order_id)
            if shipment.shipment_id is not None:
                shipment_id = shipment.shipment_id
            elif existing is not None:
                shipment_id = existing.shipment_id
            else:
                shipment_id = next(self._shipment_ids)
            stored = replace(shipment, shipment_id=shipment_id)
            self._shipments[shipment.order_id] = stored
            return replace(stored)

    def all(self) -> list[Shipment]:
        with self._lock:
            return [replace(shipment) for shipment in self._shipments.values()]
