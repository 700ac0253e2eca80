"""Repository contracts for orders, handlers, routes and shipments."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..models.domain import OrderForDelivery, Route, Shipment


class OrderRepository(ABC):
    @abstractmethod
    def find_many(self, order_ids: Sequence[int]) -> list[OrderForDelivery]:
        """Return the orders that exist; unknown ids are simply absent."""
        raise NotImplementedError


class HandlerRepository(ABC):
    @abstractmethod
    def exists(self, handler_id: int) -> bool:
        raise NotImplementedError


class RouteRepository(ABC):
    @abstractmethod
    def save(self, route: Route) -> Route:
        """Persist the route and all of its stops as one unit."""
        raise NotImplementedError

    @abstractmethod
    def find(self, route_id: int) -> Optional[Route]:
        raise NotImplementedError

    @abstractmethod
    def list(self, handler_id: Optional[int] = None) -> list[Route]:
        """Routes newest first, optionally restricted to one handler."""
        raise NotImplementedError


class ShipmentRepository(ABC):
    @abstractmethod
    def find_by_order(self, order_id: int) -> Optional[Shipment]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, shipment: Shipment) -> Shipment:
        """Insert or replace the shipment keyed by its order id."""
        raise NotImplementedError
