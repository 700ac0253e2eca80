from __future__ import annotations

import pytest

from fakes import ORIGIN, FakeDistance, FakeOptimizer, make_order
from src.lastmile.config import Settings
from src.lastmile.persistence.memory import (
    InMemoryHandlerRepository,
    InMemoryOrderRepository,
    InMemoryRouteRepository,
    InMemoryShipmentRepository,
)
from src.lastmile.services.routing.service import RouteService


@pytest.fixture
def config() -> Settings:
    return Settings(
        routing_origin_lat=ORIGIN.lat,
        routing_origin_lng=ORIGIN.lng,
        supabase_url=None,
        supabase_key=None,
        _env_file=None,
    )


@pytest.fixture
def orders() -> InMemoryOrderRepository:
    return InMemoryOrderRepository(
        [
            make_order(12, 12.1301, -86.2510),
            make_order(15, 12.1402, -86.2603, handler_id=7),
            make_order(18, 12.1205, -86.2701),
            make_order(21, None, None),
        ]
    )


@pytest.fixture
def handlers() -> InMemoryHandlerRepository:
    return InMemoryHandlerRepository([3, 7])


@pytest.fixture
def route_repository() -> InMemoryRouteRepository:
    return InMemoryRouteRepository()


@pytest.fixture
def shipment_repository() -> InMemoryShipmentRepository:
    return InMemoryShipmentRepository()


@pytest.fixture
def optimizer() -> FakeOptimizer:
    return FakeOptimizer()


@pytest.fixture
def distance_client() -> FakeDistance:
    return FakeDistance()


@pytest.fixture
def route_service(
    config, orders, handlers, route_repository, shipment_repository, optimizer, distance_client
) -> RouteService:
    return RouteService(
        orders=orders,
        handlers=handlers,
        routes=route_repository,
        shipments=shipment_repository,
        optimizer=optimizer,
        distance_client=distance_client,
        config=config,
    )
