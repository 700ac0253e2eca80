from datetime import datetime, timezone

import pytest

from fakes import ORIGIN, FakeOptimizer, optimization, waypoint
from src.lastmile.errors import (
    AuthorizationError,
    NotFoundError,
    OperationCancelledError,
    PersistenceError,
    ProviderContractError,
    ValidationError,
)
from src.lastmile.models.domain import (
    SHIPMENT_STATUS_DELIVERED,
    SHIPMENT_STATUS_PROGRAMMED,
    Coordinate,
    RequestingIdentity,
    Shipment,
)
from src.lastmile.persistence.memory import InMemoryRouteRepository
from src.lastmile.schemas.routing import CreateRouteRequest
from src.lastmile.services.routing.cancellation import CancellationToken
from src.lastmile.services.routing.service import RouteService

STOP_12 = Coordinate(lat=12.1301, lng=-86.2510)
STOP_15 = Coordinate(lat=12.1402, lng=-86.2603)
STOP_18 = Coordinate(lat=12.1205, lng=-86.2701)
SCHEDULED = datetime(2025, 11, 12, 14, 0, tzinfo=timezone.utc)


def _request(**overrides) -> CreateRouteRequest:
    payload = {"order_ids": [12, 15, 18], "name": "Morning route", "handler_id": 3, "scheduled_at": SCHEDULED}
    payload.update(overrides)
    return CreateRouteRequest(**payload)


def test_create_route_sequences_optimized_order(route_service, optimizer, route_repository, shipment_repository):
    optimizer.result = optimization(
        [
            waypoint(ORIGIN, 0, 0),
            waypoint(STOP_15, 1, 2),
            waypoint(STOP_12, 2, 1),
            waypoint(STOP_18, 3, 3),
        ]
    )

    route = route_service.create_route(_request())

    assert [(stop.order_id, stop.sequence) for stop in route.stops] == [(15, 1), (12, 2), (18, 3)]
    assert route.status == "pending"
    assert route.handler_id == 3
    assert route.profile == "driving"
    assert route.origin == ORIGIN
    assert route.provider_request_id == "req-1"
    assert route_repository.find(route.route_id) is not None
    assert optimizer.calls[0]["stops"][0].order_id == 12
    assert optimizer.calls[0]["round_trip"] is False
    shipments = {shipment.order_id: shipment for shipment in shipment_repository.all()}
    assert set(shipments) == {12, 15, 18}
    assert {shipment.route_id for shipment in shipments.values()} == {route.route_id}
    assert {shipment.status for shipment in shipments.values()} == {SHIPMENT_STATUS_PROGRAMMED}


def test_sequence_is_gapless_for_every_route(route_service):
    route = route_service.create_route(_request(order_ids=[18, 12]))

    assert sorted(stop.sequence for stop in route.stops) == [1, 2]
    assert [stop.order_id for stop in route.stops] == [18, 12]


def test_missing_waypoint_fails_without_persisting(route_service, optimizer, route_repository, shipment_repository):
    optimizer.result = optimization([waypoint(ORIGIN, 0, 0), waypoint(STOP_12, 1, 1), waypoint(STOP_15, 2, 2)])

    with pytest.raises(ProviderContractError):
        route_service.create_route(_request())

    assert route_repository.list() == []
    assert shipment_repository.all() == []


def test_missing_coordinate_fails_before_provider_call(route_service, optimizer):
    with pytest.raises(ValidationError):
        route_service.create_route(_request(order_ids=[12, 21]))

    assert optimizer.calls == []


def test_unknown_orders_are_reported(route_service, optimizer):
    with pytest.raises(NotFoundError) as excinfo:
        route_service.create_route(_request(order_ids=[12, 404]))

    assert excinfo.value.missing == (404,)
    assert optimizer.calls == []


def test_unknown_handler_is_not_found(route_service, optimizer):
    with pytest.raises(NotFoundError, match="Handler"):
        route_service.create_route(_request(handler_id=99))

    assert optimizer.calls == []


def test_unknown_profile_is_rejected(route_service, optimizer):
    with pytest.raises(ValidationError, match="profile"):
        route_service.create_route(_request(profile="teleport"))

    assert optimizer.calls == []


def test_too_many_orders_for_provider_is_rejected(route_service, optimizer, config):
    config.optimization_max_coordinates = 3

    with pytest.raises(ValidationError, match="at most 2 orders"):
        route_service.create_route(_request())

    assert optimizer.calls == []


def test_origin_override_and_profile_are_forwarded(route_service, optimizer):
    route = route_service.create_route(_request(origin_lat=12.2, origin_lng=-86.3, profile="cycling", round_trip=True))

    assert optimizer.calls[0]["origin"] == Coordinate(lat=12.2, lng=-86.3)
    assert optimizer.calls[0]["profile"] == "cycling"
    assert optimizer.calls[0]["round_trip"] is True
    assert route.profile == "cycling"


def test_rerouting_keeps_delivered_shipment_frozen(route_service, shipment_repository):
    shipment_repository.upsert(
        Shipment(
            order_id=12,
            status=SHIPMENT_STATUS_DELIVERED,
            handler_id=9,
            scheduled_at=datetime(2025, 11, 1, tzinfo=timezone.utc),
            origin=Coordinate(lat=11.0, lng=-85.0),
            destination=Coordinate(lat=11.5, lng=-85.5),
            route_id=99,
            distance_km=7.5,
        )
    )

    route = route_service.create_route(_request())

    delivered = shipment_repository.find_by_order(12)
    assert delivered.status == SHIPMENT_STATUS_DELIVERED
    assert delivered.destination == Coordinate(lat=11.5, lng=-85.5)
    assert delivered.scheduled_at == datetime(2025, 11, 1, tzinfo=timezone.utc)
    assert delivered.route_id == route.route_id


def test_shipment_failure_does_not_undo_route(route_service, distance_client, route_repository, caplog):
    distance_client.failing = {STOP_15}

    route = route_service.create_route(_request())

    assert route_repository.find(route.route_id) is not None
    assert "failed to sync" in caplog.text


def test_cancelled_request_never_reaches_provider(route_service, optimizer, route_repository):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelledError):
        route_service.create_route(_request(), token=token)

    assert optimizer.calls == []
    assert route_repository.list() == []


def test_expired_deadline_is_honored(route_service, optimizer):
    with pytest.raises(OperationCancelledError, match="Deadline"):
        route_service.create_route(_request(), token=CancellationToken(timeout_seconds=0))

    assert optimizer.calls == []


def test_repository_failure_surfaces_as_persistence_error(
    config, orders, handlers, shipment_repository, distance_client
):
    class BrokenRoutes(InMemoryRouteRepository):
        def save(self, route):
            raise RuntimeError("disk full")

    service = RouteService(
        orders=orders,
        handlers=handlers,
        routes=BrokenRoutes(),
        shipments=shipment_repository,
        optimizer=FakeOptimizer(),
        distance_client=distance_client,
        config=config,
    )

    with pytest.raises(PersistenceError):
        service.create_route(_request())

    assert shipment_repository.all() == []


def test_get_route_enforces_driver_ownership(route_service):
    route = route_service.create_route(_request(handler_id=3))

    assert route_service.get_route(route.route_id, RequestingIdentity(roles=("admin",))).route_id == route.route_id
    assert route_service.get_route(route.route_id, RequestingIdentity(roles=("driver",), handler_id=3))
    with pytest.raises(AuthorizationError):
        route_service.get_route(route.route_id, RequestingIdentity(roles=("driver",), handler_id=7))


def test_get_unknown_route_is_not_found(route_service):
    with pytest.raises(NotFoundError):
        route_service.get_route(404)


def test_list_routes_scopes_drivers_to_their_handler(route_service):
    mine = route_service.create_route(_request(order_ids=[12], handler_id=3))
    other = route_service.create_route(_request(order_ids=[15], handler_id=7))

    driver = RequestingIdentity(roles=("Driver",), handler_id=3)
    assert [route.route_id for route in route_service.list_routes(driver)] == [mine.route_id]
    assert [route.route_id for route in route_service.list_routes(driver, handler_id=7)] == [mine.route_id]
    assert route_service.list_routes(RequestingIdentity(roles=("driver",))) == []
    assert [route.route_id for route in route_service.list_routes(RequestingIdentity(roles=("admin",)))] == [
        other.route_id,
        mine.route_id,
    ]


def test_driver_without_handler_cannot_read_unassigned_route(route_service):
    route = route_service.create_route(_request(order_ids=[12, 15], handler_id=None))
    driver = RequestingIdentity(roles=("driver",), handler_id=None)

    assert route_service.list_routes(driver) == []
    with pytest.raises(AuthorizationError):
        route_service.get_route(route.route_id, driver)
    assert route_service.get_route(route.route_id, RequestingIdentity(roles=("admin",))).handler_id is None
