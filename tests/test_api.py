import pytest
from fastapi.testclient import TestClient

from fakes import ORIGIN, optimization, waypoint
from src.lastmile.api import deps
from src.lastmile.api.deps import get_route_service
from src.lastmile.config import settings
from src.lastmile.errors import ProviderUnavailableError
from src.lastmile.main import create_app
from src.lastmile.models.domain import Coordinate
from src.lastmile.persistence.memory import InMemoryOrderRepository

DRIVER_3 = {"X-User-Id": "u-3", "X-User-Roles": "driver", "X-Handler-Id": "3"}
DRIVER_7 = {"X-User-Id": "u-7", "X-User-Roles": "driver", "X-Handler-Id": "7"}


@pytest.fixture
def app(route_service):
    app = create_app()
    app.dependency_overrides[get_route_service] = lambda: route_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(app) -> TestClient:
    return TestClient(app)


def _create(api_client: TestClient, **overrides):
    payload = {
        "name": "Morning route",
        "handler_id": 3,
        "order_ids": [12, 15, 18],
        "scheduled_at": "2025-11-12T14:00:00Z",
    }
    payload.update(overrides)
    return api_client.post("/api/routes", json=payload)


def test_create_route_returns_sequenced_stops(api_client: TestClient):
    response = _create(api_client)

    assert response.status_code == 201
    payload = response.json()
    assert payload["status"] == "pending"
    assert payload["handler_id"] == 3
    assert payload["origin_lat"] == ORIGIN.lat
    assert [stop["sequence"] for stop in payload["stops"]] == [1, 2, 3]
    assert [stop["order_id"] for stop in payload["stops"]] == [12, 15, 18]
    assert payload["stops"][0]["distance_km"] == 1.0
    assert payload["stops"][0]["duration_min"] == 2.0


def test_invalid_order_set_is_a_bad_request(api_client: TestClient):
    response = _create(api_client, order_ids=[12, 21])

    assert response.status_code == 400
    assert "21" in response.json()["detail"]


def test_unknown_orders_are_not_found(api_client: TestClient):
    response = _create(api_client, order_ids=[12, 404])

    assert response.status_code == 404
    assert "404" in response.json()["detail"]


def test_provider_contract_violation_is_a_bad_gateway(api_client: TestClient, optimizer):
    optimizer.result = optimization([waypoint(ORIGIN, 0, 0), waypoint(Coordinate(lat=12.1301, lng=-86.2510), 1, 1)])

    response = _create(api_client)

    assert response.status_code == 502
    assert api_client.get("/api/routes").json() == []


def test_unconfigured_provider_is_a_bad_gateway(app):
    def unavailable():
        raise ProviderUnavailableError("Routing provider is not configured.")

    app.dependency_overrides[get_route_service] = unavailable

    response = _create(TestClient(app))

    assert response.status_code == 502
    assert response.json()["detail"] == "Routing provider is not configured."


def test_get_route_is_scoped_to_the_assigned_driver(api_client: TestClient):
    route_id = _create(api_client).json()["route_id"]

    assert api_client.get(f"/api/routes/{route_id}", headers=DRIVER_3).status_code == 200
    assert api_client.get(f"/api/routes/{route_id}", headers=DRIVER_7).status_code == 403
    assert api_client.get(f"/api/routes/{route_id}").status_code == 200
    assert api_client.get("/api/routes/999").status_code == 404


def test_list_routes_filters_by_handler(api_client: TestClient):
    first = _create(api_client, order_ids=[12]).json()["route_id"]
    second = _create(api_client, order_ids=[15], handler_id=7).json()["route_id"]

    everything = api_client.get("/api/routes").json()
    by_handler = api_client.get("/api/routes", params={"handler_id": 7}).json()
    for_driver = api_client.get("/api/routes", headers=DRIVER_3).json()

    assert [route["route_id"] for route in everything] == [second, first]
    assert [route["route_id"] for route in by_handler] == [second]
    assert [route["route_id"] for route in for_driver] == [first]


def test_health_endpoint(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_service_without_database_warns_that_orders_must_be_seeded(monkeypatch, caplog):
    monkeypatch.setattr(settings, "mapbox_access_token", "pk.test")
    monkeypatch.setattr(deps, "get_supabase_client", lambda: None)
    get_route_service.cache_clear()

    try:
        service = get_route_service()
    finally:
        get_route_service.cache_clear()

    assert isinstance(service.stop_validator.orders, InMemoryOrderRepository)
    assert "until the in-memory order and handler repositories are seeded" in caplog.text
