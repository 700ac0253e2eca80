import pytest

from fakes import make_order
from src.lastmile.errors import NotFoundError, ValidationError
from src.lastmile.models.domain import Coordinate, OrderForDelivery
from src.lastmile.persistence.memory import InMemoryOrderRepository
from src.lastmile.services.routing.stops import StopSetValidator


@pytest.fixture
def validator(orders) -> StopSetValidator:
    return StopSetValidator(orders)


def test_stops_follow_submission_order(validator):
    stops = validator.validate([18, 12, 15])

    assert [stop.order_id for stop in stops] == [18, 12, 15]
    assert stops[0].location == Coordinate(lat=12.1205, lng=-86.2701)
    assert stops[2].handler_id == 7


def test_empty_request_is_rejected(validator):
    with pytest.raises(ValidationError):
        validator.validate([])


def test_duplicate_orders_are_rejected(validator):
    with pytest.raises(ValidationError, match="more than once: 12"):
        validator.validate([12, 15, 12])


def test_unknown_orders_are_enumerated(validator):
    with pytest.raises(NotFoundError) as excinfo:
        validator.validate([12, 99, 98])

    assert excinfo.value.missing == (99, 98)


def test_missing_coordinate_rejects_the_whole_batch(validator):
    with pytest.raises(ValidationError, match="21"):
        validator.validate([12, 21])


def test_non_finite_coordinate_is_rejected():
    validator = StopSetValidator(InMemoryOrderRepository([make_order(1, float("nan"), -86.2)]))

    with pytest.raises(ValidationError):
        validator.validate([1])


def test_label_defaults_to_order_number():
    repository = InMemoryOrderRepository([OrderForDelivery(order_id=5, destination=Coordinate(lat=12.1, lng=-86.2))])

    stops = StopSetValidator(repository).validate([5])

    assert stops[0].label == "Order 5"
