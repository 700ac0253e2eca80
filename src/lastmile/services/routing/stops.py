"""Validation of the orders submitted for one route."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Sequence

from ...errors import NotFoundError, ValidationError
from ...models.domain import Coordinate, ValidatedStop
from ...persistence.repositories import OrderRepository
from ..geospatial import is_finite_coordinate

logger = logging.getLogger(__name__)


class StopSetValidator:
    def __init__(self, orders: OrderRepository) -> None:
        self.orders = orders

    def validate(self, order_ids: Sequence[int]) -> list[ValidatedStop]:
        """Load the orders and return stops in the caller's submission order.

        The whole batch is rejected if any order is unknown or lacks a
        usable destination; partial routes are never built.
        """
        if not order_ids:
            raise ValidationError("At least one order is required to build a route.")

        duplicates = sorted(order_id for order_id, count in Counter(order_ids).items() if count > 1)
        if duplicates:
            raise ValidationError(f"Orders submitted more than once: {', '.join(str(i) for i in duplicates)}")

        found = {order.order_id: order for order in self.orders.find_many(order_ids)}
        missing = [order_id for order_id in order_ids if order_id not in found]
        if missing:
            raise NotFoundError("Orders", missing)

        invalid = [
            order_id
            for order_id in order_ids
            if found[order_id].destination is None
            or not is_finite_coordinate(found[order_id].destination.lat, found[order_id].destination.lng)
        ]
        if invalid:
            raise ValidationError(
                f"Orders {', '.join(str(i) for i in invalid)} have no valid delivery coordinates registered."
            )

        stops = []
        for order_id in order_ids:
            order = found[order_id]
            stops.append(
                ValidatedStop(
                    order_id=order_id,
                    location=Coordinate(lat=float(order.destination.lat), lng=float(order.destination.lng)),
                    label=order.address_label or f"Order {order_id}",
                    handler_id=order.handler_id,
                )
            )
        logger.debug(f"Validated {len(stops)} stops for routing")
        return stops
