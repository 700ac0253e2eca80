"""Project a persisted route onto each order's shipment record."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import SHIPMENT_STATUS_PROGRAMMED, Route, Shipment, ValidatedStop
from ...persistence.repositories import ShipmentRepository
from .cancellation import NEVER_CANCELLED, CancellationToken
from .pool import run_bounded
from .provider import DistanceClient

logger = logging.getLogger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_RELINKED = "relinked"
ACTION_UNCHANGED = "unchanged"
ACTION_FAILED = "failed"


@dataclass(slots=True)
class ShipmentSyncResult:
    order_id: int
    action: str
    shipment: Optional[Shipment] = None
    error: Optional[str] = None


@dataclass(slots=True)
class ShipmentSyncReport:
    route_id: Optional[int]
    results: list[ShipmentSyncResult] = field(default_factory=list)

    @property
    def failed(self) -> list[ShipmentSyncResult]:
        return [result for result in self.results if result.action == ACTION_FAILED]

    def counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for result in self.results:
            counts[result.action] = counts.get(result.action, 0) + 1
        return counts


class ShipmentSynchronizer:
    """Create or update one shipment per routed order.

    Shipments in a terminal status keep every field except the route link.
    Units of work touch distinct orders and run on a bounded worker pool.
    """

    def __init__(
        self,
        shipments: ShipmentRepository,
        distance_client: DistanceClient,
        *,
        terminal_statuses: Sequence[str] | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.shipments = shipments
        self.distance_client = distance_client
        statuses = terminal_statuses if terminal_statuses is not None else settings.terminal_shipment_statuses
        self.terminal_statuses = {status.strip().lower() for status in statuses}
        self.max_workers = max_workers or settings.shipment_sync_max_workers

    def is_terminal(self, shipment: Shipment) -> bool:
        return (shipment.status or "").strip().lower() in self.terminal_statuses

    def synchronize(
        self,
        route: Route,
        stops: Sequence[ValidatedStop],
        token: CancellationToken = NEVER_CANCELLED,
    ) -> ShipmentSyncReport:
        if route.route_id is None:
            raise ValueError("Shipments can only be synchronized for a persisted route.")
        scheduled_at = route.scheduled_at or datetime.now(timezone.utc)

        outcomes = run_bounded(
            list(stops),
            lambda stop: self._sync_stop(route, stop, scheduled_at, token),
            self.max_workers,
        )

        report = ShipmentSyncReport(route_id=route.route_id)
        for outcome in outcomes:
            if outcome.ok:
                report.results.append(outcome.value)
                continue
            logger.error(
                f"Shipment sync failed for order {outcome.item.order_id} on route {route.route_id}: {outcome.error}"
            )
            report.results.append(
                ShipmentSyncResult(order_id=outcome.item.order_id, action=ACTION_FAILED, error=str(outcome.error))
            )
        logger.info(f"Shipment sync for route {route.route_id}: {report.counts()}")
        return report

    def _sync_stop(
        self,
        route: Route,
        stop: ValidatedStop,
        scheduled_at: datetime,
        token: CancellationToken,
    ) -> ShipmentSyncResult:
        token.raise_if_cancelled(f"shipment lookup for order {stop.order_id}")
        existing = self.shipments.find_by_order(stop.order_id)

        if existing is not None and self.is_terminal(existing):
            if existing.route_id == route.route_id:
                return ShipmentSyncResult(order_id=stop.order_id, action=ACTION_UNCHANGED, shipment=existing)
            token.raise_if_cancelled(f"shipment write for order {stop.order_id}")
            saved = self.shipments.upsert(replace(existing, route_id=route.route_id))
            return ShipmentSyncResult(order_id=stop.order_id, action=ACTION_RELINKED, shipment=saved)

        token.raise_if_cancelled(f"distance lookup for order {stop.order_id}")
        metrics = self.distance_client.distance(route.origin, stop.location, route.profile, token=token)
        distance_km = round(metrics.distance_km, 2)
        handler_id = route.handler_id if route.handler_id is not None else stop.handler_id

        if existing is None:
            shipment = Shipment(
                order_id=stop.order_id,
                status=SHIPMENT_STATUS_PROGRAMMED,
                handler_id=handler_id,
                scheduled_at=scheduled_at,
                origin=route.origin,
                destination=stop.location,
                route_id=route.route_id,
                distance_km=distance_km,
            )
            action = ACTION_CREATED
        else:
            shipment = replace(
                existing,
                status=SHIPMENT_STATUS_PROGRAMMED,
                handler_id=handler_id if handler_id is not None else existing.handler_id,
                scheduled_at=scheduled_at,
                origin=route.origin,
                destination=stop.location,
                route_id=route.route_id,
                distance_km=distance_km,
            )
            action = ACTION_UPDATED

        token.raise_if_cancelled(f"shipment write for order {stop.order_id}")
        saved = self.shipments.upsert(shipment)
        return ShipmentSyncResult(order_id=stop.order_id, action=action, shipment=saved)
