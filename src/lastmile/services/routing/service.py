"""Routing orchestration service."""

from __future__ import annotations

import logging
from typing import Optional

from ...config import Settings, settings
from ...errors import AuthorizationError, NotFoundError, PersistenceError, RoutingEngineError, ValidationError
from ...models.domain import RequestingIdentity, Route
from ...persistence.repositories import HandlerRepository, OrderRepository, RouteRepository, ShipmentRepository
from ...schemas.routing import CreateRouteRequest
from .assignment import WaypointAssignmentResolver
from .cancellation import NEVER_CANCELLED, CancellationToken
from .origin import CoordinateResolver, OriginDefaults
from .provider import DistanceClient, OptimizationClient
from .sequence import build_route
from .shipments import ShipmentSynchronizer
from .stops import StopSetValidator

logger = logging.getLogger(__name__)


class RouteService:
    """Create, fetch and list optimized delivery routes.

    Route and stops are written as one unit; shipments are synchronized
    afterwards as a separate consistency domain, so a shipment failure is
    logged per order and never undoes the committed route.
    """

    def __init__(
        self,
        *,
        orders: OrderRepository,
        handlers: HandlerRepository,
        routes: RouteRepository,
        shipments: ShipmentRepository,
        optimizer: OptimizationClient,
        distance_client: DistanceClient,
        config: Settings | None = None,
        origin_resolver: CoordinateResolver | None = None,
        assignment_resolver: WaypointAssignmentResolver | None = None,
        synchronizer: ShipmentSynchronizer | None = None,
    ) -> None:
        self.config = config or settings
        self.handlers = handlers
        self.routes = routes
        self.optimizer = optimizer
        self.stop_validator = StopSetValidator(orders)
        self.origin_resolver = origin_resolver or CoordinateResolver(OriginDefaults.from_settings(self.config))
        self.assignment_resolver = assignment_resolver or WaypointAssignmentResolver(
            match_tolerance=self.config.waypoint_match_tolerance,
            proximity_tolerance=self.config.waypoint_proximity_tolerance,
        )
        self.synchronizer = synchronizer or ShipmentSynchronizer(
            shipments,
            distance_client,
            terminal_statuses=self.config.terminal_shipment_statuses,
            max_workers=self.config.shipment_sync_max_workers,
        )

    def _resolve_profile(self, profile: Optional[str]) -> str:
        resolved = (profile or self.config.default_profile).strip()
        if resolved not in self.config.allowed_profiles:
            raise ValidationError(
                f"Unknown travel profile '{resolved}'. Expected one of: {', '.join(self.config.allowed_profiles)}."
            )
        return resolved

    def create_route(self, payload: CreateRouteRequest, *, token: CancellationToken = NEVER_CANCELLED) -> Route:
        profile = self._resolve_profile(payload.profile)

        if payload.handler_id is not None and not self.handlers.exists(payload.handler_id):
            raise NotFoundError("Handler", [payload.handler_id])

        stops = self.stop_validator.validate(payload.order_ids)
        origin = self.origin_resolver.resolve(payload.origin_lat, payload.origin_lng)

        if len(stops) + 1 > self.config.optimization_max_coordinates:
            raise ValidationError(
                f"A route accepts at most {self.config.optimization_max_coordinates - 1} orders; got {len(stops)}."
            )

        token.raise_if_cancelled("optimization request")
        optimization = self.optimizer.optimize(
            origin=origin,
            stops=stops,
            profile=profile,
            round_trip=payload.round_trip,
            token=token,
        )
        assignments = self.assignment_resolver.resolve(optimization, stops, origin)

        route = build_route(
            assignments=assignments,
            optimization=optimization,
            origin=origin,
            profile=profile,
            name=payload.name,
            handler_id=payload.handler_id,
            scheduled_at=payload.scheduled_at,
        )

        token.raise_if_cancelled("route persistence")
        saved = self._save(route)
        logger.info(f"Created route {saved.route_id} with {len(saved.stops)} stops (profile={profile})")

        report = self.synchronizer.synchronize(saved, [assignment.stop for assignment in assignments], token)
        if report.failed:
            logger.warning(
                f"Route {saved.route_id} committed but {len(report.failed)} shipment(s) failed to sync: "
                f"{[result.order_id for result in report.failed]}"
            )
        saved.stops = saved.ordered_stops()
        return saved

    def _save(self, route: Route) -> Route:
        try:
            return self.routes.save(route)
        except RoutingEngineError:
            raise
        except Exception as exc:
            logger.exception(f"Failed to persist route: {exc}")
            raise PersistenceError(f"Failed to persist route: {exc}") from exc

    def get_route(self, route_id: int, identity: RequestingIdentity | None = None) -> Route:
        route = self.routes.find(route_id)
        if route is None:
            raise NotFoundError("Route", [route_id])
        if identity is not None and identity.is_driver and (
            identity.handler_id is None or route.handler_id != identity.handler_id
        ):
            raise AuthorizationError("You may only view routes assigned to you.")
        route.stops = route.ordered_stops()
        return route

    def list_routes(self, identity: RequestingIdentity | None = None, handler_id: Optional[int] = None) -> list[Route]:
        if identity is not None and identity.is_driver:
            if identity.handler_id is None:
                return []
            handler_id = identity.handler_id
        routes = self.routes.list(handler_id=handler_id)
        for route in routes:
            route.stops = route.ordered_stops()
        return routes
