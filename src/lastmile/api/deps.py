"""Dependency wiring for the HTTP layer."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Header

from ..db.supabase import get_supabase_client
from ..errors import ProviderUnavailableError
from ..models.domain import RequestingIdentity
from ..persistence.database import (
    SupabaseHandlerRepository,
    SupabaseOrderRepository,
    SupabaseRouteRepository,
    SupabaseShipmentRepository,
)
from ..persistence.memory import (
    InMemoryHandlerRepository,
    InMemoryOrderRepository,
    InMemoryRouteRepository,
    InMemoryShipmentRepository,
)
from ..services.routing.mapbox_client import MapboxClient
from ..services.routing.service import RouteService


@lru_cache()
def get_route_service() -> RouteService:
    try:
        provider = MapboxClient()
    except ValueError as exc:
        logging.error(f"Mapbox client initialization failed: {exc}")
        raise ProviderUnavailableError("Routing provider is not configured. Set LASTMILE_MAPBOX_ACCESS_TOKEN.") from exc

    client = get_supabase_client()
    if client is None:
        logging.warning(
            "Supabase not configured - using empty in-memory repositories. No orders or handlers are loaded, "
            "so route creation answers 404 until the in-memory order and handler repositories are seeded."
        )
        return RouteService(
            orders=InMemoryOrderRepository(),
            handlers=InMemoryHandlerRepository(),
            routes=InMemoryRouteRepository(),
            shipments=InMemoryShipmentRepository(),
            optimizer=provider,
            distance_client=provider,
        )
    return RouteService(
        orders=SupabaseOrderRepository(client),
        handlers=SupabaseHandlerRepository(client),
        routes=SupabaseRouteRepository(client),
        shipments=SupabaseShipmentRepository(client),
        optimizer=provider,
        distance_client=provider,
    )


def get_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_roles: Optional[str] = Header(default=None),
    x_handler_id: Optional[int] = Header(default=None),
) -> RequestingIdentity:
    """Identity as forwarded by the upstream auth gateway."""
    roles = tuple(role.strip() for role in (x_user_roles or "").split(",") if role.strip())
    return RequestingIdentity(user_id=x_user_id, roles=roles, handler_id=x_handler_id)
