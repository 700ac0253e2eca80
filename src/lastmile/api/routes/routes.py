"""Route endpoints."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...config import settings
from ...errors import (
    AuthorizationError,
    NotFoundError,
    OperationCancelledError,
    ProviderContractError,
    ProviderUnavailableError,
    RoutingEngineError,
    ValidationError,
)
from ...models.domain import RequestingIdentity
from ...schemas.routing import CreateRouteRequest, RouteModel
from ...services.routing.cancellation import CancellationToken
from ...services.routing.service import RouteService
from ..deps import get_identity, get_route_service

router = APIRouter(prefix="/routes", tags=["routes"])

_STATUS_BY_ERROR: list[tuple[type[RoutingEngineError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (ProviderContractError, status.HTTP_502_BAD_GATEWAY),
    (ProviderUnavailableError, status.HTTP_502_BAD_GATEWAY),
    (OperationCancelledError, status.HTTP_504_GATEWAY_TIMEOUT),
]


def to_http_exception(exc: RoutingEngineError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    logging.error(f"Routing engine failure: {exc}", exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Unexpected error while processing the route. Please try again later.",
    )


@router.post("", response_model=RouteModel, status_code=status.HTTP_201_CREATED)
def create_route(
    payload: CreateRouteRequest,
    service: RouteService = Depends(get_route_service),
) -> RouteModel:
    token = CancellationToken(timeout_seconds=settings.route_creation_timeout_seconds)
    try:
        return RouteModel.from_domain(service.create_route(payload, token=token))
    except RoutingEngineError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        logging.exception(f"Error creating route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create route: {str(exc)}",
        ) from exc


@router.get("", response_model=List[RouteModel], status_code=status.HTTP_200_OK)
def list_routes(
    handler_id: Optional[int] = Query(default=None, description="Filter routes by assigned handler"),
    identity: RequestingIdentity = Depends(get_identity),
    service: RouteService = Depends(get_route_service),
) -> List[RouteModel]:
    """Newest routes first; drivers only see their own routes."""
    try:
        return [RouteModel.from_domain(route) for route in service.list_routes(identity, handler_id=handler_id)]
    except RoutingEngineError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{route_id}", response_model=RouteModel, status_code=status.HTTP_200_OK)
def get_route(
    route_id: int,
    identity: RequestingIdentity = Depends(get_identity),
    service: RouteService = Depends(get_route_service),
) -> RouteModel:
    try:
        return RouteModel.from_domain(service.get_route(route_id, identity))
    except RoutingEngineError as exc:
        raise to_http_exception(exc) from exc
