"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_provider_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.mapbox_client import check_health
    return check_health


@router.get("/health/provider", status_code=status.HTTP_200_OK)
def health_provider() -> dict:
    """Check routing provider reachability."""
    check_health = _get_provider_health_check()
    return {"service": "mapbox", "healthy": check_health()}
