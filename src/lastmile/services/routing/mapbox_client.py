"""HTTP client for the Mapbox Optimization and Directions APIs."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Sequence

import httpx
from pydantic import ValidationError as PayloadValidationError

from ...config import settings
from ...errors import ProviderContractError, ProviderUnavailableError
from ...models.domain import Coordinate, ValidatedStop
from .cancellation import NEVER_CANCELLED, CancellationToken
from .models import DistanceResult, Leg, OptimizationResult, Waypoint
from .provider import DistanceClient, OptimizationClient

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def format_coordinates(points: Sequence[Coordinate]) -> str:
    """Mapbox expects ``lng,lat`` pairs separated by semicolons."""
    return ";".join(f"{point.lng},{point.lat}" for point in points)


class MapboxClient(OptimizationClient, DistanceClient):
    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.access_token = access_token or settings.mapbox_access_token
        if not self.access_token:
            raise ValueError("Mapbox access token is not configured.")
        self.base_url = (base_url or settings.mapbox_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds
        self._transport = transport

    def _get_client(self, token: CancellationToken) -> httpx.Client:
        """Create a per-call client; distance lookups run on worker threads."""
        timeout = token.cap_timeout(self.timeout)
        return httpx.Client(
            timeout=httpx.Timeout(timeout, connect=min(10.0, timeout)),
            transport=self._transport,
        )

    def _get_json(self, url: str, params: dict[str, Any], token: CancellationToken, stage: str) -> tuple[dict, httpx.Headers]:
        params = {**params, "access_token": self.access_token}
        attempt = 0
        while True:
            token.raise_if_cancelled(stage)
            client = self._get_client(token)
            try:
                response = client.get(url, params=params)
                if response.status_code in RETRYABLE_STATUS_CODES:
                    response.raise_for_status()
                if response.is_client_error:
                    raise ProviderContractError(
                        f"Mapbox rejected the {stage} ({response.status_code}): {_error_message(response)}"
                    )
                response.raise_for_status()
                return response.json(), response.headers
            except ProviderContractError:
                raise
            except ValueError as exc:
                raise ProviderContractError(f"Mapbox returned a non-JSON body for the {stage}.") from exc
            except (httpx.TimeoutException, httpx.NetworkError, httpx.HTTPStatusError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning(f"Mapbox {stage} failed after {self.max_retries} retries: {exc}")
                    raise ProviderUnavailableError(f"Mapbox {stage} failed: {exc}") from exc
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                remaining = token.remaining()
                if remaining is not None:
                    wait_time = min(wait_time, remaining)
                logger.debug(f"Mapbox {stage} error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                time.sleep(wait_time)
            finally:
                client.close()

    def optimize(
        self,
        *,
        origin: Coordinate,
        stops: Sequence[ValidatedStop],
        profile: str,
        round_trip: bool,
        token: CancellationToken = NEVER_CANCELLED,
    ) -> OptimizationResult:
        if not stops:
            raise ValueError("At least one stop is required for optimization.")
        coordinates = format_coordinates([origin, *(stop.location for stop in stops)])
        params = {
            "source": "first",
            "roundtrip": "true" if round_trip else "false",
            "geometries": "polyline",
            "overview": "full",
        }
        if not round_trip:
            params["destination"] = "last"
        url = f"{self.base_url}/optimization/v1/mapbox/{profile}/{coordinates}"
        data, headers = self._get_json(url, params, token, "optimization request")
        return parse_optimization_payload(data, request_id=headers.get("x-request-id"))

    def distance(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: str,
        *,
        token: CancellationToken = NEVER_CANCELLED,
    ) -> DistanceResult:
        url = f"{self.base_url}/directions/v5/mapbox/{profile}/{format_coordinates([origin, destination])}"
        data, _ = self._get_json(url, {"overview": "false"}, token, "distance lookup")
        return parse_distance_payload(data)


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json().get("message", response.text))
    except ValueError:
        return response.text


def parse_optimization_payload(data: dict, request_id: str | None = None) -> OptimizationResult:
    """Validate a Mapbox optimization response into an ``OptimizationResult``.

    Mapbox lists waypoints in input order, so each waypoint's position in the
    array becomes its ``original_index`` (0 is the origin).
    """
    if data.get("code") != "Ok":
        raise ProviderContractError(
            f"Mapbox optimization failed: {data.get('message') or data.get('code') or 'unknown error'}"
        )
    trips = data.get("trips") or []
    if not trips:
        raise ProviderContractError("Mapbox optimization returned no trips.")
    trip = trips[0]
    try:
        waypoints = [
            Waypoint(
                location=raw.get("location"),
                waypoint_index=raw.get("waypoint_index"),
                original_index=position,
            )
            for position, raw in enumerate(data.get("waypoints") or [])
        ]
        return OptimizationResult(
            waypoints=waypoints,
            legs=[Leg(distance=leg.get("distance"), duration=leg.get("duration")) for leg in trip.get("legs") or []],
            distance_km=round(float(trip.get("distance", 0.0)) / 1000, 2),
            duration_min=round(float(trip.get("duration", 0.0)) / 60, 2),
            geometry=trip.get("geometry"),
            request_id=request_id or data.get("request_id") or uuid.uuid4().hex,
        )
    except (PayloadValidationError, TypeError, ValueError, AttributeError) as exc:
        raise ProviderContractError(f"Malformed Mapbox optimization response: {exc}") from exc


def parse_distance_payload(data: dict) -> DistanceResult:
    if data.get("code") != "Ok":
        raise ProviderContractError(
            f"Mapbox directions failed: {data.get('message') or data.get('code') or 'unknown error'}"
        )
    routes = data.get("routes") or []
    if not routes:
        raise ProviderContractError("Mapbox directions returned no routes.")
    try:
        return DistanceResult(
            distance_km=float(routes[0]["distance"]) / 1000,
            duration_min=float(routes[0]["duration"]) / 60,
        )
    except (PayloadValidationError, KeyError, TypeError, ValueError) as exc:
        raise ProviderContractError(f"Malformed Mapbox directions response: {exc}") from exc


def check_health(client: MapboxClient | None = None) -> bool:
    """Check provider reachability with a minimal directions request."""
    try:
        probe = client or MapboxClient(max_retries=0, timeout=5.0)
        probe.distance(
            Coordinate(lat=52.517037, lng=13.388860),
            Coordinate(lat=52.496891, lng=13.385983),
            settings.default_profile,
        )
        return True
    except (ValueError, ProviderContractError, ProviderUnavailableError):
        return False
