"""Error taxonomy for route creation and retrieval."""

from __future__ import annotations

from typing import Iterable


class RoutingEngineError(Exception):
    """Base class for every failure raised by the routing engine."""


class ValidationError(RoutingEngineError, ValueError):
    """Bad input: empty order list, missing coordinates, unknown profile."""


class OriginNotConfiguredError(ValidationError):
    """Neither the request nor the configuration yields a usable origin."""


class NotFoundError(RoutingEngineError):
    def __init__(self, entity: str, missing: Iterable[object]) -> None:
        self.entity = entity
        self.missing = tuple(missing)
        listed = ", ".join(str(item) for item in self.missing)
        super().__init__(f"{entity} not found: {listed}")


class ProviderContractError(RoutingEngineError):
    """The optimization provider answered with something we cannot turn into a route."""


class ProviderUnavailableError(RoutingEngineError):
    """The provider could not be reached after retries."""


class AuthorizationError(RoutingEngineError):
    """The requesting identity may not access the requested route."""


class PersistenceError(RoutingEngineError):
    """A repository write or read failed."""


class OperationCancelledError(RoutingEngineError):
    """The caller cancelled the operation or its deadline expired."""
