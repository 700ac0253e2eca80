"""Contracts for the external optimization and distance providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ...models.domain import Coordinate, ValidatedStop
from .cancellation import CancellationToken
from .models import DistanceResult, OptimizationResult


class OptimizationClient(ABC):
    """Black-box route optimizer."""

    @abstractmethod
    def optimize(
        self,
        *,
        origin: Coordinate,
        stops: Sequence[ValidatedStop],
        profile: str,
        round_trip: bool,
        token: CancellationToken,
    ) -> OptimizationResult:
        raise NotImplementedError


class DistanceClient(ABC):
    """Point-to-point travel distance lookup."""

    @abstractmethod
    def distance(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: str,
        *,
        token: CancellationToken,
    ) -> DistanceResult:
        raise NotImplementedError
