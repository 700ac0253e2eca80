"""Bounded worker pool for per-order units of work."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Outcome(Generic[T, R]):
    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_bounded(items: Sequence[T], fn: Callable[[T], R], max_workers: int) -> list[Outcome[T, R]]:
    """Run ``fn`` over ``items`` with at most ``max_workers`` concurrent calls.

    A fixed number of workers pull positions from a shared cursor. Each
    item's result or exception is captured in its own ``Outcome`` so a
    failing item never hides the others. Results keep the input order.
    """
    if not items:
        return []

    outcomes: list[Outcome[T, R]] = [Outcome(item=item) for item in items]
    cursor_lock = threading.Lock()
    cursor = 0

    def _next_index() -> int | None:
        nonlocal cursor
        with cursor_lock:
            if cursor >= len(items):
                return None
            index = cursor
            cursor += 1
            return index

    def _worker() -> None:
        while True:
            index = _next_index()
            if index is None:
                return
            outcome = outcomes[index]
            try:
                outcome.value = fn(outcome.item)
            except Exception as exc:
                outcome.error = exc

    worker_count = max(1, min(max_workers, len(items)))
    logger.debug(f"Dispatching {len(items)} work items across {worker_count} workers")
    with ThreadPoolExecutor(max_workers=worker_count) as executor:
        futures = [executor.submit(_worker) for _ in range(worker_count)]
        for future in futures:
            future.result()
    return outcomes
