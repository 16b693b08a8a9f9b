"""
Job queue interface and the in-process implementation.
"""

import heapq
import itertools
import threading
import time
from collections.abc import Callable
from typing import Protocol

from steam_apps_db.jobs.payloads import JobPayload


class JobQueue(Protocol):
    """At-least-once queue with delayed delivery."""

    def push(self, payload: JobPayload, delay_seconds: float = 0.0) -> None: ...

    def pop(self) -> JobPayload | None:
        """Next job whose delay has elapsed, or None."""
        ...

    def next_ready_in(self) -> float | None:
        """Seconds until the next delayed job is ready, None when empty."""
        ...


class InMemoryJobQueue:
    """
    Delay-aware FIFO queue for local runs and tests.

    Jobs with equal ready times are delivered in push order.
    """

    def __init__(self, name: str = "default", clock: Callable[[], float] = time.monotonic) -> None:
        self.name = name
        self._clock = clock
        self._heap: list[tuple[float, int, JobPayload]] = []
        self._sequence = itertools.count()
        self._mutex = threading.Lock()

    def push(self, payload: JobPayload, delay_seconds: float = 0.0) -> None:
        ready_at = self._clock() + max(delay_seconds, 0.0)
        with self._mutex:
            heapq.heappush(self._heap, (ready_at, next(self._sequence), payload))

    def pop(self) -> JobPayload | None:
        with self._mutex:
            if not self._heap or self._heap[0][0] > self._clock():
                return None
            return heapq.heappop(self._heap)[2]

    def next_ready_in(self) -> float | None:
        with self._mutex:
            if not self._heap:
                return None
            return max(self._heap[0][0] - self._clock(), 0.0)

    def pending(self) -> list[JobPayload]:
        """Snapshot of queued jobs in delivery order."""
        with self._mutex:
            return [entry[2] for entry in sorted(self._heap)]

    def __len__(self) -> int:
        with self._mutex:
            return len(self._heap)
