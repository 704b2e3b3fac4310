"""Bounded worker pool for per-host scan tasks."""
from __future__ import annotations

import contextvars
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, TypeVar

from dnsSweep.logging_config import get_logger

logger = get_logger("pool")

T = TypeVar("T")


@dataclass
class PoolStats:
    dispatched: int = 0
    completed: int = 0
    failed: int = 0
    peak_in_flight: int = 0
    duration: float = 0.0


@dataclass
class _RunState:
    """Counters owned by a single run() call."""
    slots: threading.BoundedSemaphore
    stats: PoolStats = field(default_factory=PoolStats)
    lock: threading.Lock = field(default_factory=threading.Lock)
    in_flight: int = 0


class WorkerPool:
    """Runs one task per item with at most `concurrency_limit` in flight.

    The dispatch loop takes a slot from a bounded semaphore before submitting
    each item and the task returns it when it finishes, so iterating the
    items blocks while every slot is busy and pending work never piles up in
    the executor queue. run() returns once every dispatched task is done.
    """

    def __init__(self, concurrency_limit: int, name: str = "dnssweep-worker") -> None:
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        self.concurrency_limit = concurrency_limit
        self.name = name

    def run(self, items: Iterable[T], task: Callable[[T], Any]) -> PoolStats:
        state = _RunState(slots=threading.BoundedSemaphore(self.concurrency_limit))
        stats = state.stats
        start_time = time.time()

        logger.info(
            "Worker pool starting",
            extra={"concurrency_limit": self.concurrency_limit, "state": "starting"},
        )

        with ThreadPoolExecutor(
            max_workers=self.concurrency_limit,
            thread_name_prefix=self.name,
        ) as executor:
            for item in items:
                state.slots.acquire()
                stats.dispatched += 1
                # Carry the scan id (and any other context) into the worker
                ctx = contextvars.copy_context()
                executor.submit(ctx.run, self._run_one, task, item, state)
            # Leaving the block waits for every submitted task

        stats.duration = time.time() - start_time
        logger.info(
            "Worker pool drained",
            extra={
                "dispatched": stats.dispatched,
                "completed": stats.completed,
                "failed": stats.failed,
                "in_flight": stats.peak_in_flight,
                "duration": round(stats.duration * 1000, 2),
                "state": "stopped",
            },
        )
        return stats

    def _run_one(self, task: Callable[[T], Any], item: T, state: "_RunState") -> None:
        stats = state.stats
        with state.lock:
            state.in_flight += 1
            stats.peak_in_flight = max(stats.peak_in_flight, state.in_flight)
        try:
            task(item)
        except Exception as exc:
            with state.lock:
                stats.failed += 1
            logger.error(
                f"Task failed with unexpected error: {exc}",
                exc_info=True,
                extra={"ip": str(item), "outcome": "error", "error_type": type(exc).__name__},
            )
        else:
            with state.lock:
                stats.completed += 1
        finally:
            with state.lock:
                state.in_flight -= 1
            state.slots.release()
