"""
Price simulator scheduler.

Uses APScheduler to run the price simulator tick on a fixed interval
(2 seconds by default) for the lifetime of the process. Each run moves
every coin's price and broadcasts the changes through the publisher the
tick use case was built with.

A failing tick is recorded and logged; the job keeps running.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.application.trading.dtos import PriceTickResult

logger = logging.getLogger(__name__)

PRICE_TICK_JOB = "price_tick"


class TaskStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TaskResult:
    """Result of a scheduled task execution."""

    task_name: str
    status: TaskStatus
    started_at: str
    finished_at: str | None = None
    duration_seconds: float = 0.0
    details: dict = field(default_factory=dict)
    error: str | None = None


class PriceSimulationScheduler:
    """Runs the price simulator tick periodically.

    The tick runs on an APScheduler worker thread with `coalesce=True`
    and `max_instances=1`: a slow tick is never run twice at once and
    missed runs collapse into one.

    Usage:
        scheduler = PriceSimulationScheduler(tick_use_case.execute, 2.0)
        scheduler.start()               # begin ticking
        scheduler.stop()                # graceful shutdown
        scheduler.run_now("price_tick") # tick immediately (blocking)
    """

    def __init__(
        self,
        tick: Callable[[], PriceTickResult],
        interval_seconds: float = 2.0,
        max_history: int = 200,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        self._tick = tick
        self._interval = interval_seconds
        self._running = False
        self._task_history: deque[TaskResult] = deque(maxlen=max_history)
        self._lock = threading.Lock()
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def task_history(self) -> list[TaskResult]:
        with self._lock:
            return list(self._task_history)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start ticking."""
        if self._running:
            logger.warning("Scheduler already running.")
            return

        self._scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        self._scheduler.add_job(
            self._task_price_tick,
            IntervalTrigger(seconds=self._interval),
            id=PRICE_TICK_JOB,
            name="Price simulator tick",
        )
        self._scheduler.start()
        self._running = True
        logger.info("Price simulator started (every %.1fs).", self._interval)

    def stop(self) -> None:
        """Gracefully stop the scheduler."""
        self._running = False

        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        logger.info("Price simulator stopped.")

    def run_now(self, task_name: str = PRICE_TICK_JOB) -> TaskResult:
        """Execute a named task immediately (blocking).

        Args:
            task_name: Only 'price_tick' is known.

        Returns:
            TaskResult with execution details.
        """
        task_map = {PRICE_TICK_JOB: self._task_price_tick}
        fn = task_map.get(task_name)
        if fn is None:
            return TaskResult(
                task_name=task_name,
                status=TaskStatus.FAILED,
                started_at=datetime.now(timezone.utc).isoformat(),
                error=f"Unknown task: {task_name}. "
                      f"Available: {list(task_map.keys())}",
            )
        return fn()

    def get_status(self) -> dict:
        """Return the scheduler status summary."""
        recent = self.task_history[-10:]
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "jobs": self.get_scheduled_jobs(),
            "recent_tasks": [
                {
                    "task": r.task_name,
                    "status": r.status.value,
                    "duration": r.duration_seconds,
                    "started_at": r.started_at,
                    "details": r.details,
                }
                for r in recent
            ],
        }

    def get_scheduled_jobs(self) -> list[dict[str, Any]]:
        if self._scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in self._scheduler.get_jobs()
        ]

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def _record_result(self, result: TaskResult) -> None:
        with self._lock:
            self._task_history.append(result)

    def _task_price_tick(self) -> TaskResult:
        """Move every coin's price once."""
        start = time.monotonic()
        started_at = datetime.now(timezone.utc).isoformat()
        try:
            tick = self._tick()
            task_result = TaskResult(
                task_name=PRICE_TICK_JOB,
                status=TaskStatus.COMPLETED,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc).isoformat(),
                duration_seconds=round(time.monotonic() - start, 4),
                details={"updated": len(tick.updated), "failed": list(tick.failed)},
            )
        except Exception as exc:
            task_result = TaskResult(
                task_name=PRICE_TICK_JOB,
                status=TaskStatus.FAILED,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc).isoformat(),
                duration_seconds=round(time.monotonic() - start, 4),
                error=str(exc),
            )
            logger.exception("Price simulator tick failed.")

        self._record_result(task_result)
        return task_result
