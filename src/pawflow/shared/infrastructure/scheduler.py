"""
Periodic Job Scheduling
=======================

APScheduler wrapper for the engine's background ticks, plus the busy guard
each tick uses to drop firings that overlap a tick still in flight.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from pawflow.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

TickFunc = Callable[[], Awaitable[object]]


class TickState(str):
    """Guard states."""
    IDLE = "idle"
    RUNNING = "running"


class TickGuard:
    """
    Single in-flight guard for a periodic tick.

    A tick entering while another holds the guard is told to skip; it is
    not queued or delayed. The guard is released on every exit path.
    """

    def __init__(self, name: str):
        self.name = name
        self._state = TickState.IDLE

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state == TickState.RUNNING

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[bool]:
        """
        Yield True if this caller now owns the tick, False if it must skip.

        Usage:
            async with guard.hold() as acquired:
                if not acquired:
                    return 0
                ...
        """
        if self._state == TickState.RUNNING:
            logger.debug("Tick already in flight, skipping", extra={"tick": self.name})
            yield False
            return

        self._state = TickState.RUNNING
        try:
            yield True
        finally:
            self._state = TickState.IDLE


class PollingScheduler:
    """
    Wrapper for APScheduler running the engine's interval jobs.

    Manages the lifecycle of the scheduler and its jobs. Exceptions raised
    by a job are logged; the next firing runs normally.
    """

    def __init__(self):
        self._jobs: Dict[str, tuple[TickFunc, float]] = {}
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def add_job(self, job_id: str, func: TickFunc, interval_seconds: float) -> None:
        """Register an interval job; takes effect on the next ``start``."""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._jobs[job_id] = (func, interval_seconds)

    async def start(self) -> None:
        """Start the scheduler with all registered jobs."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        for job_id, (func, interval_seconds) in self._jobs.items():
            self._scheduler.add_job(
                self._wrap(job_id, func),
                "interval",
                seconds=interval_seconds,
                id=job_id,
                name=job_id,
                misfire_grace_time=None,
                coalesce=True,
                max_instances=1,
                replace_existing=True
            )

        self._scheduler.start()
        self._running = True

        logger.info(
            "Scheduler started",
            extra={"jobs": {job_id: seconds for job_id, (_, seconds) in self._jobs.items()}}
        )

    async def stop(self) -> None:
        """Stop firing jobs. In-flight ticks are not awaited."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("Scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @staticmethod
    def _wrap(job_id: str, func: TickFunc) -> TickFunc:
        async def job() -> None:
            try:
                with log_latency(logger, job_id):
                    await func()
            except Exception:
                logger.exception("Scheduled job failed", extra={"job": job_id})

        return job
