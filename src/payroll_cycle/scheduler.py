"""Daily automatic payroll run generation.

A single asyncio task wakes up at least once per minute, reads the wall
clock in a configured time zone and, when the hour and minute match the
trigger point, runs the generation job once for that day. The last day the
job fired is persisted, so a restart inside the trigger minute does not
fire twice.

Usage:
    stop = await start_scheduler(
        0, 0, "America/Bogota", job=generate, marker_store=DatabaseMarkerStore(factory)
    )
    ...
    await stop()  # lets the current tick finish, then exits
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, tzinfo
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_cycle.config import Settings, resolve_timezone
from payroll_cycle.exceptions import InvalidInputError
from payroll_cycle.models import SchedulerMarker
from payroll_cycle.services.generation_service import PayrollGenerator
from payroll_cycle.services.incidence_aggregator import PayCycleConfig

logger = logging.getLogger(__name__)

DEFAULT_JOB_NAME = "payroll_run_generation"

GenerationJob = Callable[[date], Awaitable[Any]]


class Clock(Protocol):
    """Source of the current time in a given zone."""

    def now(self, tz: tzinfo) -> datetime:
        ...


class SystemClock:
    """Wall clock."""

    def now(self, tz: tzinfo) -> datetime:
        return datetime.now(tz)


class MarkerStore(Protocol):
    """Persists the last day a job fired."""

    async def get_last_fired(self, job_name: str) -> date | None:
        ...

    async def set_last_fired(self, job_name: str, day: date) -> None:
        ...


class MemoryMarkerStore:
    """Process-local marker store. Does not survive restarts."""

    def __init__(self) -> None:
        self._markers: dict[str, date] = {}

    async def get_last_fired(self, job_name: str) -> date | None:
        return self._markers.get(job_name)

    async def set_last_fired(self, job_name: str, day: date) -> None:
        self._markers[job_name] = day


class DatabaseMarkerStore:
    """Marker store backed by the ``scheduler_marker`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_last_fired(self, job_name: str) -> date | None:
        async with self.session_factory() as session:
            marker = await session.get(SchedulerMarker, job_name)
            return marker.last_fired_on if marker is not None else None

    async def set_last_fired(self, job_name: str, day: date) -> None:
        async with self.session_factory() as session:
            await session.merge(SchedulerMarker(job_name=job_name, last_fired_on=day))
            await session.commit()


def validate_trigger(hour: int, minute: int) -> None:
    """Trigger point must be a real wall-clock minute."""
    if not 0 <= hour <= 23:
        raise InvalidInputError("trigger_hour", hour, "must be between 0 and 23")
    if not 0 <= minute <= 59:
        raise InvalidInputError("trigger_minute", minute, "must be between 0 and 59")


class GenerationScheduler:
    """Fires a generation job once per day at a fixed wall-clock minute.

    The loop never terminates on error: failures from the clock, the
    marker store or the job are logged and the loop waits for the next
    tick. ``stop()`` lets an in-flight tick finish before exiting.
    """

    def __init__(
        self,
        job: GenerationJob,
        trigger_hour: int,
        trigger_minute: int,
        timezone: tzinfo,
        clock: Clock | None = None,
        marker_store: MarkerStore | None = None,
        tick_seconds: float = 60.0,
        job_name: str = DEFAULT_JOB_NAME,
    ):
        validate_trigger(trigger_hour, trigger_minute)
        if tick_seconds <= 0:
            raise InvalidInputError("tick_seconds", tick_seconds, "must be positive")
        self.job = job
        self.trigger_hour = trigger_hour
        self.trigger_minute = trigger_minute
        self.timezone = timezone
        self.clock = clock or SystemClock()
        self.marker_store = marker_store or MemoryMarkerStore()
        self.tick_seconds = tick_seconds
        self.job_name = job_name
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_trigger_time(self, now: datetime) -> bool:
        return now.hour == self.trigger_hour and now.minute == self.trigger_minute

    async def tick(self) -> bool:
        """Check the clock once. Returns True when the job was started."""
        try:
            return await self._tick()
        except Exception:
            logger.exception("Scheduler tick for %s failed", self.job_name)
            return False

    async def _tick(self) -> bool:
        now = self.clock.now(self.timezone)
        if not self.is_trigger_time(now):
            return False

        today = now.date()
        last_fired = await self.marker_store.get_last_fired(self.job_name)
        if last_fired is not None and last_fired >= today:
            return False

        # Marker first: a crash mid-generation must not fire again this minute
        await self.marker_store.set_last_fired(self.job_name, today)
        logger.info("Triggering %s for %s", self.job_name, today)

        try:
            result = await self.job(today)
        except Exception:
            logger.exception("Scheduled %s for %s failed", self.job_name, today)
        else:
            logger.info("Scheduled %s for %s finished: %s", self.job_name, today, result)
        return True

    def _next_delay(self) -> float:
        """Sleep until the next tick, never past the start of the next minute."""
        try:
            now = self.clock.now(self.timezone)
        except Exception:
            return self.tick_seconds
        to_next_minute = 60 - now.second - now.microsecond / 1_000_000
        return max(0.0, min(self.tick_seconds, to_next_minute + 0.05))

    async def run(self) -> None:
        """Tick until stopped."""
        logger.info(
            "Scheduler %s started (trigger %02d:%02d %s)",
            self.job_name,
            self.trigger_hour,
            self.trigger_minute,
            self.timezone,
        )
        while not self._stop_event.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._next_delay())
            except asyncio.TimeoutError:
                pass
        logger.info("Scheduler %s stopped", self.job_name)

    def start(self) -> asyncio.Task[None]:
        """Start the background task."""
        if self.is_running:
            logger.warning("Scheduler %s is already running", self.job_name)
            return self._task
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name=f"scheduler:{self.job_name}")
        return self._task

    async def stop(self) -> None:
        """Signal the loop to exit and wait for the current tick to finish."""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None


async def start_scheduler(
    trigger_hour: int,
    trigger_minute: int,
    timezone: str | tzinfo,
    job: GenerationJob,
    marker_store: MarkerStore,
    **options: Any,
) -> Callable[[], Awaitable[None]]:
    """Start a generation scheduler and return its stop function.

    The marker store decides whether a restart can fire twice on the same
    day. Pass a ``DatabaseMarkerStore`` in production; a
    ``MemoryMarkerStore`` forgets the last fired day with the process.
    """
    tz = resolve_timezone(timezone) if isinstance(timezone, str) else timezone
    scheduler = GenerationScheduler(
        job, trigger_hour, trigger_minute, tz, marker_store=marker_store, **options
    )
    scheduler.start()
    return scheduler.stop


def create_payroll_scheduler(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    clock: Clock | None = None,
) -> GenerationScheduler:
    """Wire the payroll generator into a scheduler from application settings."""
    generator = PayrollGenerator(
        session_factory,
        cycle=PayCycleConfig(settings.cycle_start_day, settings.cycle_length_months),
        max_concurrency=settings.max_concurrency,
        storage_timeout_seconds=settings.storage_timeout_seconds,
    )

    async def generate(day: date) -> Any:
        return await generator.generate_run(day, fan_out=settings.generate_entries)

    return GenerationScheduler(
        generate,
        settings.trigger_hour,
        settings.trigger_minute,
        settings.timezone,
        clock=clock,
        marker_store=DatabaseMarkerStore(session_factory),
        tick_seconds=settings.tick_seconds,
    )
