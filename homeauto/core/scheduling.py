from __future__ import annotations

import asyncio
import heapq
import inspect
import itertools
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Protocol, Union, runtime_checkable
from zoneinfo import ZoneInfo

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .timeutil import next_daily_occurrence

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[Awaitable[None], None]]


class ScheduleHandle:
    """Disposable owning one recurring timer. Disposing twice is a no-op."""

    def __init__(self, cancel: Callable[[], None], name: str = "") -> None:
        self._cancel = cancel
        self.name = name
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._cancel()

    def __repr__(self) -> str:
        return f"ScheduleHandle(name={self.name!r}, disposed={self._disposed})"


def dispose_all(handles: list[ScheduleHandle]) -> None:
    for h in handles:
        h.dispose()


@runtime_checkable
class Scheduler(Protocol):
    def now(self) -> datetime:
        ...

    def schedule_daily(self, hour: int, minute: int, callback: Callback, name: str = "") -> ScheduleHandle:
        ...

    async def sleep(self, seconds: float) -> None:
        ...


async def _run_callback(callback: Callback) -> None:
    result = callback()
    if inspect.isawaitable(result):
        await result


class CronScheduler:
    """Wall-clock scheduler backed by APScheduler's AsyncIOScheduler."""

    def __init__(self, timezone: str) -> None:
        self._tz = ZoneInfo(timezone)
        self._scheduler = AsyncIOScheduler(timezone=self._tz)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Cron scheduler started (tz=%s)", self._tz.key)

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def schedule_daily(self, hour: int, minute: int, callback: Callback, name: str = "") -> ScheduleHandle:
        job = self._scheduler.add_job(
            _run_callback,
            CronTrigger(hour=hour, minute=minute, timezone=self._tz),
            args=[callback],
            name=name or None,
            coalesce=True,
            misfire_grace_time=60,
        )
        logger.debug("Scheduled daily job %s at %02d:%02d", name or job.id, hour, minute)

        def _remove() -> None:
            try:
                job.remove()
            except JobLookupError:
                logger.debug("Job %s already removed", name or job.id)

        return ScheduleHandle(_remove, name)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class _DailyTimer:
    def __init__(self, hour: int, minute: int, callback: Callback) -> None:
        self.hour = hour
        self.minute = minute
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """Scheduler on a virtual timeline; time only moves through ``advance``.

    Sleepers and daily jobs fire in due order. After every firing the event
    loop is given a few turns so that woken coroutines can run and register
    their next timer before time moves on.
    """

    SETTLE_TURNS = 20

    def __init__(self, start: datetime) -> None:
        self._now = start
        self._queue: list[tuple[datetime, int, object]] = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self._now

    def _push(self, when: datetime, item: object) -> None:
        heapq.heappush(self._queue, (when, next(self._seq), item))

    @property
    def pending(self) -> int:
        count = 0
        for _, _, item in self._queue:
            if isinstance(item, _DailyTimer):
                count += 0 if item.cancelled else 1
            elif not item.done():  # type: ignore[attr-defined]
                count += 1
        return count

    def schedule_daily(self, hour: int, minute: int, callback: Callback, name: str = "") -> ScheduleHandle:
        timer = _DailyTimer(hour, minute, callback)
        self._push(next_daily_occurrence(self._now, hour, minute), timer)
        return ScheduleHandle(timer.cancel, name)

    async def sleep(self, seconds: float) -> None:
        fut = asyncio.get_running_loop().create_future()
        self._push(self._now + timedelta(seconds=max(0.0, seconds)), fut)
        await fut

    async def _settle(self) -> None:
        for _ in range(self.SETTLE_TURNS):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        await self.advance_to(self._now + timedelta(seconds=seconds))

    async def advance_to(self, target: datetime) -> None:
        await self._settle()
        while self._queue and self._queue[0][0] <= target:
            when, _, item = heapq.heappop(self._queue)
            self._now = max(self._now, when)
            if isinstance(item, _DailyTimer):
                if item.cancelled:
                    continue
                self._push(next_daily_occurrence(when, item.hour, item.minute), item)
                await _run_callback(item.callback)
            elif not item.done():  # type: ignore[attr-defined]
                item.set_result(None)  # type: ignore[attr-defined]
            await self._settle()
        self._now = max(self._now, target)

