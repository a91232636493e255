import asyncio
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from homeauto.core.scheduling import CronScheduler, ScheduleHandle, dispose_all
from homeauto.core.timeutil import next_daily_occurrence

UTC = ZoneInfo("UTC")


def test_next_daily_occurrence_today_or_tomorrow() -> None:
    now = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
    assert next_daily_occurrence(now, 18, 5) == datetime(2024, 6, 1, 18, 5, tzinfo=UTC)
    assert next_daily_occurrence(now, 6, 5) == datetime(2024, 6, 2, 6, 5, tzinfo=UTC)
    assert next_daily_occurrence(now, 12, 0) == now + timedelta(days=1)


def test_handle_dispose_is_idempotent() -> None:
    cancelled: list[int] = []
    handle = ScheduleHandle(lambda: cancelled.append(1), name="job")
    handle.dispose()
    handle.dispose()
    assert cancelled == [1]
    assert handle.disposed
    assert "disposed=True" in repr(handle)


def test_dispose_all() -> None:
    handles = [ScheduleHandle(lambda: None, name=str(i)) for i in range(3)]
    dispose_all(handles)
    assert all(h.disposed for h in handles)


@pytest.mark.asyncio
async def test_virtual_sleepers_wake_in_due_order(vsched) -> None:
    woke: list[str] = []

    async def sleeper(name: str, seconds: float) -> None:
        await vsched.sleep(seconds)
        woke.append(name)

    tasks = [asyncio.create_task(sleeper("late", 3)), asyncio.create_task(sleeper("early", 1))]
    await vsched.advance(2)
    assert woke == ["early"]
    await vsched.advance(2)
    assert woke == ["early", "late"]
    await asyncio.gather(*tasks)


@pytest.mark.asyncio
async def test_virtual_daily_timer_repeats_and_awaits_coroutines(vsched) -> None:
    fired: list[datetime] = []

    async def job() -> None:
        fired.append(vsched.now())

    vsched.schedule_daily(13, 0, job)
    await vsched.advance(3 * 24 * 3600)
    assert [f.day for f in fired] == [1, 2, 3]
    assert all(f.hour == 13 for f in fired)


@pytest.mark.asyncio
async def test_cron_scheduler_adds_and_removes_jobs() -> None:
    sched = CronScheduler("UTC")
    sched.start()
    try:
        handle = sched.schedule_daily(3, 5, lambda: None, name="climate_sunrise")
        jobs = sched._scheduler.get_jobs()
        assert [j.name for j in jobs] == ["climate_sunrise"]
        assert jobs[0].next_run_time.hour == 3

        handle.dispose()
        handle.dispose()
        assert sched._scheduler.get_jobs() == []
        assert sched.now().tzinfo is not None
    finally:
        sched.shutdown()
