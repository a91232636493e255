from datetime import datetime, timedelta, timezone

import pytest

from homeauto.domain.models import ActionEvent
from homeauto.services.recording import ActionRecorder
from homeauto.storage.sqlite_repo import SQLiteRepository


@pytest.fixture
async def repo(tmp_path) -> SQLiteRepository:
    r = SQLiteRepository(str(tmp_path / "actions.db"))
    await r.init()
    return r


@pytest.mark.asyncio
async def test_insert_and_query_in_time_order(repo) -> None:
    base = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    for i, command in enumerate(["turn_on", "turn_on", "turn_off"]):
        await repo.insert_action(ActionEvent(base + timedelta(seconds=i), "light.kitchen", command, None, "motion"))

    rows = await repo.query_actions(base.isoformat(), (base + timedelta(minutes=1)).isoformat(), limit=10)
    assert [r.command for r in rows] == ["turn_on", "turn_on", "turn_off"]
    assert rows[0].ts_utc == base

    latest = await repo.query_actions(base.isoformat(), (base + timedelta(minutes=1)).isoformat(), limit=2)
    assert [r.ts_utc.second for r in latest] == [1, 2]


@pytest.mark.asyncio
async def test_query_outside_range_is_empty(repo) -> None:
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    await repo.insert_action(ActionEvent(now, "climate.ac", "set_temperature", "24/cool", "Window trigger"))
    later = now + timedelta(hours=1)
    assert await repo.query_actions(later.isoformat(), (later + timedelta(hours=1)).isoformat(), 10) == []


@pytest.mark.asyncio
async def test_recorder_persists_actions(repo) -> None:
    recorder = ActionRecorder(repo)
    event = await recorder.record("switch.fan", "turn_on", None, "Airflow boost (sunrise)")

    start = event.ts_utc - timedelta(seconds=1)
    end = event.ts_utc + timedelta(seconds=1)
    rows = await repo.query_actions(start.isoformat(), end.isoformat(), 10)
    assert [(r.actuator_id, r.reason) for r in rows] == [("switch.fan", "Airflow boost (sunrise)")]


@pytest.mark.asyncio
async def test_recorder_survives_storage_failure(tmp_path) -> None:
    broken = SQLiteRepository(str(tmp_path / "missing" / "actions.db"))
    recorder = ActionRecorder(broken)
    await recorder.record("light.kitchen", "turn_off", None, "kitchen motion")
    assert len(recorder.recent) == 1
