from datetime import datetime

import pytest

from homeauto.services.climate import ClimateAutomation
from homeauto.services.recording import ActionRecorder

from helpers import build_climate, seed_climate_states


@pytest.fixture
def recorder() -> ActionRecorder:
    return ActionRecorder()


@pytest.fixture
def auto(store, vsched, tz, recorder) -> ClimateAutomation:
    seed_climate_states(store)
    return build_climate(store, vsched, tz, recorder)


def target(store) -> float:
    return store.get_attribute("climate.ac", "temperature")


@pytest.mark.asyncio
async def test_apply_sets_temperature_and_boosts_airflow(auto, store, recorder) -> None:
    store.set("binary_sensor.motion", "on")
    decision = await auto.apply_scheduled_settings()

    assert decision.temperature == 24
    assert decision.rule == "occupied"
    assert target(store) == 24
    assert store.get_state("switch.fan") == "on"
    assert [(a.actuator_id, a.command) for a in recorder.recent] == [
        ("climate.ac", "set_temperature"),
        ("switch.fan", "turn_on"),
    ]
    assert auto.state.last_window == "sunrise"


@pytest.mark.asyncio
async def test_apply_skips_when_ac_is_off(auto, store, recorder) -> None:
    store.set("climate.ac", "off")
    assert await auto.apply_scheduled_settings() is None
    assert auto.state.last_reason == "AC is currently off"
    assert target(store) == 20
    assert list(recorder.recent) == []


@pytest.mark.asyncio
async def test_apply_skips_when_disabled(auto, store) -> None:
    auto.disable()
    assert await auto.apply_scheduled_settings() is None
    assert auto.state.last_reason == "Automation disabled"

    auto.enable()
    assert await auto.apply_scheduled_settings() is not None


@pytest.mark.asyncio
async def test_apply_skips_invalid_window(auto, store) -> None:
    for sensor in ("sensor.rise", "sensor.set", "sensor.mid"):
        store.set(sensor, "unknown")
    assert await auto.apply_scheduled_settings() is None
    assert auto.state.last_reason.startswith("No valid settings")


@pytest.mark.asyncio
async def test_apply_is_quiet_when_already_at_target(auto, store, recorder) -> None:
    store.set("climate.ac", "cool", {"temperature": 29})
    decision = await auto.apply_scheduled_settings()
    assert decision.temperature == 29
    assert list(recorder.recent) == []


@pytest.mark.asyncio
async def test_motion_applies_immediately(auto, store) -> None:
    change = store.set("binary_sensor.motion", "on")
    await auto.handle_state_change(change)
    assert target(store) == 24


@pytest.mark.asyncio
async def test_door_open_waits_to_settle(auto, store, vsched) -> None:
    change = store.set("binary_sensor.door", "on")
    await auto.handle_state_change(change)
    assert auto.settling == ["binary_sensor.door"]
    assert target(store) == 20

    await vsched.advance(301)
    assert target(store) == 29
    assert auto.settling == []


@pytest.mark.asyncio
async def test_door_closing_cancels_settle_and_applies(auto, store, vsched) -> None:
    store.set("binary_sensor.motion", "on")
    await auto.handle_state_change(store.set("binary_sensor.door", "on"))
    await vsched.advance(100)

    await auto.handle_state_change(store.set("binary_sensor.door", "off"))
    assert auto.settling == []
    assert target(store) == 24

    store.set("climate.ac", "cool", {"temperature": 20})
    await vsched.advance(600)
    assert target(store) == 20


@pytest.mark.asyncio
async def test_motion_cleared_settles_longer(auto, store, vsched) -> None:
    await auto.handle_state_change(store.set("binary_sensor.motion", "on"))
    assert target(store) == 24

    await auto.handle_state_change(store.set("binary_sensor.motion", "off"))
    await vsched.advance(300)
    assert target(store) == 24
    await vsched.advance(301)
    assert target(store) == 29


@pytest.mark.asyncio
async def test_power_saving_toggle_applies(auto, store) -> None:
    await auto.handle_state_change(store.set("input_boolean.power_saving", "on"))
    assert target(store) == 27


@pytest.mark.asyncio
async def test_ac_turned_on_applies(auto, store) -> None:
    store.set("climate.ac", "off", {"temperature": 20})
    await auto.handle_state_change(store.set("climate.ac", "cool"))
    assert target(store) == 29


@pytest.mark.asyncio
async def test_disable_cancels_settling(auto, store) -> None:
    await auto.handle_state_change(store.set("binary_sensor.door", "on"))
    assert auto.settling
    auto.disable()
    assert auto.settling == []


@pytest.mark.asyncio
async def test_cycle_fan_mode(auto, store) -> None:
    assert await auto.cycle_fan_mode() == "auto"
    assert await auto.cycle_fan_mode() == "low"
    store.set("climate.ac", "cool", {"temperature": 20, "fan_mode": "high"})
    assert await auto.cycle_fan_mode() == "auto"
    assert store.get_attribute("climate.ac", "fan_mode") == "auto"


@pytest.mark.asyncio
async def test_window_trigger_applies_at_boundary(auto, store, vsched) -> None:
    auto.start()
    assert len(auto.window_handles) == 3

    store.set("binary_sensor.motion", "on")
    await vsched.advance_to(datetime(2024, 6, 1, 18, 6, tzinfo=vsched.now().tzinfo))
    assert auto.state.last_window == "sunset"
    assert auto.state.last_reason.startswith("Window trigger")
    assert target(store) == 24
    auto.stop()
    assert auto.window_handles == []
    assert vsched.pending == 0


@pytest.mark.asyncio
async def test_daily_reset_rebuilds_window_triggers(auto, store, vsched) -> None:
    auto.start()
    old = auto.window_handles
    store.set("sensor.mid", "unavailable")

    await vsched.advance(12 * 3600)
    assert all(h.disposed for h in old)
    assert [h.name for h in auto.window_handles] == ["climate_sunrise"]
    auto.stop()
