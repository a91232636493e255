from zoneinfo import ZoneInfo

import pytest

from homeauto.domain.entities import (
    INVALID_HOUR,
    EntityState,
    StateStore,
    is_on,
    is_sunny,
    parse_float,
    parse_local_hour,
)

UTC = ZoneInfo("UTC")
KL = ZoneInfo("Asia/Kuala_Lumpur")


@pytest.mark.parametrize("raw,expected", [("on", True), ("ON ", True), ("off", False), ("unavailable", False), (None, False)])
def test_is_on(raw, expected) -> None:
    assert is_on(raw) is expected


@pytest.mark.parametrize(
    "raw,expected",
    [("sunny", True), ("partlycloudy", True), ("rainy", False), ("cloudy", False), ("unknown", False), (None, False)],
)
def test_is_sunny(raw, expected) -> None:
    assert is_sunny(raw) is expected


@pytest.mark.parametrize(
    "raw,expected",
    [("45", 45.0), ("5.5", 5.5), ("", 0.0), ("unknown", 0.0), ("abc", 0.0), (None, 0.0)],
)
def test_parse_float_defaults(raw, expected) -> None:
    assert parse_float(raw, default=0.0) == expected


@pytest.mark.parametrize(
    "raw,tz,expected",
    [
        ("6", UTC, 6),
        ("2024-06-01T22:30:00+00:00", UTC, 22),
        ("2024-06-01T22:30:00Z", KL, 6),
        ("2024-06-01T19:10:00", KL, 19),
        ("unavailable", UTC, INVALID_HOUR),
        ("garbage", UTC, INVALID_HOUR),
        (None, UTC, INVALID_HOUR),
    ],
)
def test_parse_local_hour(raw, tz, expected) -> None:
    assert parse_local_hour(raw, tz) == expected


def test_store_reports_changes_only() -> None:
    store = StateStore()
    first = store.set("binary_sensor.door", "off")
    assert first is not None and first.old is None and first.new_state == "off"

    assert store.set("binary_sensor.door", "off") is None

    change = store.set("binary_sensor.door", "on")
    assert (change.old_state, change.new_state) == ("off", "on")
    assert store.get_state("binary_sensor.door") == "on"


def test_store_keeps_attributes_when_not_given() -> None:
    store = StateStore()
    store.set("climate.ac", "cool", {"temperature": 24})
    store.set("climate.ac", "off")
    assert store.get_attribute("climate.ac", "temperature") == 24
    assert store.get_attribute("climate.missing", "temperature", 0) == 0


def test_update_many_reports_new_and_changed_states() -> None:
    store = StateStore()
    changes = store.update_many([
        EntityState("light.a", "on", {"brightness_pct": 80}),
        EntityState("light.b", "off"),
    ])
    assert [c.entity_id for c in changes] == ["light.a", "light.b"]
    assert store.update_many([EntityState("light.a", "on", {"brightness_pct": 80})]) == []
    assert store.get("light.a").attributes == {"brightness_pct": 80}
    assert store.get_state("light.b") == "off"
