from homeauto.domain.models import TimeWindow, WindowConfig, WindowProfile
from homeauto.domain.schedule import ClimateSchedule
from homeauto.drivers.actuators_sim import SimulatedClimate, SimulatedSwitch
from homeauto.services.climate import ClimateAutomation, ClimateEntities


class FakeLight:
    """Light double that records every command in order."""

    def __init__(self, actuator_id: str = "light.test") -> None:
        self.actuator_id = actuator_id
        self.calls: list[tuple] = []
        self.fail_on: str | None = None

    async def turn_on(self, brightness_pct: int = 100) -> None:
        if self.fail_on == "turn_on":
            raise RuntimeError("light unreachable")
        self.calls.append(("on", brightness_pct))

    async def turn_off(self) -> None:
        if self.fail_on == "turn_off":
            raise RuntimeError("light unreachable")
        self.calls.append(("off",))


def make_config(start_hour: int = 6, end_hour: int = 18, **overrides) -> WindowConfig:
    values = dict(
        window=TimeWindow.SUNRISE,
        normal=25,
        power_saving=27,
        occupied=23,
        passive=29,
        mode="cool",
        can_boost_airflow=False,
        start_hour=start_hour,
        end_hour=end_hour,
    )
    values.update(overrides)
    return WindowConfig(**values)


def make_profile(window: TimeWindow, start_sensor: str, end_sensor: str,
                 occupied: int = 24, boost: bool = False) -> WindowProfile:
    return WindowProfile(
        window=window,
        normal=25,
        power_saving=27,
        occupied=occupied,
        passive=29,
        mode="cool",
        can_boost_airflow=boost,
        start_sensor=start_sensor,
        end_sensor=end_sensor,
    )


# sunrise 6-18, sunset 18-0, midnight 0-6 once seeded
BEDROOM_PROFILES = [
    make_profile(TimeWindow.SUNRISE, "sensor.rise", "sensor.set", boost=True),
    make_profile(TimeWindow.SUNSET, "sensor.set", "sensor.mid"),
    make_profile(TimeWindow.MIDNIGHT, "sensor.mid", "sensor.rise"),
]

BEDROOM = ClimateEntities(
    climate="climate.ac",
    motion_sensor="binary_sensor.motion",
    door_sensor="binary_sensor.door",
    weather="weather.home",
    power_saving="input_boolean.power_saving",
    fan_switch="switch.fan",
)


def seed_climate_states(store) -> None:
    for entity_id, state in {
        "sensor.rise": "6",
        "sensor.set": "18",
        "sensor.mid": "0",
        "binary_sensor.motion": "off",
        "binary_sensor.door": "off",
        "weather.home": "sunny",
        "input_boolean.power_saving": "off",
        "switch.fan": "off",
    }.items():
        store.set(entity_id, state)
    store.set("climate.ac", "cool", {"temperature": 20})


def build_climate(store, scheduler, tz, recorder=None) -> ClimateAutomation:
    return ClimateAutomation(
        schedule=ClimateSchedule(BEDROOM_PROFILES, store, scheduler, tz, trigger_minute=5),
        climate=SimulatedClimate(store, BEDROOM.climate),
        states=store,
        entities=BEDROOM,
        scheduler=scheduler,
        fan=SimulatedSwitch(store, BEDROOM.fan_switch),
        recorder=recorder,
        door_settle_seconds=300,
        motion_settle_seconds=600,
    )
