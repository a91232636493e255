from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, TypeVar

from fastapi import FastAPI

from .core.config import AutomationConfig, RoomLightIn, settings
from .core.log import configure_logging
from .core.scheduling import CronScheduler
from .core.timeutil import local_tz

from .api.routes import router as api_router
from .api import routes as routes_module

from .domain.dimming import DimParameters, DimmingController
from .domain.entities import StateStore
from .domain.interfaces import ClimateActuator, LightActuator, SwitchActuator
from .domain.models import TimeWindow, WindowProfile
from .domain.schedule import ClimateSchedule
from .drivers.actuators_sim import SimulatedClimate, SimulatedLight, SimulatedSwitch
from .drivers.ha_client import HAClientError, HAClimate, HALight, HASwitch, HomeAssistantClient
from .services.climate import ClimateAutomation, ClimateEntities
from .services.lighting import LightAutomation
from .services.recording import ActionRecorder, RecordingLight
from .services.sync import StateSyncService
from .storage.sqlite_repo import SQLiteRepository


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULTS_PATH = Path(__file__).resolve().parent / "config" / "default_automation.json"


def _fallback_config() -> AutomationConfig:
    return AutomationConfig.model_validate({
        "climate": {
            "climate": "climate.bedroom_ac",
            "motion_sensor": "binary_sensor.bedroom_motion_sensors",
            "door_sensor": "binary_sensor.bedroom_door",
            "weather": "weather.home",
            "power_saving": "input_boolean.ac_power_saving_mode",
            "windows": [
                {"window": "sunrise", "normal": 25, "power_saving": 27, "occupied": 24, "passive": 27,
                 "start_sensor": "sensor.sun_next_rising", "end_sensor": "sensor.sun_next_setting"},
                {"window": "sunset", "normal": 25, "power_saving": 27, "occupied": 23, "passive": 27,
                 "start_sensor": "sensor.sun_next_setting", "end_sensor": "sensor.sun_next_midnight"},
                {"window": "midnight", "normal": 24, "power_saving": 25, "occupied": 22, "passive": 25,
                 "start_sensor": "sensor.sun_next_midnight", "end_sensor": "sensor.sun_next_rising"},
            ],
        },
        "lights": [],
    })


def load_automation_config(path: Optional[str] = None) -> AutomationConfig:
    source = Path(path) if path else DEFAULTS_PATH
    try:
        return AutomationConfig.model_validate_json(source.read_text())
    except Exception as e:
        logger.warning("Failed to load %s, using hardcoded defaults: %s", source, e)
        return _fallback_config()


def build_profiles(cfg: AutomationConfig) -> list[WindowProfile]:
    profiles: list[WindowProfile] = []
    for w in cfg.climate.windows:
        try:
            window = TimeWindow(w.window.lower())
        except ValueError:
            logger.warning("Unknown climate window %r skipped", w.window)
            continue
        profiles.append(WindowProfile(
            window=window,
            normal=w.normal,
            power_saving=w.power_saving,
            occupied=w.occupied,
            passive=w.passive,
            mode=w.mode,
            can_boost_airflow=w.can_boost_airflow,
            start_sensor=w.start_sensor,
            end_sensor=w.end_sensor,
        ))
    return profiles


def _pick(value: Optional[T], default: T) -> T:
    return default if value is None else value


def dim_parameters_for(room: RoomLightIn) -> DimParameters:
    return DimParameters(
        brightness_pct=_pick(room.dim_brightness_pct, settings.dim_brightness_pct),
        dim_delay_seconds=_pick(room.dim_delay_seconds, settings.dim_delay_seconds),
        off_delay_seconds=_pick(room.off_delay_seconds, settings.off_delay_seconds),
        activation_value=_pick(room.activation_value, settings.sensor_active_delay_value),
    )


# --- Singletons ---
store = StateStore()
automation = load_automation_config(settings.automation_file)
scheduler = CronScheduler(settings.timezone)
repo = SQLiteRepository(settings.sqlite_path)
recorder = ActionRecorder(repo)

ha_client: HomeAssistantClient | None = None
if settings.mode.lower() == "ha":
    ha_client = HomeAssistantClient(
        url=settings.ha_url,
        token=settings.ha_token,
        timeout=settings.ha_timeout_seconds,
        verify_ssl=settings.ha_verify_ssl,
    )

sync = StateSyncService(store, ha_client, poll_seconds=settings.poll_seconds)


def _light(entity_id: str) -> LightActuator:
    return HALight(ha_client, entity_id) if ha_client else SimulatedLight(store, entity_id)


def _switch(entity_id: str) -> SwitchActuator:
    return HASwitch(ha_client, entity_id) if ha_client else SimulatedSwitch(store, entity_id)


def _climate(entity_id: str) -> ClimateActuator:
    return HAClimate(ha_client, entity_id) if ha_client else SimulatedClimate(store, entity_id)


def build_climate() -> ClimateAutomation:
    c = automation.climate
    schedule = ClimateSchedule(
        build_profiles(automation),
        store,
        scheduler,
        local_tz(),
        trigger_minute=settings.climate_trigger_minute,
    )
    return ClimateAutomation(
        schedule=schedule,
        climate=_climate(c.climate),
        states=store,
        entities=ClimateEntities(
            climate=c.climate,
            motion_sensor=c.motion_sensor,
            door_sensor=c.door_sensor,
            weather=c.weather,
            power_saving=c.power_saving,
            fan_switch=c.fan_switch,
        ),
        scheduler=scheduler,
        fan=_switch(c.fan_switch) if c.fan_switch else None,
        recorder=recorder,
        door_settle_seconds=settings.climate_door_settle_seconds,
        motion_settle_seconds=settings.climate_motion_settle_seconds,
    )


def build_lights() -> dict[str, LightAutomation]:
    out: dict[str, LightAutomation] = {}
    for room in automation.lights:
        if room.room in out:
            logger.warning("Duplicate light room %s ignored", room.room)
            continue
        light = RecordingLight(_light(room.light), recorder, reason=f"{room.room} motion")
        dimmer = DimmingController(
            light,
            scheduler,
            states=store,
            sensor_delay_entity=room.sensor_delay,
            params=dim_parameters_for(room),
        )
        out[room.room] = LightAutomation(room.room, dimmer, room.motion_sensor, room.trigger_doors)
    return out


climate = build_climate()
lights = build_lights()

sync.subscribe(climate.handle_state_change)
for _auto in lights.values():
    sync.subscribe(_auto.handle_state_change)


def get_climate() -> ClimateAutomation:
    return climate


def get_lights() -> dict[str, LightAutomation]:
    return lights


def get_sync() -> StateSyncService:
    return sync


def get_recorder() -> ActionRecorder:
    return recorder


def get_repo() -> SQLiteRepository:
    return repo


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Starting %s (mode=%s, rooms=%s)", settings.app_name, settings.mode, ", ".join(lights) or "-")

    await repo.init()
    scheduler.start()

    if ha_client is not None:
        try:
            changes = await sync.sync_once()
            logger.info("Initial state sync: %d entities", len(changes))
        except HAClientError as e:
            logger.warning("Initial state sync failed, the sync loop will retry: %s", e)

    climate.start()
    await sync.start()

    try:
        yield
    finally:
        await sync.stop()
        climate.stop()
        for auto in lights.values():
            auto.dispose()
        scheduler.shutdown()

        if ha_client is not None:
            await ha_client.close()

        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_climate] = get_climate
app.dependency_overrides[routes_module.get_lights] = get_lights
app.dependency_overrides[routes_module.get_sync] = get_sync
app.dependency_overrides[routes_module.get_recorder] = get_recorder
app.dependency_overrides[routes_module.get_repo] = get_repo

app.include_router(api_router, prefix="/api")
