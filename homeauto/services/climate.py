from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..core.scheduling import ScheduleHandle, Scheduler, dispose_all
from ..domain.entities import StateChange, is_available, is_on, is_sunny, parse_float
from ..domain.interfaces import ClimateActuator, StateReader, SwitchActuator
from ..domain.models import DecisionInputs, TemperatureDecision
from ..domain.schedule import ClimateSchedule
from ..domain.temperature import decide_temperature
from .recording import ActionRecorder
from .tasks import spawn

logger = logging.getLogger(__name__)

FAN_MODES = ("auto", "low", "medium", "high")


@dataclass(frozen=True)
class ClimateEntities:
    climate: str
    motion_sensor: str
    door_sensor: str
    weather: str
    power_saving: str
    fan_switch: Optional[str] = None


@dataclass
class ClimateState:
    enabled: bool = True
    last_window: Optional[str] = None
    last_decision: Optional[TemperatureDecision] = None
    last_reason: Optional[str] = None


class ClimateAutomation:
    """Applies the active window's temperature to one AC unit."""

    def __init__(
        self,
        schedule: ClimateSchedule,
        climate: ClimateActuator,
        states: StateReader,
        entities: ClimateEntities,
        scheduler: Scheduler,
        fan: Optional[SwitchActuator] = None,
        recorder: Optional[ActionRecorder] = None,
        door_settle_seconds: float = 300,
        motion_settle_seconds: float = 600,
    ) -> None:
        self._schedule = schedule
        self._climate = climate
        self._states = states
        self._entities = entities
        self._scheduler = scheduler
        self._fan = fan
        self._recorder = recorder
        self._door_settle = door_settle_seconds
        self._motion_settle = motion_settle_seconds

        self.state = ClimateState()
        self._reset_handle: Optional[ScheduleHandle] = None
        self._window_handles: list[ScheduleHandle] = []
        self._settling: dict[str, asyncio.Task] = {}

    @property
    def schedule(self) -> ClimateSchedule:
        return self._schedule

    @property
    def window_handles(self) -> list[ScheduleHandle]:
        return list(self._window_handles)

    # --- master switch ---

    def enable(self) -> None:
        self.state.enabled = True

    def disable(self) -> None:
        self.state.enabled = False
        self._cancel_all_settling()

    # --- lifecycle ---

    def start(self) -> None:
        self.stop()
        self._reset_handle = self._schedule.get_reset_schedule(self._on_reset)
        self._window_handles = self._schedule.get_schedules(self._on_window_trigger)
        logger.info("Climate automation started with %d window trigger(s)", len(self._window_handles))

    def stop(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.dispose()
            self._reset_handle = None
        dispose_all(self._window_handles)
        self._window_handles = []
        self._cancel_all_settling()

    def _on_reset(self) -> None:
        # Boundary hours move daily; rebuild the window triggers from fresh readings
        dispose_all(self._window_handles)
        self._window_handles = self._schedule.get_schedules(self._on_window_trigger)

    async def _on_window_trigger(self) -> None:
        await self.apply_scheduled_settings(reason="Window trigger")

    # --- decision ---

    def current_inputs(self) -> DecisionInputs:
        e = self._entities
        return DecisionInputs(
            occupied=is_on(self._states.get_state(e.motion_sensor)),
            barrier_open=is_on(self._states.get_state(e.door_sensor)),
            power_saving_active=is_on(self._states.get_state(e.power_saving)),
            is_cold_weather=not is_sunny(self._states.get_state(e.weather)),
        )

    def is_climate_on(self) -> bool:
        raw = self._states.get_state(self._entities.climate)
        return is_available(raw) and raw.strip().lower() != "off"  # type: ignore[union-attr]

    def _skip(self, reason: str) -> None:
        self.state.last_reason = reason
        logger.debug("Skipping AC settings: %s", reason)

    async def apply_scheduled_settings(self, reason: str = "Manual") -> Optional[TemperatureDecision]:
        window = self._schedule.current_window()
        self.state.last_window = window.value
        logger.debug("AC evaluation (%s): window=%s", reason, window.value)

        if not self.state.enabled:
            self._skip("Automation disabled")
            return None

        ok, cfg = self._schedule.try_get_config(window)
        if not ok or cfg is None:
            self._skip(f"No valid settings for window {window.value}")
            return None

        if not self.is_climate_on():
            self._skip("AC is currently off")
            return None

        decision = decide_temperature(cfg, self.current_inputs())
        self.state.last_decision = decision

        current_temp = self._states.get_attribute(self._entities.climate, "temperature")
        current_temp = parse_float(str(current_temp)) if current_temp is not None else None
        current_mode = self._states.get_state(self._entities.climate)
        if current_temp == decision.temperature and current_mode == cfg.mode:
            self._skip(f"Already at {decision.temperature}°C / {cfg.mode}")
            return decision

        logger.info(
            "Applying %s: %s°C -> %s°C, %s -> %s (%s)",
            cfg.label(), current_temp, decision.temperature, current_mode, cfg.mode, decision.reason,
        )
        await self._climate.set_temperature(decision.temperature, cfg.mode)
        self.state.last_reason = f"{reason}: {decision.reason}"
        if self._recorder:
            await self._recorder.record(
                self._climate.actuator_id, "set_temperature", f"{decision.temperature}/{cfg.mode}",
                self.state.last_reason,
            )

        if cfg.can_boost_airflow and self._fan is not None:
            await self._fan.turn_on()
            if self._recorder:
                await self._recorder.record(self._fan.actuator_id, "turn_on", None, f"Airflow boost ({cfg.window.value})")

        return decision

    async def cycle_fan_mode(self) -> str:
        current = self._states.get_attribute(self._entities.climate, "fan_mode")
        idx = FAN_MODES.index(current) if current in FAN_MODES else -1
        nxt = FAN_MODES[(idx + 1) % len(FAN_MODES)]
        await self._climate.set_fan_mode(nxt)
        if self._recorder:
            await self._recorder.record(self._climate.actuator_id, "set_fan_mode", nxt, "Fan mode cycle")
        return nxt

    # --- sensor changes ---

    async def handle_state_change(self, change: StateChange) -> None:
        e = self._entities
        eid = change.entity_id
        if eid == e.motion_sensor:
            if is_on(change.new_state):
                self._cancel_settling(eid)
                await self.apply_scheduled_settings(reason="Occupancy detected")
            else:
                self._settle(eid, self._motion_settle, "Motion cleared")
        elif eid == e.door_sensor:
            if is_on(change.new_state):
                self._settle(eid, self._door_settle, "Door opened")
            else:
                self._cancel_settling(eid)
                await self.apply_scheduled_settings(reason="Door closed")
        elif eid == e.power_saving:
            await self.apply_scheduled_settings(reason="Power saving toggled")
        elif eid == e.climate:
            was_on = change.old is not None and change.old_state != "off" and is_available(change.old_state)
            if not was_on and self.is_climate_on():
                await self.apply_scheduled_settings(reason="AC turned on")

    def _settle(self, entity_id: str, seconds: float, reason: str) -> None:
        """Re-evaluate once ``entity_id`` has held its state for ``seconds``."""
        self._cancel_settling(entity_id)
        self._settling[entity_id] = spawn(
            self._apply_after(entity_id, seconds, reason), name=f"climate_settle_{entity_id}"
        )

    async def _apply_after(self, entity_id: str, seconds: float, reason: str) -> None:
        await self._scheduler.sleep(seconds)
        if self._settling.get(entity_id) is asyncio.current_task():
            del self._settling[entity_id]
        await self.apply_scheduled_settings(reason=reason)

    def _cancel_settling(self, entity_id: str) -> None:
        task = self._settling.pop(entity_id, None)
        if task is not None and not task.done():
            task.cancel()

    def _cancel_all_settling(self) -> None:
        for entity_id in list(self._settling):
            self._cancel_settling(entity_id)

    @property
    def settling(self) -> list[str]:
        return [eid for eid, t in self._settling.items() if not t.done()]
