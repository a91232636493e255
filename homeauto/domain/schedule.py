from __future__ import annotations
import inspect
import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from ..core.scheduling import Callback, ScheduleHandle, Scheduler
from .entities import parse_local_hour
from .interfaces import StateReader
from .models import TimeWindow, WindowConfig, WindowProfile

logger = logging.getLogger(__name__)

RESET_HOUR = 0


class ClimateSchedule:
    """Daily climate windows anchored to boundary sensors (sunrise, sunset, ...).

    Boundary hours are re-read from the sensors on every call, so nothing here
    goes stale when the sun sensors roll over to the next day.
    """

    def __init__(
        self,
        profiles: list[WindowProfile],
        states: StateReader,
        scheduler: Scheduler,
        tz: ZoneInfo,
        trigger_minute: int = 5,
    ) -> None:
        self._states = states
        self._scheduler = scheduler
        self._tz = tz
        self._trigger_minute = trigger_minute
        self._profiles: list[WindowProfile] = []
        self.replace(profiles)

    def windows(self) -> list[WindowProfile]:
        return list(self._profiles)

    def replace(self, profiles: list[WindowProfile]) -> None:
        kept: list[WindowProfile] = []
        seen: set[TimeWindow] = set()
        for p in profiles:
            if p.window in seen:
                logger.warning("Duplicate profile for window %s ignored", p.window.value)
                continue
            seen.add(p.window)
            kept.append(p)
        self._profiles = kept

    def _resolve(self, p: WindowProfile) -> WindowConfig:
        return WindowConfig(
            window=p.window,
            normal=p.normal,
            power_saving=p.power_saving,
            occupied=p.occupied,
            passive=p.passive,
            mode=p.mode,
            can_boost_airflow=p.can_boost_airflow,
            start_hour=parse_local_hour(self._states.get_state(p.start_sensor), self._tz),
            end_hour=parse_local_hour(self._states.get_state(p.end_sensor), self._tz),
        )

    def configs(self) -> list[WindowConfig]:
        return [self._resolve(p) for p in self._profiles]

    def try_get_config(self, window: TimeWindow) -> tuple[bool, Optional[WindowConfig]]:
        for p in self._profiles:
            if p.window == window:
                cfg = self._resolve(p)
                if not cfg.is_valid_hour_range():
                    logger.debug("Window %s has invalid hours %s-%s", window.value, cfg.start_hour, cfg.end_hour)
                    return False, None
                return True, cfg
        return False, None

    def current_window(self, now: Optional[datetime] = None) -> TimeWindow:
        """Window for the given (or current) local hour. Never raises.

        When several windows contain the hour, the one that started most
        recently wins and ties go to the first declared. When none contains it,
        the most recently started valid window carries on; with no valid window
        at all, the first declared one is returned.
        """
        if not self._profiles:
            return TimeWindow.SUNRISE  # nothing configured

        local = now or self._scheduler.now()
        local = local.replace(tzinfo=self._tz) if local.tzinfo is None else local.astimezone(self._tz)
        hour = local.hour
        valid = [c for c in self.configs() if c.is_valid_hour_range()]

        def since_start(c: WindowConfig) -> int:
            return (hour - c.start_hour) % 24

        containing = [c for c in valid if c.contains(hour)]
        if containing:
            chosen = min(containing, key=since_start)
            logger.debug("Hour %d matched window %s", hour, chosen.label())
            return chosen.window

        if valid:
            chosen = min(valid, key=since_start)
            logger.debug("No window contains hour %d; carrying on with %s", hour, chosen.label())
            return chosen.window

        logger.debug("No valid window for hour %d; using %s", hour, self._profiles[0].window.value)
        return self._profiles[0].window

    def get_schedules(self, on_fire: Callback) -> list[ScheduleHandle]:
        handles: list[ScheduleHandle] = []
        for cfg in self.configs():
            if not cfg.is_valid_hour_range():
                logger.warning(
                    "Invalid hour range %s-%s for window %s. Skipping schedule.",
                    cfg.start_hour, cfg.end_hour, cfg.window.value,
                )
                continue
            logger.info(
                "Scheduling window %s at %02d:%02d daily",
                cfg.window.value, cfg.start_hour, self._trigger_minute,
            )
            handles.append(
                self._scheduler.schedule_daily(
                    cfg.start_hour, self._trigger_minute, on_fire, name=f"climate_{cfg.window.value}"
                )
            )
        return handles

    def get_reset_schedule(self, on_reset: Optional[Callback] = None) -> ScheduleHandle:
        async def _reset() -> None:
            logger.info("Daily reset: boundary hours re-read from sensors")
            self.log_settings()
            if on_reset is not None:
                result = on_reset()
                if inspect.isawaitable(result):
                    await result

        return self._scheduler.schedule_daily(RESET_HOUR, 0, _reset, name="climate_reset")

    def log_settings(self) -> None:
        for cfg in self.configs():
            logger.debug(
                "Window %s: normal=%s power_saving=%s occupied=%s passive=%s mode=%s boost=%s hours=%s-%s",
                cfg.window.value, cfg.normal, cfg.power_saving, cfg.occupied, cfg.passive,
                cfg.mode, cfg.can_boost_airflow, cfg.start_hour, cfg.end_hour,
            )
