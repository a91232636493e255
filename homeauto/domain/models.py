from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class TimeWindow(str, Enum):
    SUNRISE = "sunrise"
    SUNSET = "sunset"
    MIDNIGHT = "midnight"


@dataclass(frozen=True)
class WindowProfile:
    """Static settings of a window; boundary hours come from the two sensors."""
    window: TimeWindow
    normal: int
    power_saving: int
    occupied: int
    passive: int
    mode: str
    can_boost_airflow: bool
    start_sensor: str
    end_sensor: str


@dataclass(frozen=True)
class WindowConfig:
    window: TimeWindow
    normal: int
    power_saving: int
    occupied: int
    passive: int
    mode: str
    can_boost_airflow: bool
    start_hour: int
    end_hour: int

    def is_valid_hour_range(self) -> bool:
        return 0 <= self.start_hour <= 23 and 0 <= self.end_hour <= 23

    def contains(self, hour: int) -> bool:
        # Overnight windows (e.g. 22 -> 6) wrap past midnight
        if self.start_hour <= self.end_hour:
            return self.start_hour <= hour <= self.end_hour
        return hour >= self.start_hour or hour <= self.end_hour

    def label(self) -> str:
        return f"{self.window.value} {self.start_hour:02d}-{self.end_hour:02d}"


@dataclass(frozen=True)
class DecisionInputs:
    occupied: bool
    barrier_open: bool
    power_saving_active: bool
    is_cold_weather: bool


@dataclass(frozen=True)
class TemperatureDecision:
    temperature: int
    rule: str  # "power_saving" | "occupied" | "normal" | "passive"
    reason: str
    inputs: DecisionInputs


class ActuatorState(str, Enum):
    FULL = "full"
    PENDING_DIM = "pending_dim"
    DIMMED = "dimmed"
    PENDING_OFF = "pending_off"
    OFF = "off"


@dataclass(frozen=True)
class ActionEvent:
    ts_utc: datetime
    actuator_id: str
    command: str  # "turn_on" | "turn_off" | "set_temperature" | "set_fan_mode"
    value: Optional[str]
    reason: str
