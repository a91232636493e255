from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Residence Automation"
    timezone: str = "Asia/Kuala_Lumpur"

    # Mode: "sim" keeps actuators in memory; "ha" talks to Home Assistant
    mode: str = Field(default="sim")

    # Home Assistant REST
    ha_url: str = "http://homeassistant.local:8123"
    ha_token: str = ""
    ha_timeout_seconds: float = 10.0
    ha_verify_ssl: bool = True
    poll_seconds: int = 5

    # Climate
    climate_trigger_minute: int = 5  # fire a few minutes past the boundary hour
    climate_door_settle_seconds: int = 300
    climate_motion_settle_seconds: int = 600

    # Dimming defaults for rooms that don't override them
    dim_brightness_pct: int = 80
    dim_delay_seconds: float = 5.0
    off_delay_seconds: float = 5.0
    sensor_active_delay_value: float = 5

    # Storage
    sqlite_path: str = Field(default="homeauto.db")

    # Logging
    log_file: str = "homeauto.log"
    log_level: str = "INFO"

    # Optional override for the packaged default_automation.json
    automation_file: Optional[str] = None


settings = Settings()


# --- Automation file schema ---

class WindowProfileIn(BaseModel):
    window: str
    normal: int
    power_saving: int
    occupied: int
    passive: int
    mode: str = "cool"
    can_boost_airflow: bool = False
    start_sensor: str
    end_sensor: str


class ClimateEntitiesIn(BaseModel):
    climate: str
    motion_sensor: str
    door_sensor: str
    weather: str
    power_saving: str
    fan_switch: Optional[str] = None
    windows: list[WindowProfileIn]


class RoomLightIn(BaseModel):
    room: str
    light: str
    motion_sensor: str
    sensor_delay: Optional[str] = None
    trigger_doors: list[str] = Field(default_factory=list)
    activation_value: Optional[float] = None
    dim_brightness_pct: Optional[int] = Field(default=None, ge=0, le=100)
    dim_delay_seconds: Optional[float] = Field(default=None, ge=0)
    off_delay_seconds: Optional[float] = Field(default=None, ge=0)


class AutomationConfig(BaseModel):
    climate: ClimateEntitiesIn
    lights: list[RoomLightIn] = Field(default_factory=list)
