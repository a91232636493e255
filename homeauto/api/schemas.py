from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class MotionRequest(BaseModel):
    detected: bool


class DimmingUpdateRequest(BaseModel):
    brightness_pct: int = Field(ge=0, le=100)
    dim_delay_seconds: float = Field(ge=0, le=3600)
    off_delay_seconds: float = Field(ge=0, le=3600)
    activation_value: float


class StatePushRequest(BaseModel):
    entity_id: str = Field(min_length=3)
    state: str
    attributes: Optional[Dict[str, Any]] = None
