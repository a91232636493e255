from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..core.config import settings
from ..core.timeutil import now_local, now_utc
from ..domain.models import TemperatureDecision
from ..drivers.ha_client import HAClientError
from ..services.climate import ClimateAutomation
from ..services.lighting import LightAutomation
from ..services.recording import ActionRecorder
from ..services.sync import StateSyncService
from ..storage.sqlite_repo import SQLiteRepository
from .schemas import DimmingUpdateRequest, MotionRequest, StatePushRequest

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters (main.py wires the real ones via app.dependency_overrides) ---
def get_climate() -> ClimateAutomation:  # overridden in main
    raise RuntimeError("Climate dependency not configured")

def get_lights() -> dict[str, LightAutomation]:  # overridden in main
    raise RuntimeError("Lights dependency not configured")

def get_sync() -> StateSyncService:  # overridden in main
    raise RuntimeError("Sync dependency not configured")

def get_recorder() -> ActionRecorder:  # overridden in main
    raise RuntimeError("Recorder dependency not configured")

def get_repo() -> SQLiteRepository:  # overridden in main
    raise RuntimeError("Repo dependency not configured")


def _decision_out(d: Optional[TemperatureDecision]) -> Optional[dict]:
    if d is None:
        return None
    return {
        "temperature": d.temperature,
        "rule": d.rule,
        "reason": d.reason,
        "inputs": asdict(d.inputs),
    }


def _light_out(auto: LightAutomation) -> dict:
    dimmer = auto.dimmer
    return {
        "room": auto.room,
        "enabled": auto.enabled,
        "light": dimmer.light_id,
        "state": dimmer.state.value if dimmer.state else None,
        "sequence_pending": dimmer.sequence_pending,
        "dimming_active": dimmer.should_dim(),
        "params": asdict(dimmer.params),
    }


def _room(lights: dict[str, LightAutomation], room: str) -> LightAutomation:
    auto = lights.get(room)
    if auto is None:
        raise HTTPException(status_code=404, detail=f"Unknown room: {room}")
    return auto


@router.get("/live")
async def get_live(
    climate: ClimateAutomation = Depends(get_climate),
    lights: dict[str, LightAutomation] = Depends(get_lights),
    recorder: ActionRecorder = Depends(get_recorder),
    sync: StateSyncService = Depends(get_sync),
):
    return {
        "app": settings.app_name,
        "mode": settings.mode,
        "now_local": now_local().isoformat(),
        "sync_error": sync.last_error,
        "climate": {
            "enabled": climate.state.enabled,
            "current_window": climate.schedule.current_window().value,
            "last_window": climate.state.last_window,
            "last_reason": climate.state.last_reason,
            "last_decision": _decision_out(climate.state.last_decision),
            "inputs": asdict(climate.current_inputs()),
            "settling": climate.settling,
        },
        "lights": {room: _light_out(auto) for room, auto in lights.items()},
        "recent_actions": [
            {
                "ts_utc": a.ts_utc.isoformat(),
                "actuator_id": a.actuator_id,
                "command": a.command,
                "value": a.value,
                "reason": a.reason,
            }
            for a in list(recorder.recent)[-20:]
        ],
    }


# --- Climate ---

@router.get("/climate/windows")
async def climate_windows(climate: ClimateAutomation = Depends(get_climate)):
    out = []
    for cfg in climate.schedule.configs():
        out.append({
            "window": cfg.window.value,
            "start_hour": cfg.start_hour,
            "end_hour": cfg.end_hour,
            "valid": cfg.is_valid_hour_range(),
            "normal": cfg.normal,
            "power_saving": cfg.power_saving,
            "occupied": cfg.occupied,
            "passive": cfg.passive,
            "mode": cfg.mode,
            "can_boost_airflow": cfg.can_boost_airflow,
        })
    return {"windows": out, "current": climate.schedule.current_window().value}


@router.post("/climate/apply")
async def climate_apply(climate: ClimateAutomation = Depends(get_climate)):
    try:
        decision = await climate.apply_scheduled_settings(reason="API request")
    except HAClientError as e:
        logger.warning("Climate apply failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    return {
        "ok": True,
        "window": climate.state.last_window,
        "reason": climate.state.last_reason,
        "decision": _decision_out(decision),
    }


@router.post("/climate/enable")
async def climate_enable(climate: ClimateAutomation = Depends(get_climate)):
    climate.enable()
    return {"ok": True, "enabled": climate.state.enabled}


@router.post("/climate/disable")
async def climate_disable(climate: ClimateAutomation = Depends(get_climate)):
    climate.disable()
    return {"ok": True, "enabled": climate.state.enabled}


@router.post("/climate/fan-mode/cycle")
async def climate_fan_mode_cycle(climate: ClimateAutomation = Depends(get_climate)):
    try:
        mode = await climate.cycle_fan_mode()
    except HAClientError as e:
        logger.warning("Fan mode cycle failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    return {"ok": True, "fan_mode": mode}


# --- Lights ---

@router.get("/lights")
async def lights_status(lights: dict[str, LightAutomation] = Depends(get_lights)):
    return {"lights": {room: _light_out(auto) for room, auto in lights.items()}}


@router.post("/lights/{room}/motion")
async def light_motion(
    room: str,
    req: MotionRequest,
    lights: dict[str, LightAutomation] = Depends(get_lights),
):
    auto = _room(lights, room)
    if req.detected:
        try:
            await auto.motion_detected()
        except HAClientError as e:
            logger.warning("%s: light on failed: %s", room, e)
            raise HTTPException(status_code=502, detail=str(e))
    else:
        auto.motion_cleared()
    return {"ok": True, "light": _light_out(auto)}


@router.post("/lights/{room}/enable")
async def light_enable(room: str, lights: dict[str, LightAutomation] = Depends(get_lights)):
    auto = _room(lights, room)
    auto.enable()
    return {"ok": True, "enabled": auto.enabled}


@router.post("/lights/{room}/disable")
async def light_disable(room: str, lights: dict[str, LightAutomation] = Depends(get_lights)):
    auto = _room(lights, room)
    auto.disable()
    return {"ok": True, "enabled": auto.enabled}


@router.put("/lights/{room}/dimming")
async def light_dimming(
    room: str,
    req: DimmingUpdateRequest,
    lights: dict[str, LightAutomation] = Depends(get_lights),
):
    auto = _room(lights, room)
    auto.dimmer.configure(
        dim_level=req.brightness_pct,
        dim_delay=req.dim_delay_seconds,
        off_delay=req.off_delay_seconds,
        activation_threshold=req.activation_value,
    )
    return {"ok": True, "light": _light_out(auto)}


# --- States webhook ---

@router.post("/states")
async def push_state(req: StatePushRequest, sync: StateSyncService = Depends(get_sync)):
    change = await sync.push(req.entity_id, req.state, req.attributes)
    return {"ok": True, "changed": change is not None}


@router.get("/actions")
async def actions(
    minutes: int = 240,
    limit: int = 2000,
    repo: SQLiteRepository = Depends(get_repo),
):
    end = now_utc()
    start = end - timedelta(minutes=max(1, minutes))
    rows = await repo.query_actions(start.isoformat(), end.isoformat(), limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [
            {
                "ts_utc": a.ts_utc.isoformat(),
                "actuator_id": a.actuator_id,
                "command": a.command,
                "value": a.value,
                "reason": a.reason,
            }
            for a in rows
        ],
    }
