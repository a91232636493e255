from __future__ import annotations
from typing import Any, Awaitable, Callable, Optional, Protocol, runtime_checkable
from .entities import StateChange
from .models import ActionEvent


@runtime_checkable
class StateReader(Protocol):
    def get_state(self, entity_id: str) -> Optional[str]:
        ...

    def get_attribute(self, entity_id: str, name: str, default: Any = None) -> Any:
        ...


@runtime_checkable
class LightActuator(Protocol):
    actuator_id: str

    async def turn_on(self, brightness_pct: int = 100) -> None:
        ...

    async def turn_off(self) -> None:
        ...


@runtime_checkable
class SwitchActuator(Protocol):
    actuator_id: str

    async def turn_on(self) -> None:
        ...

    async def turn_off(self) -> None:
        ...


@runtime_checkable
class ClimateActuator(Protocol):
    actuator_id: str

    async def set_temperature(self, temperature: float, hvac_mode: Optional[str] = None) -> None:
        ...

    async def set_fan_mode(self, fan_mode: str) -> None:
        ...

    async def turn_on(self) -> None:
        ...

    async def turn_off(self) -> None:
        ...


@runtime_checkable
class Repository(Protocol):
    async def init(self) -> None:
        ...

    async def insert_action(self, action: ActionEvent) -> None:
        ...

    async def query_actions(self, start_ts: str, end_ts: str, limit: int) -> list[ActionEvent]:
        ...


StateListener = Callable[[StateChange], Awaitable[None]]
