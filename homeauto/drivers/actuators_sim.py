from __future__ import annotations
import logging
from typing import Optional

from ..domain.entities import StateStore

logger = logging.getLogger(__name__)


class SimulatedLight:
    """Light that writes its state back into the store, like HA would."""

    def __init__(self, store: StateStore, entity_id: str) -> None:
        self._store = store
        self.actuator_id = entity_id

    async def turn_on(self, brightness_pct: int = 100) -> None:
        self._store.set(self.actuator_id, "on", {"brightness_pct": brightness_pct})
        logger.info("LIGHT %s on brightness=%s%%", self.actuator_id, brightness_pct)

    async def turn_off(self) -> None:
        self._store.set(self.actuator_id, "off", {})
        logger.info("LIGHT %s off", self.actuator_id)


class SimulatedSwitch:
    def __init__(self, store: StateStore, entity_id: str) -> None:
        self._store = store
        self.actuator_id = entity_id

    async def turn_on(self) -> None:
        self._store.set(self.actuator_id, "on")
        logger.info("SWITCH %s on", self.actuator_id)

    async def turn_off(self) -> None:
        self._store.set(self.actuator_id, "off")
        logger.info("SWITCH %s off", self.actuator_id)


class SimulatedClimate:
    def __init__(self, store: StateStore, entity_id: str, default_mode: str = "cool") -> None:
        self._store = store
        self.actuator_id = entity_id
        self._default_mode = default_mode

    def _attrs(self) -> dict:
        st = self._store.get(self.actuator_id)
        return dict(st.attributes) if st else {}

    async def set_temperature(self, temperature: float, hvac_mode: Optional[str] = None) -> None:
        state = hvac_mode or self._store.get_state(self.actuator_id) or self._default_mode
        attrs = self._attrs()
        attrs["temperature"] = temperature
        self._store.set(self.actuator_id, state, attrs)
        logger.info("CLIMATE %s set %s°C mode=%s", self.actuator_id, temperature, state)

    async def set_fan_mode(self, fan_mode: str) -> None:
        attrs = self._attrs()
        attrs["fan_mode"] = fan_mode
        self._store.set(self.actuator_id, self._store.get_state(self.actuator_id) or "off", attrs)
        logger.info("CLIMATE %s fan_mode=%s", self.actuator_id, fan_mode)

    async def turn_on(self) -> None:
        self._store.set(self.actuator_id, self._default_mode, self._attrs())
        logger.info("CLIMATE %s on", self.actuator_id)

    async def turn_off(self) -> None:
        self._store.set(self.actuator_id, "off", self._attrs())
        logger.info("CLIMATE %s off", self.actuator_id)
