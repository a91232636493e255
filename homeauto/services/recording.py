from __future__ import annotations
import logging
from collections import deque
from typing import Optional

from ..core.timeutil import now_utc
from ..domain.interfaces import LightActuator, Repository
from ..domain.models import ActionEvent

logger = logging.getLogger(__name__)


class ActionRecorder:
    """Keeps the latest actions in memory and appends them to the repository."""

    def __init__(self, repo: Optional[Repository] = None, history: int = 200) -> None:
        self._repo = repo
        self.recent: deque[ActionEvent] = deque(maxlen=history)

    async def record(self, actuator_id: str, command: str, value: Optional[str], reason: str) -> ActionEvent:
        event = ActionEvent(
            ts_utc=now_utc(),
            actuator_id=actuator_id,
            command=command,
            value=value,
            reason=reason,
        )
        self.recent.append(event)
        if self._repo is not None:
            try:
                await self._repo.insert_action(event)
            except Exception:
                # The command already went out; a lost history row must not fail it
                logger.warning("Failed to persist action %s %s", actuator_id, command, exc_info=True)
        return event


class RecordingLight:
    """LightActuator decorator that records every command it forwards."""

    def __init__(self, inner: LightActuator, recorder: ActionRecorder, reason: str) -> None:
        self._inner = inner
        self._recorder = recorder
        self.reason = reason

    @property
    def actuator_id(self) -> str:
        return self._inner.actuator_id

    async def turn_on(self, brightness_pct: int = 100) -> None:
        await self._inner.turn_on(brightness_pct=brightness_pct)
        await self._recorder.record(self.actuator_id, "turn_on", str(brightness_pct), self.reason)

    async def turn_off(self) -> None:
        await self._inner.turn_off()
        await self._recorder.record(self.actuator_id, "turn_off", None, self.reason)
