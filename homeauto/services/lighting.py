from __future__ import annotations
import asyncio
import logging
from typing import Optional

from ..domain.dimming import DimmingController
from ..domain.entities import StateChange, is_on
from .tasks import spawn

logger = logging.getLogger(__name__)


class LightAutomation:
    """Motion-driven light for one room, shut off through the dimming controller."""

    def __init__(
        self,
        room: str,
        dimmer: DimmingController,
        motion_sensor: str,
        trigger_doors: Optional[list[str]] = None,
    ) -> None:
        self.room = room
        self.dimmer = dimmer
        self.motion_sensor = motion_sensor
        self.trigger_doors = list(trigger_doors or [])
        self.enabled = True

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False
        self.dimmer.cancel()

    async def motion_detected(self) -> None:
        if not self.enabled:
            return
        logger.debug("%s: motion detected", self.room)
        await self.dimmer.on_start_signal()

    def motion_cleared(self) -> Optional[asyncio.Task]:
        """Start the stop sequence in the background and return its task."""
        if not self.enabled:
            return None
        logger.debug("%s: motion cleared", self.room)
        return spawn(self.dimmer.on_stop_signal(), name=f"dim_{self.room}")

    async def handle_state_change(self, change: StateChange) -> None:
        if change.entity_id == self.motion_sensor:
            if is_on(change.new_state):
                await self.motion_detected()
            elif is_on(change.old_state):
                self.motion_cleared()
        elif change.entity_id in self.trigger_doors and is_on(change.new_state):
            logger.debug("%s: door %s opened", self.room, change.entity_id)
            await self.motion_detected()

    def dispose(self) -> None:
        self.dimmer.dispose()
