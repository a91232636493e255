from __future__ import annotations
import asyncio
import logging
from typing import Optional

from ..domain.entities import StateChange, StateStore
from ..domain.interfaces import StateListener
from ..drivers.ha_client import HomeAssistantClient

logger = logging.getLogger(__name__)


class StateSyncService:
    """Polls Home Assistant, keeps the StateStore current and fans out changes."""

    def __init__(
        self,
        store: StateStore,
        client: Optional[HomeAssistantClient] = None,
        poll_seconds: float = 5.0,
    ) -> None:
        self._store = store
        self._client = client
        self._poll_seconds = poll_seconds
        self._listeners: list[StateListener] = []

        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()
        self.last_error: Optional[str] = None

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    async def dispatch(self, change: StateChange) -> None:
        for listener in self._listeners:
            try:
                await listener(change)
            except Exception:
                logger.exception("Listener failed for %s -> %s", change.entity_id, change.new_state)

    async def push(self, entity_id: str, state: str, attributes: Optional[dict] = None) -> Optional[StateChange]:
        """Apply an externally pushed state (webhook / simulation)."""
        change = self._store.set(entity_id, state, attributes)
        if change is not None:
            await self.dispatch(change)
        return change

    async def sync_once(self) -> list[StateChange]:
        if self._client is None:
            return []
        await self._client.connect()  # no-op once connected; reconnects after a failed start
        states = await self._client.get_states()
        changes = self._store.update_many(states)
        for change in changes:
            await self.dispatch(change)
        return changes

    async def start(self) -> None:
        if self._client is None:
            logger.info("No Home Assistant client; state sync loop not started")
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="state_sync_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def _run(self) -> None:
        logger.info("State sync loop started (poll_seconds=%s)", self._poll_seconds)

        while not self._stop.is_set():
            try:
                changes = await self.sync_once()
                self.last_error = None
                if changes:
                    logger.debug("State sync: %d change(s)", len(changes))
            except Exception as e:
                self.last_error = str(e)
                logger.exception("State sync loop error: %s", e)

            # sleep with cancellation awareness
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._poll_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("State sync loop stopped")
