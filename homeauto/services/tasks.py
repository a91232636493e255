from __future__ import annotations
import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


def _report(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background task %s failed", task.get_name(), exc_info=exc)


def spawn(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
    """Run ``coro`` in the background; failures are logged when the task ends."""
    task = asyncio.create_task(coro, name=name)
    task.add_done_callback(_report)
    return task
