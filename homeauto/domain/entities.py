"""Latest-known entity states and tolerant parsing of raw state strings.

Raw states come from Home Assistant as strings. Anything missing or
unparsable maps to a documented default instead of raising:

- binary sensors: anything but ``on`` is off
- weather: anything but sunny / partly cloudy counts as cold
- numbers: ``default`` (callers use 0)
- timestamps: hour ``-1``, which no window accepts
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

UNAVAILABLE_STATES = frozenset({"", "unavailable", "unknown", "none"})
SUNNY_STATES = frozenset({"sunny", "partlycloudy"})
INVALID_HOUR = -1


@dataclass(frozen=True)
class EntityState:
    entity_id: str
    state: str
    attributes: dict[str, Any] = field(default_factory=dict)
    last_changed: Optional[datetime] = None


@dataclass(frozen=True)
class StateChange:
    entity_id: str
    old: Optional[EntityState]
    new: EntityState

    @property
    def old_state(self) -> Optional[str]:
        return self.old.state if self.old else None

    @property
    def new_state(self) -> str:
        return self.new.state


def is_available(raw: Optional[str]) -> bool:
    return raw is not None and raw.strip().lower() not in UNAVAILABLE_STATES


def is_on(raw: Optional[str]) -> bool:
    return raw is not None and raw.strip().lower() == "on"


def is_sunny(raw: Optional[str]) -> bool:
    return raw is not None and raw.strip().lower() in SUNNY_STATES


def parse_float(raw: Optional[str], default: Optional[float] = None) -> Optional[float]:
    if not is_available(raw):
        return default
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def parse_local_hour(raw: Optional[str], tz: ZoneInfo) -> int:
    """Hour (0-23) of a timestamp state in ``tz``, or ``INVALID_HOUR``.

    Accepts ISO timestamps (aware ones are converted, naive ones are taken as
    local) and bare integer hours.
    """
    if not is_available(raw):
        return INVALID_HOUR
    text = raw.strip()  # type: ignore[union-attr]
    if text.lstrip("-").isdigit():
        return int(text)
    try:
        ts = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return INVALID_HOUR
    if ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts.hour


class StateStore:
    """In-memory latest state per entity, with change detection."""

    def __init__(self) -> None:
        self._states: dict[str, EntityState] = {}

    def get(self, entity_id: str) -> Optional[EntityState]:
        return self._states.get(entity_id)

    def get_state(self, entity_id: str) -> Optional[str]:
        st = self._states.get(entity_id)
        return st.state if st else None

    def get_attribute(self, entity_id: str, name: str, default: Any = None) -> Any:
        st = self._states.get(entity_id)
        if st is None:
            return default
        return st.attributes.get(name, default)

    def set(
        self,
        entity_id: str,
        state: str,
        attributes: Optional[dict[str, Any]] = None,
        last_changed: Optional[datetime] = None,
    ) -> Optional[StateChange]:
        """Store a state; returns the change, or None when nothing changed."""
        old = self._states.get(entity_id)
        attrs = dict(attributes) if attributes is not None else (dict(old.attributes) if old else {})
        new = EntityState(entity_id=entity_id, state=str(state), attributes=attrs, last_changed=last_changed)
        if old is not None and old.state == new.state and old.attributes == new.attributes:
            return None
        self._states[entity_id] = new
        logger.debug("State %s: %s -> %s", entity_id, old.state if old else None, new.state)
        return StateChange(entity_id=entity_id, old=old, new=new)

    def update_many(self, states: Iterable[EntityState]) -> list[StateChange]:
        changes: list[StateChange] = []
        for st in states:
            change = self.set(st.entity_id, st.state, st.attributes, st.last_changed)
            if change is not None:
                changes.append(change)
        return changes
