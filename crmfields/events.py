"""Event system for the crmfields engine.

Every write into the value store, every dependency transition and every
address combination is described by a typed ``FieldEvent``. Events are handed to
listeners synchronously through an ``EventEmitter``; front ends subscribe to them
to re-render, and tests use them to observe the reactive pipeline.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from crmfields.types import EventType, ValueSource

logger = logging.getLogger(__name__)


def _new_event_id() -> str:
    return f"evt_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class FieldEvent:
    """A single change observed by the engine.

    Attributes:
        event_id: Unique event identifier (e.g., "evt_3f2a...")
        type: Event type from EventType enum
        field_name: Field the event concerns; None for form-wide events
        source: Who caused the change
        ts: UTC timestamp when the event occurred
        payload: Event-specific data (``old``/``new`` values for writes)

    Examples:
        >>> event = FieldEvent.create(
        ...     EventType.VALUE_CHANGED, "Field_3", ValueSource.USER,
        ...     {"old": "", "new": "Acme"},
        ... )
        >>> event.to_dict()["fieldName"]
        'Field_3'
    """
    event_id: str
    type: EventType
    field_name: Optional[str]
    source: ValueSource
    ts: datetime
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if isinstance(self.type, str):
            object.__setattr__(self, "type", EventType(self.type))
        if isinstance(self.source, str):
            object.__setattr__(self, "source", ValueSource(self.source))

    @classmethod
    def create(
        cls,
        event_type: EventType,
        field_name: Optional[str],
        source: ValueSource,
        payload: Optional[Dict[str, Any]] = None,
    ) -> "FieldEvent":
        """Build an event stamped with a fresh id and the current time."""
        return cls(
            event_id=_new_event_id(),
            type=event_type,
            field_name=field_name,
            source=source,
            ts=datetime.now(timezone.utc),
            payload=payload,
        )

    @property
    def old(self) -> Any:
        return (self.payload or {}).get("old")

    @property
    def new(self) -> Any:
        return (self.payload or {}).get("new")

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary; timestamp as ISO 8601."""
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "fieldName": self.field_name,
            "source": self.source.value,
            "ts": self.ts.isoformat(),
        }
        if self.payload is not None:
            result["payload"] = self.payload
        return result

    def to_jsonl(self) -> str:
        """Single-line JSON; values that are not JSON types are stringified."""
        return json.dumps(self.to_dict(), separators=(",", ":"), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldEvent":
        ts = datetime.fromisoformat(data["ts"].replace("Z", "+00:00"))
        return cls(
            event_id=data["eventId"],
            type=EventType(data["type"]),
            field_name=data.get("fieldName"),
            source=ValueSource(data["source"]),
            ts=ts,
            payload=data.get("payload"),
        )


EventListener = Callable[[FieldEvent], None]


class EventEmitter:
    """Dispatches FieldEvents to type-specific and wildcard listeners.

    Listeners run synchronously in registration order, type-specific first.
    A listener that raises is logged and skipped; the remaining listeners and
    the caller are unaffected.

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(EventType.VALUE_CHANGED, seen.append)
        >>> emitter.emit(FieldEvent.create(EventType.VALUE_CHANGED, "f", ValueSource.USER))
        >>> len(seen)
        1
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        self._any_listeners.append(listener)

    def off(self, event_type: EventType, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: FieldEvent) -> None:
        """Dispatch an event to every matching listener."""
        for listener in list(self._listeners.get(event.type, [])) + list(self._any_listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Listener %r failed on %s for %s", listener, event.type.value, event.field_name
                )

    def clear(self) -> None:
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Count listeners for one type, or all listeners when type is None."""
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(v) for v in self._listeners.values())


__all__ = [
    "FieldEvent",
    "EventListener",
    "EventEmitter",
]
