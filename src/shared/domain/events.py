"""Domain events primitives for the modular monolith."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type
from uuid import UUID, uuid4

_EVENT_TYPES: Dict[str, Type["DomainEvent"]] = {}


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable).

    Subclasses register themselves by class name so an event stored in
    the outbox can be rebuilt with :meth:`from_payload`.  Every field a
    subclass adds must have a default and hold JSON-friendly values.
    """

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_name: str = field(init=False)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        _EVENT_TYPES[cls.__name__] = cls

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", self.__class__.__name__)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DomainEvent":
        accepted = {f.name for f in fields(cls) if f.init}
        data = {key: value for key, value in payload.items() if key in accepted}
        data["aggregate_id"] = UUID(str(data["aggregate_id"]))
        if data.get("event_id"):
            data["event_id"] = UUID(str(data["event_id"]))
        if isinstance(data.get("occurred_on"), str):
            data["occurred_on"] = datetime.fromisoformat(data["occurred_on"])
        return cls(**data)


def resolve_event_type(name: str) -> Optional[Type[DomainEvent]]:
    """Return the registered event class for *name*, if any."""
    return _EVENT_TYPES.get(name)


class DomainEventMixin:
    """Mixin for aggregate roots that collect domain events in memory."""

    _domain_events: list[DomainEvent]

    def add_domain_event(self, event: DomainEvent) -> None:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        self._domain_events.append(event)

    def clear_domain_events(self) -> None:
        if hasattr(self, "_domain_events"):
            self._domain_events.clear()

    @property
    def domain_events(self) -> list[DomainEvent]:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        return list(self._domain_events)
