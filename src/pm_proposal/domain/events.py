"""Domain events — the feed consumed by the off-engine indexer."""

from dataclasses import dataclass, field
from typing import Any

from src.pm_common.enums import EventType


@dataclass(frozen=True)
class DomainEvent:
    event_type: EventType
    proposal_id: int | None
    timestamp: int
    payload: dict[str, Any] = field(default_factory=dict)


class EventLog:
    """Append-only, in-process event log. Offsets are list indices."""

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def publish(self, events: list[DomainEvent]) -> None:
        self._events.extend(events)

    def since(self, offset: int) -> list[DomainEvent]:
        return list(self._events[offset:])

    def for_proposal(self, proposal_id: int) -> list[DomainEvent]:
        return [e for e in self._events if e.proposal_id == proposal_id]
