"""
Events - Observability records emitted by successful calls.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(Enum):
    SESSION_CREATED = "session_created"
    HANDS_COMMITTED = "hands_committed"
    HANDS_REVEALED = "hands_revealed"
    CHOICE_COMMITTED = "choice_committed"
    CHOICE_REVEALED = "choice_revealed"
    SESSION_COMPLETED = "session_completed"


@dataclass(frozen=True)
class Event:
    """
    A contract event.

    `ledger` is filled in by the host when the call is committed.
    """
    event_type: EventType
    session_id: int
    data: dict[str, Any] = field(default_factory=dict)
    ledger: int | None = None

    def at_ledger(self, sequence: int) -> Event:
        return Event(
            event_type=self.event_type,
            session_id=self.session_id,
            data=self.data,
            ledger=sequence,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "session_id": self.session_id,
            "data": dict(self.data),
            "ledger": self.ledger,
        }
