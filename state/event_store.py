from __future__ import annotations

from state.models import CalendarEvent


class EventStore:
    """Calendar events pulled from the forums, keyed by upstream id."""

    def __init__(self) -> None:
        self._events: dict[str, CalendarEvent] = {}

    def __len__(self) -> int:
        return len(self._events)

    def has(self, event_id: str) -> bool:
        return str(event_id) in self._events

    def get(self, event_id: str) -> CalendarEvent | None:
        return self._events.get(str(event_id))

    def add(self, event: CalendarEvent) -> bool:
        key = str(event.id or "").strip()
        if not key or key in self._events:
            return False
        self._events[key] = event
        return True

    def update_rsvps(self, event_id: str, rsvps: int | None) -> bool:
        event = self._events.get(str(event_id))
        if event is None:
            return False
        event.rsvps = rsvps
        return True

    def remove_if_old(self, event_id: str) -> bool:
        """Drop the event once every configured reminder has fired."""
        key = str(event_id)
        event = self._events.get(key)
        if event is not None and event.all_reminders_fired:
            del self._events[key]
            return True
        return False

    def remove(self, event_id: str) -> bool:
        return self._events.pop(str(event_id), None) is not None

    def list(self) -> list[CalendarEvent]:
        return list(self._events.values())
