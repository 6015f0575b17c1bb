from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime

from booking_assistant.application.exceptions import CalendarError
from booking_assistant.application.ports.calendar import CalendarPort
from booking_assistant.domain.entities.calendar_event import CalendarEvent, DeleteOutcome


class MockCalendar(CalendarPort):
    """In-memory calendar. Set `fail_with` to make every call raise CalendarError."""

    def __init__(self, calendar_id: str = "mock-calendar") -> None:
        self._calendar_id = calendar_id
        self._events: dict[str, CalendarEvent] = {}
        self._counter = 0
        self._lock = threading.Lock()
        self.fail_with: str | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def calendar_id(self) -> str:
        return self._calendar_id

    @property
    def events(self) -> dict[str, CalendarEvent]:
        return dict(self._events)

    def add_external_event(
        self,
        start: datetime,
        end: datetime,
        status: str = "confirmed",
        transparency: str = "opaque",
        summary: str | None = None,
    ) -> str:
        """Seed an event created outside the assistant (staff block, holiday, ...)."""
        with self._lock:
            event_id = self._next_id()
            self._events[event_id] = CalendarEvent(
                id=event_id, start=start, end=end, status=status, transparency=transparency, summary=summary
            )
            return event_id

    def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        self._maybe_fail()
        with self._lock:
            return [e for e in self._events.values() if e.start is None or e.end is None or (e.start < end and e.end > start)]

    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
        attendee_email: str | None = None,
    ) -> str:
        self._maybe_fail()
        with self._lock:
            event_id = self._next_id()
            self._events[event_id] = CalendarEvent(id=event_id, start=start, end=end, summary=summary)
        self._logger.info(
            "Mock calendar event created",
            extra={"event_id": event_id, "start": start.isoformat(), "end": end.isoformat()},
        )
        return event_id

    def update_event(self, event_id: str, start: datetime, end: datetime) -> None:
        self._maybe_fail()
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                raise CalendarError(f"Event {event_id} not found")
            self._events[event_id] = replace(event, start=start, end=end)
        self._logger.info("Mock calendar event updated", extra={"event_id": event_id})

    def delete_event(self, event_id: str) -> DeleteOutcome:
        self._maybe_fail()
        with self._lock:
            if self._events.pop(event_id, None) is None:
                return DeleteOutcome.NOT_FOUND
        self._logger.info("Mock calendar event deleted", extra={"event_id": event_id})
        return DeleteOutcome.DELETED

    def _next_id(self) -> str:
        self._counter += 1
        return f"mock_event_{self._counter}"

    def _maybe_fail(self) -> None:
        if self.fail_with:
            raise CalendarError(self.fail_with)
