from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from booking_assistant.application.exceptions import CalendarError
from booking_assistant.application.utils.availability import evaluate_availability
from booking_assistant.domain.entities.calendar_event import (
    AvailabilityResult,
    AvailabilityStatus,
    CalendarEvent,
    DeleteOutcome,
)


class CalendarPort(ABC):
    @property
    @abstractmethod
    def calendar_id(self) -> str:
        """Identifier of the single shared calendar this adapter writes to."""
        raise NotImplementedError

    @abstractmethod
    def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """List events overlapping [start, end). Raises CalendarError."""
        raise NotImplementedError

    @abstractmethod
    def create_event(
        self,
        start: datetime,
        end: datetime,
        summary: str,
        description: str | None = None,
        attendee_email: str | None = None,
    ) -> str:
        """Create calendar event. Returns event_id. Raises CalendarError."""
        raise NotImplementedError

    @abstractmethod
    def update_event(self, event_id: str, start: datetime, end: datetime) -> None:
        """Move an existing event. Raises CalendarError."""
        raise NotImplementedError

    @abstractmethod
    def delete_event(self, event_id: str) -> DeleteOutcome:
        """Delete an event. An event that is already gone is NOT_FOUND, not an error."""
        raise NotImplementedError

    def check_availability(self, start: datetime, end: datetime) -> AvailabilityResult:
        """
        Classify [start, end) as free, busy or error.

        Never raises: transport and auth failures come back as an ERROR result so the
        caller cannot mistake an unreachable calendar for a free or busy slot.
        """
        try:
            events = self.list_events(start, end)
        except CalendarError as e:
            logging.getLogger(__name__).error(
                "Availability check failed", extra={"step": "calendar.list_events", "reason": str(e)}
            )
            return AvailabilityResult(status=AvailabilityStatus.ERROR, detail=str(e))
        return evaluate_availability(events, start, end)
