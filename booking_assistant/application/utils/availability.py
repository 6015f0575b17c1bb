from __future__ import annotations

from datetime import datetime, timedelta

from booking_assistant.domain.entities.calendar_event import (
    AvailabilityResult,
    AvailabilityStatus,
    CalendarEvent,
)

DEFAULT_DURATION_MINUTES = 60


def slot_end(start: datetime, duration_minutes: int = DEFAULT_DURATION_MINUTES) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def is_blocking(event: CalendarEvent) -> bool:
    """Cancelled events and events marked free (transparent) never block a slot."""
    if (event.status or "").lower() == "cancelled":
        return False
    if (event.transparency or "").lower() == "transparent":
        return False
    return True


def overlaps(event: CalendarEvent, start: datetime, end: datetime) -> bool:
    # All-day events (no datetime bounds) that the provider returned for the window count as overlapping.
    if event.start is None or event.end is None:
        return True
    return event.start < end and event.end > start


def evaluate_availability(events: list[CalendarEvent], start: datetime, end: datetime) -> AvailabilityResult:
    conflicts = tuple(e.id for e in events if is_blocking(e) and overlaps(e, start, end))
    if conflicts:
        return AvailabilityResult(status=AvailabilityStatus.BUSY, conflicts=conflicts)
    return AvailabilityResult(status=AvailabilityStatus.FREE)
