from __future__ import annotations

from datetime import timedelta

from booking_assistant.application.utils.availability import evaluate_availability, is_blocking, slot_end
from booking_assistant.domain.entities.calendar_event import AvailabilityStatus, CalendarEvent

from conftest import TOMORROW_3PM


def test_slot_end_is_sixty_minutes():
    assert slot_end(TOMORROW_3PM) - TOMORROW_3PM == timedelta(minutes=60)


def test_empty_calendar_is_free(calendar):
    result = calendar.check_availability(TOMORROW_3PM, slot_end(TOMORROW_3PM))
    assert result.status == AvailabilityStatus.FREE


def test_overlapping_event_is_busy(calendar):
    event_id = calendar.add_external_event(TOMORROW_3PM + timedelta(minutes=30), TOMORROW_3PM + timedelta(minutes=90))

    result = calendar.check_availability(TOMORROW_3PM, slot_end(TOMORROW_3PM))

    assert result.status == AvailabilityStatus.BUSY
    assert result.conflicts == (event_id,)


def test_adjacent_events_do_not_conflict(calendar):
    calendar.add_external_event(TOMORROW_3PM - timedelta(hours=1), TOMORROW_3PM)
    calendar.add_external_event(slot_end(TOMORROW_3PM), slot_end(TOMORROW_3PM) + timedelta(hours=1))

    result = calendar.check_availability(TOMORROW_3PM, slot_end(TOMORROW_3PM))

    assert result.status == AvailabilityStatus.FREE


def test_cancelled_and_transparent_events_are_ignored(calendar):
    calendar.add_external_event(TOMORROW_3PM, slot_end(TOMORROW_3PM), status="cancelled")
    calendar.add_external_event(TOMORROW_3PM, slot_end(TOMORROW_3PM), transparency="transparent")

    result = calendar.check_availability(TOMORROW_3PM, slot_end(TOMORROW_3PM))

    assert result.status == AvailabilityStatus.FREE


def test_cancelled_flag_is_case_insensitive():
    event = CalendarEvent(id="e1", start=TOMORROW_3PM, end=slot_end(TOMORROW_3PM), status="CANCELLED")
    assert not is_blocking(event)


def test_all_day_event_blocks():
    event = CalendarEvent(id="holiday", start=None, end=None)
    result = evaluate_availability([event], TOMORROW_3PM, slot_end(TOMORROW_3PM))
    assert result.status == AvailabilityStatus.BUSY


def test_repeated_checks_are_idempotent(calendar):
    calendar.add_external_event(TOMORROW_3PM, slot_end(TOMORROW_3PM))
    calendar.add_external_event(TOMORROW_3PM, slot_end(TOMORROW_3PM), status="cancelled")

    first = calendar.check_availability(TOMORROW_3PM, slot_end(TOMORROW_3PM))
    second = calendar.check_availability(TOMORROW_3PM, slot_end(TOMORROW_3PM))

    assert first == second
    assert first.status == AvailabilityStatus.BUSY


def test_calendar_failure_is_an_error_result(calendar):
    calendar.fail_with = "401 Unauthorized"

    result = calendar.check_availability(TOMORROW_3PM, slot_end(TOMORROW_3PM))

    assert result.status == AvailabilityStatus.ERROR
    assert result.detail == "401 Unauthorized"
    assert not result.is_free
