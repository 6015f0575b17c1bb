from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from booking_assistant.application.exceptions import CalendarError, DuplicateSlotError, RepositoryError
from booking_assistant.application.ports.calendar import CalendarPort
from booking_assistant.application.ports.repository import RepositoryPort
from booking_assistant.application.use_cases.reconciliation import InconsistencyHook, log_inconsistency
from booking_assistant.application.utils.availability import DEFAULT_DURATION_MINUTES, slot_end
from booking_assistant.application.utils.formatting import format_appointment_date
from booking_assistant.application.utils.replies import render
from booking_assistant.application.utils.validation import validate_requested_start
from booking_assistant.domain.entities.appointment import Appointment
from booking_assistant.domain.entities.calendar_event import AvailabilityStatus, DeleteOutcome
from booking_assistant.domain.entities.customer import Customer
from booking_assistant.domain.entities.inconsistency import InconsistencyKind, InconsistencyReport
from booking_assistant.domain.entities.intent import (
    BookingIntent,
    CancelIntent,
    ChatIntent,
    CheckIntent,
    RescheduleIntent,
    ResolvedIntent,
)
from booking_assistant.domain.entities.reply import Reply

# Upper bound on future appointments cleared by a reset.
RESET_SCAN_LIMIT = 1000


class BookingOrchestrator:
    """
    Turn a resolved intent for an ACTIVE customer into calendar and store writes plus one reply.

    Write ordering keeps the two stores as close as possible:
    - booking: calendar event first, then the row carrying its id
    - cancel: calendar delete first, then the row
    - reschedule: calendar patch first, then the row
    A failure between the two steps is reported through `on_inconsistency`.
    """

    def __init__(
        self,
        calendar: CalendarPort,
        repository: RepositoryPort,
        timezone: ZoneInfo,
        language: str = "es",
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
        check_limit: int = 3,
        rollback_orphaned_events: bool = False,
        on_inconsistency: InconsistencyHook | None = None,
        debug_errors: bool = False,
    ) -> None:
        self._calendar = calendar
        self._repository = repository
        self._timezone = timezone
        self._language = language
        self._duration_minutes = duration_minutes
        self._check_limit = check_limit
        self._rollback_orphaned_events = rollback_orphaned_events
        self._on_inconsistency = on_inconsistency or log_inconsistency
        self._debug_errors = debug_errors
        self._logger = logging.getLogger(__name__)

    def handle(self, customer: Customer, intent: ResolvedIntent, now: datetime) -> Reply:
        if isinstance(intent, BookingIntent):
            return self._book(customer, intent, now)
        if isinstance(intent, CheckIntent):
            return self._check(customer, now)
        if isinstance(intent, CancelIntent):
            return self._cancel(customer, now)
        if isinstance(intent, RescheduleIntent):
            return self._reschedule(customer, intent, now)
        if isinstance(intent, ChatIntent):
            return Reply(text=intent.reply_text or render("fallback", self._language), action="chat")
        raise TypeError(f"Unsupported intent: {intent!r}")

    def reset_customer(self, customer_address: str, now: datetime) -> None:
        """Remove the customer's future calendar events ahead of a cascading store delete."""
        try:
            appointments = self._repository.list_future_appointments(customer_address, now, limit=RESET_SCAN_LIMIT)
        except RepositoryError as e:
            self._logger.error("Could not list appointments for reset", extra={"step": "repository.list", "reason": str(e)})
            self._report(
                InconsistencyKind.ORPHANED_EVENT,
                customer_address,
                "",
                None,
                f"reset: could not list appointments, their calendar events may be orphaned: {e}",
            )
            return

        for appointment in appointments:
            try:
                self._calendar.delete_event(appointment.external_event_id)
            except CalendarError as e:
                self._report(
                    InconsistencyKind.ORPHANED_EVENT,
                    appointment.customer_address,
                    appointment.external_event_id,
                    appointment.start_time,
                    f"reset: calendar delete failed: {e}",
                )

    def _book(self, customer: Customer, intent: BookingIntent, now: datetime) -> Reply:
        start = validate_requested_start(intent.date, now, self._timezone)
        if start is None:
            return Reply(text=render("need_date", self._language), action="need_date")

        end = slot_end(start, self._duration_minutes)
        human_date = self._format(start)

        availability = self._calendar.check_availability(start, end)
        if availability.status == AvailabilityStatus.ERROR:
            return self._error_reply("calendar_error", "calendar.check_availability", availability.detail)
        if availability.status == AvailabilityStatus.BUSY:
            self._logger.info("Slot busy", extra={"action": "slot_busy", "sender": customer.address})
            return Reply(text=render("slot_busy", self._language, date=human_date), action="slot_busy")

        try:
            event_id = self._calendar.create_event(
                start=start,
                end=end,
                summary=f"Cita: {customer.display_name}",
                description=f"Cliente: {customer.display_name}\nTeléfono: {customer.address}",
                attendee_email=customer.contact_email,
            )
        except CalendarError as e:
            return self._error_reply("calendar_error", "calendar.create_event", str(e))

        try:
            appointment = self._repository.add_appointment(
                customer_address=customer.address,
                start_time=start,
                end_time=end,
                external_event_id=event_id,
                calendar_id=self._calendar.calendar_id,
            )
        except DuplicateSlotError:
            # Lost a race for the slot: undo our own calendar write.
            self._compensate_create(customer.address, event_id, start)
            return Reply(text=render("slot_taken", self._language, date=human_date), action="slot_taken")
        except RepositoryError as e:
            self._orphaned_event(customer.address, event_id, start, str(e))
            return self._error_reply("store_error", "repository.add_appointment", str(e))

        self._logger.info(
            "Appointment booked",
            extra={"action": "booked", "sender": customer.address, "event_id": appointment.external_event_id},
        )
        return Reply(
            text=render("booked", self._language, name=customer.display_name or "", date=human_date),
            action="booked",
            meta={"appointment_id": appointment.id, "event_id": event_id},
        )

    def _check(self, customer: Customer, now: datetime) -> Reply:
        try:
            appointments = self._repository.list_future_appointments(customer.address, now, self._check_limit)
        except RepositoryError as e:
            return self._error_reply("store_error", "repository.list_future_appointments", str(e))

        if not appointments:
            return Reply(text=render("no_appointments", self._language), action="no_appointments")

        lines = [render("appointments_header", self._language)]
        lines.extend(f"• {self._format(a.start_time)}" for a in appointments)
        return Reply(text="\n".join(lines), action="listed", meta={"count": len(appointments)})

    def _cancel(self, customer: Customer, now: datetime) -> Reply:
        try:
            appointment = self._next_appointment(customer, now)
        except RepositoryError as e:
            return self._error_reply("store_error", "repository.list_future_appointments", str(e))
        if appointment is None:
            return Reply(text=render("nothing_to_cancel", self._language), action="nothing_to_cancel")

        try:
            outcome = self._calendar.delete_event(appointment.external_event_id)
        except CalendarError as e:
            return self._error_reply("calendar_error", "calendar.delete_event", str(e))
        if outcome == DeleteOutcome.NOT_FOUND:
            self._logger.info("Calendar event already gone", extra={"event_id": appointment.external_event_id})

        try:
            self._repository.delete_appointment(appointment.id)
        except RepositoryError as e:
            self._report(
                InconsistencyKind.DANGLING_ROW,
                customer.address,
                appointment.external_event_id,
                appointment.start_time,
                f"cancel: store delete failed: {e}",
            )
            return self._error_reply("store_error", "repository.delete_appointment", str(e))

        self._logger.info(
            "Appointment cancelled",
            extra={"action": "cancelled", "sender": customer.address, "event_id": appointment.external_event_id},
        )
        return Reply(
            text=render("cancelled", self._language, date=self._format(appointment.start_time)),
            action="cancelled",
            meta={"appointment_id": appointment.id},
        )

    def _reschedule(self, customer: Customer, intent: RescheduleIntent, now: datetime) -> Reply:
        start = validate_requested_start(intent.date, now, self._timezone)
        if start is None:
            return Reply(text=render("need_date", self._language), action="need_date")

        try:
            appointment = self._next_appointment(customer, now)
        except RepositoryError as e:
            return self._error_reply("store_error", "repository.list_future_appointments", str(e))
        if appointment is None:
            return Reply(text=render("nothing_to_move", self._language), action="nothing_to_move")

        end = slot_end(start, self._duration_minutes)
        human_date = self._format(start)

        availability = self._calendar.check_availability(start, end)
        if availability.status == AvailabilityStatus.ERROR:
            return self._error_reply("calendar_error", "calendar.check_availability", availability.detail)
        # The appointment being moved may overlap its own new slot; it does not count as a conflict.
        conflicts = [c for c in availability.conflicts if c != appointment.external_event_id]
        if availability.status == AvailabilityStatus.BUSY and conflicts:
            return Reply(text=render("slot_busy", self._language, date=human_date), action="slot_busy")

        try:
            self._calendar.update_event(appointment.external_event_id, start, end)
        except CalendarError as e:
            return self._error_reply("calendar_error", "calendar.update_event", str(e))

        try:
            self._repository.update_appointment_time(appointment.id, start, end)
        except DuplicateSlotError:
            self._revert_update(appointment)
            return Reply(text=render("slot_taken", self._language, date=human_date), action="slot_taken")
        except RepositoryError as e:
            self._report(
                InconsistencyKind.STALE_ROW,
                customer.address,
                appointment.external_event_id,
                appointment.start_time,
                f"reschedule: store update failed after calendar patch to {start.isoformat()}: {e}",
            )
            return self._error_reply("store_error", "repository.update_appointment_time", str(e))

        self._logger.info(
            "Appointment rescheduled",
            extra={"action": "rescheduled", "sender": customer.address, "event_id": appointment.external_event_id},
        )
        return Reply(
            text=render(
                "rescheduled",
                self._language,
                old_date=self._format(appointment.start_time),
                date=human_date,
            ),
            action="rescheduled",
            meta={"appointment_id": appointment.id},
        )

    def _next_appointment(self, customer: Customer, now: datetime) -> Appointment | None:
        appointments = self._repository.list_future_appointments(customer.address, now, limit=1)
        return appointments[0] if appointments else None

    def _compensate_create(self, customer_address: str, event_id: str, start: datetime) -> None:
        try:
            self._calendar.delete_event(event_id)
        except CalendarError as e:
            self._report(
                InconsistencyKind.ORPHANED_EVENT,
                customer_address,
                event_id,
                start,
                f"duplicate slot: compensating delete failed: {e}",
            )

    def _revert_update(self, appointment: Appointment) -> None:
        try:
            self._calendar.update_event(appointment.external_event_id, appointment.start_time, appointment.end_time)
        except CalendarError as e:
            self._report(
                InconsistencyKind.STALE_ROW,
                appointment.customer_address,
                appointment.external_event_id,
                appointment.start_time,
                f"duplicate slot: reverting calendar patch failed: {e}",
            )

    def _orphaned_event(self, customer_address: str, event_id: str, start: datetime, detail: str) -> None:
        rolled_back = False
        if self._rollback_orphaned_events:
            try:
                self._calendar.delete_event(event_id)
                rolled_back = True
            except CalendarError as e:
                detail = f"{detail}; rollback failed: {e}"
        self._report(
            InconsistencyKind.ORPHANED_EVENT,
            customer_address,
            event_id,
            start,
            f"booking: store write failed: {detail}",
            rolled_back=rolled_back,
        )

    def _report(
        self,
        kind: InconsistencyKind,
        customer_address: str,
        event_id: str,
        start: datetime | None,
        detail: str,
        rolled_back: bool = False,
    ) -> None:
        report = InconsistencyReport(
            kind=kind,
            customer_address=customer_address,
            external_event_id=event_id,
            start_time=start,
            detail=detail,
            rolled_back=rolled_back,
        )
        try:
            self._on_inconsistency(report)
        except Exception:
            self._logger.exception("Inconsistency hook failed", extra={"reason": kind.value})

    def _error_reply(self, key: str, step: str, detail: str | None) -> Reply:
        self._logger.error("Booking step failed", extra={"step": step, "reason": detail})
        text = render(key, self._language)
        if self._debug_errors and detail:
            text = f"{text}\n[{step}] {detail}"
        return Reply(text=text, action=key, meta={"step": step})

    def _format(self, value: datetime) -> str:
        return format_appointment_date(value, self._timezone, self._language)
