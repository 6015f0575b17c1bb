from __future__ import annotations

import threading
import time
import uuid
from dataclasses import replace
from datetime import datetime

from booking_assistant.application.exceptions import DuplicateSlotError, RepositoryError
from booking_assistant.application.ports.repository import RepositoryPort
from booking_assistant.domain.entities.appointment import Appointment
from booking_assistant.domain.entities.conversation_turn import ConversationTurn, TurnRole
from booking_assistant.domain.entities.customer import Customer, OnboardingState


class MemoryRepository(RepositoryPort):
    def __init__(self, history_limit: int = 30) -> None:
        self._customers: dict[str, Customer] = {}
        self._appointments: dict[str, Appointment] = {}
        self._turns: dict[str, list[ConversationTurn]] = {}
        self._processed: set[str] = set()
        self._history_limit = history_limit
        self._lock = threading.RLock()

    def get_customer(self, address: str) -> Customer | None:
        with self._lock:
            return self._customers.get(address)

    def create_customer(self, address: str, state: OnboardingState) -> Customer:
        with self._lock:
            existing = self._customers.get(address)
            if existing is not None:
                return existing
            now_ts = time.time()
            customer = Customer(address=address, onboarding_state=state, created_at=now_ts, updated_at=now_ts)
            self._customers[address] = customer
            return customer

    def save_customer(self, customer: Customer) -> Customer:
        with self._lock:
            if customer.address not in self._customers:
                raise RepositoryError(f"Unknown customer {customer.address}")
            self._customers[customer.address] = customer
            return customer

    def delete_customer(self, address: str) -> None:
        with self._lock:
            self._customers.pop(address, None)
            self._turns.pop(address, None)
            for appointment_id in [a.id for a in self._appointments.values() if a.customer_address == address]:
                del self._appointments[appointment_id]

    def add_appointment(
        self,
        customer_address: str,
        start_time: datetime,
        end_time: datetime,
        external_event_id: str,
        calendar_id: str,
    ) -> Appointment:
        with self._lock:
            if customer_address not in self._customers:
                raise RepositoryError(f"Unknown customer {customer_address}")
            self._ensure_slot_free(calendar_id, start_time, exclude_id=None)
            appointment = Appointment(
                id=uuid.uuid4().hex,
                customer_address=customer_address,
                start_time=start_time,
                end_time=end_time,
                external_event_id=external_event_id,
                calendar_id=calendar_id,
                created_at=time.time(),
            )
            self._appointments[appointment.id] = appointment
            return appointment

    def update_appointment_time(self, appointment_id: str, start_time: datetime, end_time: datetime) -> Appointment:
        with self._lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                raise RepositoryError(f"Unknown appointment {appointment_id}")
            self._ensure_slot_free(current.calendar_id, start_time, exclude_id=appointment_id)
            updated = replace(current, start_time=start_time, end_time=end_time)
            self._appointments[appointment_id] = updated
            return updated

    def delete_appointment(self, appointment_id: str) -> None:
        with self._lock:
            self._appointments.pop(appointment_id, None)

    def list_future_appointments(self, customer_address: str, now: datetime, limit: int) -> list[Appointment]:
        with self._lock:
            upcoming = [
                a for a in self._appointments.values()
                if a.customer_address == customer_address and a.start_time > now
            ]
        upcoming.sort(key=lambda a: a.start_time)
        return upcoming[:limit]

    def append_turn(self, customer_address: str, role: TurnRole, content: str, created_at: float) -> None:
        with self._lock:
            turns = self._turns.setdefault(customer_address, [])
            turns.append(
                ConversationTurn(customer_address=customer_address, role=role, content=content, created_at=created_at)
            )
            if len(turns) > self._history_limit:
                self._turns[customer_address] = turns[-self._history_limit :]

    def get_recent_turns(self, customer_address: str, limit: int = 10) -> list[ConversationTurn]:
        with self._lock:
            turns = self._turns.get(customer_address, [])
            return list(turns[-limit:]) if turns else []

    def mark_processed(self, message_id: str) -> bool:
        with self._lock:
            if message_id in self._processed:
                return False
            self._processed.add(message_id)
            return True

    def _ensure_slot_free(self, calendar_id: str, start_time: datetime, exclude_id: str | None) -> None:
        for appointment in self._appointments.values():
            if appointment.id == exclude_id:
                continue
            if appointment.calendar_id == calendar_id and appointment.start_time == start_time:
                raise DuplicateSlotError(f"Slot {start_time.isoformat()} already booked on {calendar_id}")
