from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from booking_assistant.domain.entities.appointment import Appointment
from booking_assistant.domain.entities.conversation_turn import ConversationTurn, TurnRole
from booking_assistant.domain.entities.customer import Customer, OnboardingState


class RepositoryPort(ABC):
    @abstractmethod
    def get_customer(self, address: str) -> Customer | None:
        raise NotImplementedError

    @abstractmethod
    def create_customer(self, address: str, state: OnboardingState) -> Customer:
        """
        Create a customer record in the given state.
        If a record already exists for the address it is returned unchanged.
        """
        raise NotImplementedError

    @abstractmethod
    def save_customer(self, customer: Customer) -> Customer:
        raise NotImplementedError

    @abstractmethod
    def delete_customer(self, address: str) -> None:
        """
        Delete the customer together with its appointments and conversation turns.
        Deleting an unknown address is a no-op.
        """
        raise NotImplementedError

    @abstractmethod
    def add_appointment(
        self,
        customer_address: str,
        start_time: datetime,
        end_time: datetime,
        external_event_id: str,
        calendar_id: str,
    ) -> Appointment:
        """
        Persist a new appointment row.
        Raises DuplicateSlotError if (calendar_id, start_time) is already taken.
        """
        raise NotImplementedError

    @abstractmethod
    def update_appointment_time(self, appointment_id: str, start_time: datetime, end_time: datetime) -> Appointment:
        """
        Move an appointment row.
        Raises DuplicateSlotError if the target slot is held by another row.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_appointment(self, appointment_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_future_appointments(self, customer_address: str, now: datetime, limit: int) -> list[Appointment]:
        """Appointments with start_time after `now`, ascending by start_time."""
        raise NotImplementedError

    @abstractmethod
    def append_turn(self, customer_address: str, role: TurnRole, content: str, created_at: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_recent_turns(self, customer_address: str, limit: int = 10) -> list[ConversationTurn]:
        """Last `limit` turns, oldest first."""
        raise NotImplementedError

    @abstractmethod
    def mark_processed(self, message_id: str) -> bool:
        """
        Record an inbound message id.
        Returns False if the id was already recorded (redelivery).
        """
        raise NotImplementedError
