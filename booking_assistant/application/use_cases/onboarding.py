from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from booking_assistant.application.ports.repository import RepositoryPort
from booking_assistant.application.utils.replies import render
from booking_assistant.application.utils.validation import (
    is_reset_command,
    is_valid_display_name,
    normalize_email,
    normalize_name,
)
from booking_assistant.domain.entities.customer import Customer, OnboardingState
from booking_assistant.domain.entities.message import InboundMessage

ResetHandler = Callable[[str, datetime], None]


@dataclass(frozen=True)
class GateResult:
    action: str
    customer: Customer | None
    reply: str | None = None

    @property
    def consumed(self) -> bool:
        """True when onboarding answered the message itself and booking logic must not see it."""
        return self.reply is not None


class OnboardingStateMachine:
    """
    Gate every inbound message through identity capture.

    All onboarding transitions live here; nothing else writes `onboarding_state`.
    Raises RepositoryError when the store is unavailable.
    """

    def __init__(
        self,
        repository: RepositoryPort,
        require_email: bool = False,
        language: str = "es",
        business_name: str = "",
        on_reset: ResetHandler | None = None,
    ) -> None:
        self._repository = repository
        self._require_email = require_email
        self._language = language
        self._business_name = business_name
        self._on_reset = on_reset
        self._logger = logging.getLogger(__name__)

    def process(self, message: InboundMessage, now: datetime) -> GateResult:
        address = message.sender_address

        if is_reset_command(message.text):
            return self._reset(address, now)

        customer = self._repository.get_customer(address)

        if customer is None or customer.onboarding_state == OnboardingState.NEW:
            customer = self._repository.create_customer(address, OnboardingState.AWAITING_NAME)
            if customer.onboarding_state == OnboardingState.NEW:
                customer = self._save(customer, onboarding_state=OnboardingState.AWAITING_NAME, now=now)
            self._logger.info("Customer created", extra={"sender": address, "action": "ask_name"})
            return GateResult(
                action="ask_name",
                customer=customer,
                reply=render("ask_name", self._language, business=self._business_name),
            )

        if customer.onboarding_state == OnboardingState.AWAITING_NAME:
            return self._handle_name(customer, message.text, now)

        if customer.onboarding_state == OnboardingState.AWAITING_EMAIL:
            return self._handle_email(customer, message.text, now)

        if not is_valid_display_name(customer.display_name):
            # An ACTIVE customer must have a usable name; send them back to the name step.
            self._logger.warning("Active customer without a valid name", extra={"sender": address})
            customer = self._save(
                customer,
                onboarding_state=OnboardingState.AWAITING_NAME,
                display_name=None,
                now=now,
            )
            return GateResult(
                action="repair_name",
                customer=customer,
                reply=render("ask_name_repair", self._language),
            )

        return GateResult(action="active", customer=customer)

    def _handle_name(self, customer: Customer, text: str, now: datetime) -> GateResult:
        name = normalize_name(text)
        if name is None:
            return GateResult(
                action="ask_name_again",
                customer=customer,
                reply=render("ask_name_again", self._language),
            )

        if self._require_email and not customer.contact_email:
            customer = self._save(
                customer,
                display_name=name,
                onboarding_state=OnboardingState.AWAITING_EMAIL,
                now=now,
            )
            return GateResult(
                action="ask_email",
                customer=customer,
                reply=render("ask_email", self._language, name=name),
            )

        customer = self._save(customer, display_name=name, onboarding_state=OnboardingState.ACTIVE, now=now)
        self._logger.info("Customer onboarded", extra={"sender": customer.address})
        return GateResult(
            action="welcome",
            customer=customer,
            reply=render("welcome", self._language, name=name),
        )

    def _handle_email(self, customer: Customer, text: str, now: datetime) -> GateResult:
        email = normalize_email(text)
        if email is None:
            return GateResult(
                action="ask_email_again",
                customer=customer,
                reply=render("ask_email_again", self._language),
            )

        customer = self._save(customer, contact_email=email, onboarding_state=OnboardingState.ACTIVE, now=now)
        self._logger.info("Customer onboarded", extra={"sender": customer.address})
        return GateResult(
            action="welcome",
            customer=customer,
            reply=render("welcome", self._language, name=customer.display_name or ""),
        )

    def _reset(self, address: str, now: datetime) -> GateResult:
        if self._on_reset is not None:
            self._on_reset(address, now)
        self._repository.delete_customer(address)
        self._logger.info("Customer reset", extra={"sender": address, "action": "reset"})
        return GateResult(action="reset", customer=None, reply=render("reset_done", self._language))

    def _save(self, customer: Customer, now: datetime, **changes) -> Customer:
        return self._repository.save_customer(replace(customer, updated_at=now.timestamp(), **changes))
