from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from booking_assistant.application.exceptions import RepositoryError
from booking_assistant.application.ports.repository import RepositoryPort
from booking_assistant.application.use_cases.booking import BookingOrchestrator
from booking_assistant.application.use_cases.onboarding import OnboardingStateMachine
from booking_assistant.application.use_cases.resolve_intent import ResolveIntentUseCase
from booking_assistant.application.use_cases.send_reply import SendReplyUseCase
from booking_assistant.application.utils.replies import render
from booking_assistant.domain.entities.conversation_turn import ConversationTurn, TurnRole
from booking_assistant.domain.entities.customer import Customer
from booking_assistant.domain.entities.message import InboundMessage


class HandleIncomingMessageUseCase:
    """
    One inbound message in, exactly one reply out.

    inbound -> onboarding gate -> intent resolver -> booking orchestrator -> turn log -> reply
    """

    def __init__(
        self,
        repository: RepositoryPort,
        onboarding: OnboardingStateMachine,
        resolve_intent: ResolveIntentUseCase,
        orchestrator: BookingOrchestrator,
        send_reply: SendReplyUseCase,
        timezone: ZoneInfo,
        language: str = "es",
        history_window: int = 8,
        debug_errors: bool = False,
    ) -> None:
        self._repository = repository
        self._onboarding = onboarding
        self._resolve_intent = resolve_intent
        self._orchestrator = orchestrator
        self._send_reply = send_reply
        self._timezone = timezone
        self._language = language
        self._history_window = max(5, min(10, history_window))
        self._debug_errors = debug_errors
        self._logger = logging.getLogger(__name__)

    def handle(self, message: InboundMessage) -> str | None:
        """Process one message. Returns the reply text, or None for an ignored redelivery."""
        try:
            if not self._repository.mark_processed(message.id):
                self._logger.info("Duplicate message ignored", extra={"message_id": message.id})
                return None
        except RepositoryError as e:
            self._logger.warning("Could not record message id", extra={"message_id": message.id, "reason": str(e)})

        now = datetime.now(self._timezone)
        try:
            reply_text = self.process(message, now)
        except Exception as e:
            self._logger.exception("Message handling crashed", extra={"message_id": message.id})
            reply_text = self._failure_reply("generic_error", "handle", e)
        self._send_reply.execute(recipient_id=message.sender_address, text=reply_text)
        return reply_text

    def process(self, message: InboundMessage, now: datetime) -> str:
        """Produce the reply text for a message without sending it."""
        self._logger.info("Message received", extra={"message_id": message.id, "sender": message.sender_address})
        try:
            gate = self._onboarding.process(message, now)
        except RepositoryError as e:
            return self._failure_reply("store_error", "onboarding", e)
        except Exception as e:
            self._logger.exception("Onboarding crashed", extra={"message_id": message.id})
            return self._failure_reply("generic_error", "onboarding", e)

        if gate.consumed or gate.customer is None:
            self._logger.info("Handled by onboarding", extra={"message_id": message.id, "action": gate.action})
            return gate.reply or render("generic_error", self._language)

        customer = gate.customer
        history = self._recent_history(customer)
        intent = self._resolve_intent.execute(
            text=message.text,
            customer_name=customer.display_name or "",
            history=history,
            now=now,
        )

        try:
            reply = self._orchestrator.handle(customer, intent, now)
            reply_text = reply.text
            self._logger.info(
                "Intent handled",
                extra={"message_id": message.id, "intent": intent.kind.value, "action": reply.action},
            )
        except Exception as e:
            self._logger.exception("Booking orchestrator crashed", extra={"message_id": message.id, "intent": intent.kind.value})
            reply_text = self._failure_reply("generic_error", "orchestrator", e)

        self._record_turns(customer, message.text, reply_text, now)
        return reply_text

    def _recent_history(self, customer: Customer) -> list[ConversationTurn]:
        try:
            return self._repository.get_recent_turns(customer.address, limit=self._history_window)
        except RepositoryError as e:
            self._logger.warning("Could not load history", extra={"sender": customer.address, "reason": str(e)})
            return []

    def _record_turns(self, customer: Customer, inbound: str, outbound: str, now: datetime) -> None:
        ts = now.timestamp()
        try:
            self._repository.append_turn(customer.address, TurnRole.CUSTOMER, inbound, ts)
            self._repository.append_turn(customer.address, TurnRole.ASSISTANT, outbound, ts)
        except RepositoryError as e:
            self._logger.warning("Could not record conversation turns", extra={"sender": customer.address, "reason": str(e)})

    def _failure_reply(self, key: str, step: str, error: Exception) -> str:
        self._logger.error("Message handling failed", extra={"step": step, "reason": str(error)})
        text = render(key, self._language)
        if self._debug_errors:
            text = f"{text}\n[{step}] {error}"
        return text
