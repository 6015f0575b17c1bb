"""Shared test fixtures and helpers."""

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from booking_assistant.application.ports.intent_resolver import IntentResolverPort
from booking_assistant.application.use_cases.booking import BookingOrchestrator
from booking_assistant.application.use_cases.handle_incoming_message import HandleIncomingMessageUseCase
from booking_assistant.application.use_cases.onboarding import OnboardingStateMachine
from booking_assistant.application.use_cases.reconciliation import InconsistencyCollector
from booking_assistant.application.use_cases.resolve_intent import ResolveIntentUseCase
from booking_assistant.application.use_cases.send_reply import SendReplyUseCase
from booking_assistant.domain.entities.customer import Customer, OnboardingState
from booking_assistant.domain.entities.intent import ChatIntent, ResolvedIntent
from booking_assistant.domain.entities.message import InboundMessage
from booking_assistant.infrastructure.calendar.mock_calendar import MockCalendar
from booking_assistant.infrastructure.store.memory_store import MemoryRepository
from booking_assistant.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform

TZ = ZoneInfo("America/Bogota")
# Monday 19 October 2026, 10:00 -05:00
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=TZ)
TOMORROW_3PM = datetime(2026, 10, 20, 15, 0, tzinfo=TZ)
PHONE = "573001112233"


class ScriptedResolver(IntentResolverPort):
    """Returns queued intents in order (or raises queued exceptions) and records every call."""

    def __init__(self, *intents: ResolvedIntent | Exception) -> None:
        self.queue: list[ResolvedIntent | Exception] = list(intents)
        self.calls: list[dict] = []

    def push(self, *intents: ResolvedIntent | Exception) -> None:
        self.queue.extend(intents)

    def resolve(self, text, customer_name, history, now) -> ResolvedIntent:
        self.calls.append({"text": text, "customer_name": customer_name, "history": list(history), "now": now})
        if not self.queue:
            return ChatIntent(reply_text="ok")
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


_counter = {"n": 0}


def make_message(text: str, sender: str = PHONE, message_id: str | None = None) -> InboundMessage:
    _counter["n"] += 1
    return InboundMessage(
        id=message_id or f"wamid.{_counter['n']}",
        sender_address=sender,
        text=text,
        timestamp=int(NOW.timestamp()),
    )


def active_customer(repository: MemoryRepository, address: str = PHONE, name: str = "Jordan Smith") -> Customer:
    repository.create_customer(address, OnboardingState.ACTIVE)
    return repository.save_customer(
        Customer(address=address, onboarding_state=OnboardingState.ACTIVE, display_name=name)
    )


def hours_from(base: datetime, hours: int) -> datetime:
    return base + timedelta(hours=hours)


@pytest.fixture
def repository():
    return MemoryRepository()


@pytest.fixture
def calendar():
    return MockCalendar(calendar_id="barberia@example.com")


@pytest.fixture
def collector():
    return InconsistencyCollector(forward=None)


@pytest.fixture
def orchestrator(calendar, repository, collector):
    return BookingOrchestrator(
        calendar=calendar,
        repository=repository,
        timezone=TZ,
        language="es",
        on_inconsistency=collector,
    )


@pytest.fixture
def resolver():
    return ScriptedResolver()


@pytest.fixture
def platform():
    return MockWhatsAppPlatform()


def build_handler(repository, calendar, resolver, platform, collector=None, require_email=False):
    orchestrator = BookingOrchestrator(
        calendar=calendar,
        repository=repository,
        timezone=TZ,
        language="es",
        on_inconsistency=collector,
    )
    onboarding = OnboardingStateMachine(
        repository=repository,
        require_email=require_email,
        language="es",
        business_name="Barbería Central",
        on_reset=orchestrator.reset_customer,
    )
    return HandleIncomingMessageUseCase(
        repository=repository,
        onboarding=onboarding,
        resolve_intent=ResolveIntentUseCase(resolver=resolver, language="es"),
        orchestrator=orchestrator,
        send_reply=SendReplyUseCase(platform=platform, auto_reply_enabled=True),
        timezone=TZ,
        language="es",
    )


@pytest.fixture
def handler(repository, calendar, resolver, platform, collector):
    return build_handler(repository, calendar, resolver, platform, collector)
