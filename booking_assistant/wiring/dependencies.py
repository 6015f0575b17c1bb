from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

import httpx

from booking_assistant.core.config import settings
from booking_assistant.application.ports.calendar import CalendarPort
from booking_assistant.application.ports.intent_resolver import IntentResolverPort
from booking_assistant.application.ports.message_platform import MessagePlatformPort
from booking_assistant.application.ports.repository import RepositoryPort
from booking_assistant.application.use_cases.booking import BookingOrchestrator
from booking_assistant.application.use_cases.handle_incoming_message import HandleIncomingMessageUseCase
from booking_assistant.application.use_cases.onboarding import OnboardingStateMachine
from booking_assistant.application.use_cases.reconciliation import log_inconsistency
from booking_assistant.application.use_cases.resolve_intent import ResolveIntentUseCase
from booking_assistant.application.use_cases.send_reply import SendReplyUseCase
from booking_assistant.infrastructure.calendar.google_calendar import GoogleAccessTokenProvider, GoogleCalendar
from booking_assistant.infrastructure.calendar.mock_calendar import MockCalendar
from booking_assistant.infrastructure.llm.mock_resolver import MockIntentResolver
from booking_assistant.infrastructure.llm.openai_resolver import OpenAIIntentResolver
from booking_assistant.infrastructure.store.json_store import JsonRepository
from booking_assistant.infrastructure.store.memory_store import MemoryRepository
from booking_assistant.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform
from booking_assistant.infrastructure.whatsapp.whatsapp_client import WhatsAppClient
from booking_assistant.infrastructure.whatsapp.whatsapp_platform import WhatsAppPlatform

logger = logging.getLogger(__name__)


def _is_dev() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


@lru_cache
def get_timezone() -> ZoneInfo:
    try:
        return ZoneInfo(settings.BUSINESS_TIMEZONE)
    except Exception:
        logger.warning("Unknown BUSINESS_TIMEZONE, falling back to UTC", extra={"reason": settings.BUSINESS_TIMEZONE})
        return ZoneInfo("UTC")


@lru_cache
def get_intent_resolver() -> IntentResolverPort:
    if settings.OPENAI_API_KEY and settings.OPENAI_API_KEY.strip():
        return OpenAIIntentResolver()
    logger.info("Using MockIntentResolver (OPENAI_API_KEY missing)")
    return MockIntentResolver(language=settings.REPLY_LANGUAGE)


@lru_cache
def get_repository() -> RepositoryPort:
    if settings.STORE_PROVIDER.lower() == "memory":
        return MemoryRepository()
    return JsonRepository(data_dir=settings.STORE_DATA_DIR)


@lru_cache
def get_calendar() -> CalendarPort:
    has_credentials = all(
        (settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET, settings.GOOGLE_REFRESH_TOKEN)
    )
    if not has_credentials:
        if _is_dev():
            logger.info("Using MockCalendar (Google credentials missing, ENV=dev/local)")
            return MockCalendar()
        raise ValueError("GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN are required.")

    http_client = httpx.Client(timeout=settings.CALENDAR_TIMEOUT_SECONDS)
    tokens = GoogleAccessTokenProvider(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        refresh_token=settings.GOOGLE_REFRESH_TOKEN,
        http_client=http_client,
    )
    return GoogleCalendar(calendar_id=settings.GOOGLE_CALENDAR_ID, token_provider=tokens, http_client=http_client)


@lru_cache
def get_message_platform() -> MessagePlatformPort:
    logger.info("META_TOKEN present=%s len=%s", bool(settings.META_TOKEN), len(settings.META_TOKEN or ""))
    logger.info("ENV=%s", settings.ENV)

    if not (settings.META_TOKEN and settings.META_PHONE_ID):
        if _is_dev():
            logger.info("Using MockWhatsAppPlatform (token missing, ENV=dev/local)")
            return MockWhatsAppPlatform()
        raise ValueError("META_TOKEN and META_PHONE_ID are required to send WhatsApp replies.")

    logger.info("Using real WhatsAppPlatform")
    client = WhatsAppClient(
        access_token=settings.META_TOKEN,
        phone_number_id=settings.META_PHONE_ID,
        api_version=settings.META_GRAPH_API_VERSION,
        timeout=settings.META_SEND_TIMEOUT_SECONDS,
    )
    return WhatsAppPlatform(client=client)


@lru_cache
def get_booking_orchestrator() -> BookingOrchestrator:
    return BookingOrchestrator(
        calendar=get_calendar(),
        repository=get_repository(),
        timezone=get_timezone(),
        language=settings.REPLY_LANGUAGE,
        duration_minutes=settings.APPOINTMENT_DURATION_MINUTES,
        check_limit=settings.CHECK_LIMIT,
        rollback_orphaned_events=settings.ROLLBACK_ORPHANED_EVENTS,
        on_inconsistency=log_inconsistency,
        debug_errors=settings.DEBUG_ERROR_REPLIES,
    )


@lru_cache
def get_handle_incoming_message_use_case() -> HandleIncomingMessageUseCase:
    repository = get_repository()
    orchestrator = get_booking_orchestrator()
    return HandleIncomingMessageUseCase(
        repository=repository,
        onboarding=OnboardingStateMachine(
            repository=repository,
            require_email=settings.REQUIRE_EMAIL,
            language=settings.REPLY_LANGUAGE,
            business_name=settings.BUSINESS_NAME,
            on_reset=orchestrator.reset_customer,
        ),
        resolve_intent=ResolveIntentUseCase(resolver=get_intent_resolver(), language=settings.REPLY_LANGUAGE),
        orchestrator=orchestrator,
        send_reply=SendReplyUseCase(platform=get_message_platform()),
        timezone=get_timezone(),
        language=settings.REPLY_LANGUAGE,
        history_window=settings.HISTORY_WINDOW,
        debug_errors=settings.DEBUG_ERROR_REPLIES,
    )


def get_container() -> dict[str, object]:
    return {
        "use_case": get_handle_incoming_message_use_case(),
        "repository": get_repository(),
        "calendar": get_calendar(),
        "platform": get_message_platform(),
    }
