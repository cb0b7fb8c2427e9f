from datetime import date, datetime
from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

import httpx

from booking_agent.core.config import settings
from booking_agent.application.ports.message_platform import MessagePlatformPort
from booking_agent.application.ports.payment import PaymentPort
from booking_agent.application.ports.scheduling import SchedulingPort
from booking_agent.application.ports.support import SupportTicketPort
from booking_agent.application.use_cases.booking_commands import BookingCommands
from booking_agent.application.use_cases.conversation import ConversationEngine
from booking_agent.application.use_cases.handle_incoming_event import HandleIncomingEventUseCase
from booking_agent.application.use_cases.send_reply import SendReplyUseCase
from booking_agent.application.use_cases.slot_discovery import SlotDiscoveryEngine
from booking_agent.infrastructure.http.resilient_client import ResilientApiClient
from booking_agent.infrastructure.payments.mock_payment import MockPaymentProcessor
from booking_agent.infrastructure.payments.razorpay_client import RazorpayPaymentClient
from booking_agent.infrastructure.store.memory_store import MemorySessionStore
from booking_agent.infrastructure.support.desk_client import ZohoDeskTicketClient
from booking_agent.infrastructure.support.mock_desk import MockTicketSink
from booking_agent.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform
from booking_agent.infrastructure.whatsapp.whatsapp_client import WhatsAppClient
from booking_agent.infrastructure.whatsapp.whatsapp_platform import WhatsAppPlatform
from booking_agent.infrastructure.zoho.auth import ZohoCredentialCache
from booking_agent.infrastructure.zoho.bookings_client import ZohoBookingsClient
from booking_agent.infrastructure.zoho.mock_scheduling import MockScheduling


_session_store: MemorySessionStore | None = None


def _is_local() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


def _zoho_configured() -> bool:
    return bool(settings.ZOHO_CLIENT_ID and settings.ZOHO_CLIENT_SECRET and settings.ZOHO_REFRESH_TOKEN)


def get_session_store() -> MemorySessionStore:
    global _session_store
    if _session_store is None:
        _session_store = MemorySessionStore(ttl_seconds=settings.SESSION_TTL_SECONDS)
    return _session_store


@lru_cache
def get_http_client() -> httpx.Client:
    return httpx.Client(timeout=settings.API_TIMEOUT_SECONDS)


@lru_cache
def get_zoho_api() -> ResilientApiClient:
    credentials = ZohoCredentialCache(
        client=get_http_client(),
        accounts_url=settings.ZOHO_ACCOUNTS_URL,
        client_id=settings.ZOHO_CLIENT_ID,
        client_secret=settings.ZOHO_CLIENT_SECRET,
        refresh_token=settings.ZOHO_REFRESH_TOKEN,
        refresh_margin_seconds=settings.TOKEN_REFRESH_MARGIN_SECONDS,
    )
    return ResilientApiClient(
        client=get_http_client(),
        credentials=credentials,
        max_attempts=settings.API_MAX_ATTEMPTS,
        base_delay_seconds=settings.API_RETRY_BASE_DELAY_SECONDS,
    )


@lru_cache
def get_scheduling() -> SchedulingPort:
    logger = logging.getLogger(__name__)
    if not _zoho_configured():
        if _is_local():
            logger.info("Using MockScheduling (Zoho credentials missing, ENV=dev/local)")
            return MockScheduling()
        raise ValueError("ZOHO_CLIENT_ID, ZOHO_CLIENT_SECRET and ZOHO_REFRESH_TOKEN are required.")
    logger.info("Using ZohoBookingsClient")
    return ZohoBookingsClient(
        api=get_zoho_api(),
        base_url=settings.ZOHO_BOOKINGS_BASE_URL,
        workspace_id=settings.ZOHO_WORKSPACE_ID,
    )


@lru_cache
def get_payments() -> PaymentPort | None:
    logger = logging.getLogger(__name__)
    if settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET:
        logger.info("Using RazorpayPaymentClient")
        api = ResilientApiClient(
            client=get_http_client(),
            max_attempts=settings.API_MAX_ATTEMPTS,
            base_delay_seconds=settings.API_RETRY_BASE_DELAY_SECONDS,
        )
        return RazorpayPaymentClient(
            api=api,
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            base_url=settings.RAZORPAY_BASE_URL,
            callback_url=settings.PAYMENT_CALLBACK_URL,
        )
    if _is_local():
        logger.info("Using MockPaymentProcessor (Razorpay keys missing, ENV=dev/local)")
        return MockPaymentProcessor()
    logger.warning("No payment processor configured; paid services are booked without payment")
    return None


@lru_cache
def get_support() -> SupportTicketPort:
    if _zoho_configured() and settings.ZOHO_DESK_ORG_ID:
        return ZohoDeskTicketClient(
            api=get_zoho_api(),
            base_url=settings.ZOHO_DESK_BASE_URL,
            org_id=settings.ZOHO_DESK_ORG_ID,
            department_id=settings.ZOHO_DESK_DEPARTMENT_ID,
        )
    return MockTicketSink()


@lru_cache
def get_message_platform() -> MessagePlatformPort:
    logger = logging.getLogger(__name__)
    logger.info(
        "WHATSAPP_TOKEN present=%s len=%s",
        bool(settings.WHATSAPP_TOKEN),
        len(settings.WHATSAPP_TOKEN or ""),
    )
    logger.info("ENV=%s", settings.ENV)

    if not settings.WHATSAPP_TOKEN or not settings.WHATSAPP_PHONE_NUMBER_ID:
        if _is_local():
            logger.info("Using MockWhatsAppPlatform (token missing, ENV=dev/local)")
            return MockWhatsAppPlatform()
        raise ValueError("WHATSAPP_TOKEN and WHATSAPP_PHONE_NUMBER_ID are required to send WhatsApp replies.")

    logger.info("Using real WhatsAppPlatform")
    client = WhatsAppClient(
        access_token=settings.WHATSAPP_TOKEN,
        phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
        api_version=settings.META_GRAPH_API_VERSION,
    )
    return WhatsAppPlatform(client=client)


def business_today() -> date:
    return datetime.now(ZoneInfo(settings.BUSINESS_TIMEZONE)).date()


@lru_cache
def get_conversation_engine() -> ConversationEngine:
    scheduling = get_scheduling()
    return ConversationEngine(
        scheduling=scheduling,
        slot_discovery=SlotDiscoveryEngine(scheduling),
        commands=BookingCommands(scheduling, timezone=settings.BUSINESS_TIMEZONE),
        payments=get_payments(),
        support=get_support(),
        today=business_today,
        page_size=settings.LIST_PAGE_SIZE,
        scan_max_days=settings.SLOT_SCAN_MAX_DAYS,
        max_attempts=settings.MAX_INPUT_ATTEMPTS,
        months_ahead=settings.MONTHS_AHEAD,
        currency=settings.PAYMENT_CURRENCY,
        ask_language=settings.LANGUAGE_PROMPT_ENABLED,
        default_language=settings.DEFAULT_LANGUAGE,
    )


def get_handle_incoming_event_use_case() -> HandleIncomingEventUseCase:
    return HandleIncomingEventUseCase(
        store=get_session_store(),
        engine=get_conversation_engine(),
        send_reply=SendReplyUseCase(
            platform=get_message_platform(),
            auto_reply_enabled=settings.AUTO_REPLY_ENABLED,
        ),
    )


def get_container() -> dict[str, object]:
    return {
        "use_case": get_handle_incoming_event_use_case(),
        "store": get_session_store(),
        "platform": get_message_platform(),
        "payments": get_payments(),
    }
