from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request, Response
from fastapi.responses import PlainTextResponse

from booking_agent.application.dto.webhook_event import WebhookEventDTO
from booking_agent.infrastructure.whatsapp.webhook_verify import verify_post_signature, verify_subscription
from booking_agent.wiring.dependencies import get_handle_incoming_event_use_case
from booking_agent.core.config import settings


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/webhooks/whatsapp")
def verify_webhook(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
):
    challenge = verify_subscription(hub_mode, hub_verify_token, hub_challenge, settings.META_VERIFY_TOKEN)
    if challenge is not None:
        return PlainTextResponse(challenge)
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhooks/whatsapp")
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
) -> Response:
    try:
        use_case = get_handle_incoming_event_use_case()
    except Exception as e:
        logger.exception("Failed to initialize use case", extra={"reason": str(e)})
        return Response(status_code=500)

    body = await request.body()
    signature = request.headers.get("X-Hub-Signature-256")
    if not verify_post_signature(body, signature, settings.META_APP_SECRET, settings.ENV):
        return Response(status_code=403)

    try:
        payload = json.loads(body.decode("utf-8")) if body else {}
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.exception("Failed to parse webhook body")
        return Response(status_code=400)

    try:
        events = WebhookEventDTO.model_validate(payload).extract_events()
    except Exception as e:
        # Acknowledge anyway: a non-2xx makes the channel redeliver the same payload.
        logger.exception("Error processing webhook event", extra={"reason": str(e)})
        return Response(status_code=200)

    logger.info("Webhook received", extra={"status": len(events)})
    for event in events:
        background_tasks.add_task(use_case.handle, event)
    return Response(status_code=200)


@router.get("/payments/callback")
def payment_callback(
    background_tasks: BackgroundTasks,
    reference_id: str | None = Query(None, alias="razorpay_payment_link_reference_id"),
    link_status: str | None = Query(None, alias="razorpay_payment_link_status"),
) -> PlainTextResponse:
    # The link status is re-read from the processor; query parameters are informational only.
    if not reference_id:
        raise HTTPException(status_code=400, detail="Missing reference id")
    logger.info("Payment callback received", extra={"reason": reference_id, "status": link_status})
    background_tasks.add_task(get_handle_incoming_event_use_case().handle_payment_callback, reference_id)
    return PlainTextResponse("Thank you! You can return to WhatsApp now.")
