"""WhatsApp Cloud API webhook: subscription handshake and inbound messages."""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from quizbot.config import settings
from quizbot.database import get_db
from quizbot.logging_config import get_logger
from quizbot.schemas.message import InboundMessage
from quizbot.schemas.webhook import WebhookResponse, WhatsAppMessage, WhatsAppWebhookPayload
from quizbot.services.errors import QuizBotError
from quizbot.services.message_router import MessageRouter, RouteKind, get_message_router, reply_for_error
from quizbot.services.whatsapp_service import send_text_message, verify_signature

logger = get_logger("webhook")

router = APIRouter()


@router.get("/webhook", response_class=PlainTextResponse)
def verify_webhook(
    hub_mode: Optional[str] = Query(default=None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    if not hub_mode or not hub_verify_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing hub parameters")
    if hub_mode != "subscribe" or not settings.whatsapp_verify_token or hub_verify_token != settings.whatsapp_verify_token:
        logger.warning("Webhook verification rejected", extra={"context": {"mode": hub_mode}})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verification failed")

    logger.info("Webhook verified")
    return hub_challenge or ""


def _to_inbound(message: WhatsAppMessage) -> InboundMessage:
    return InboundMessage(
        sender_id=message.from_number,
        text=message.text.body if message.text else "",
        delivery_id=message.id,
    )


def _handle_message(db: Session, message_router: MessageRouter, message: WhatsAppMessage) -> Optional[RouteKind]:
    """Route and answer one message; None when routing failed."""
    inbound = _to_inbound(message)
    try:
        outcome = message_router.route(db, inbound)
    except QuizBotError as e:
        logger.error(
            "Message routing failed",
            extra={"context": {"sender_id": inbound.sender_id, "delivery_id": inbound.delivery_id, "code": e.code}},
        )
        send_text_message(inbound.sender_id, reply_for_error(e))
        return None

    if outcome.reply:
        sent = send_text_message(outcome.sender_id, outcome.reply)
        if not sent.ok:
            logger.warning(
                "Reply not delivered",
                extra={"context": {"sender_id": outcome.sender_id, "code": sent.error_code, "route": outcome.kind.value}},
            )
    return outcome.kind


@router.post("/webhook", response_model=WebhookResponse)
async def receive_webhook(
    request: Request,
    db: Session = Depends(get_db),
    message_router: MessageRouter = Depends(get_message_router),
):
    raw_body = await request.body()
    if not verify_signature(raw_body, request.headers.get("X-Hub-Signature-256")):
        logger.warning("Webhook signature mismatch")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        payload = WhatsAppWebhookPayload(**json.loads(raw_body or b"{}"))
    except (ValueError, ValidationError, TypeError) as e:
        logger.warning("Malformed webhook payload", extra={"context": {"error": str(e)}})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed payload")

    return await run_in_threadpool(_process_payload, db, message_router, payload)


def _process_payload(db: Session, message_router: MessageRouter, payload: WhatsAppWebhookPayload) -> WebhookResponse:
    response = WebhookResponse(success=True, statuses=payload.status_count())
    for message in payload.text_messages():
        kind = _handle_message(db, message_router, message)
        if kind is None:
            response.failed += 1
        elif kind == RouteKind.DUPLICATE:
            response.duplicates += 1
        else:
            response.processed += 1

    response.success = response.failed == 0
    return response
