import hashlib
import hmac
from typing import Optional

import httpx

from quizbot.config import settings
from quizbot.logging_config import get_logger
from quizbot.services.result import Result

logger = get_logger("whatsapp_service")

SIGNATURE_PREFIX = "sha256="


def send_text_message(to: str, body: str, *, timeout: Optional[float] = None) -> Result[str]:
    """Send a text message via the WhatsApp Cloud API. Returns the outbound message id."""
    if not settings.whatsapp_access_token or not settings.whatsapp_phone_number_id:
        logger.error("WhatsApp credentials are missing (WHATSAPP_ACCESS_TOKEN / WHATSAPP_PHONE_NUMBER_ID)")
        return Result.failure("WhatsApp is not configured", "not_configured")

    if not to or not body:
        logger.warning("send_text_message: missing recipient or body", extra={"context": {"to": to}})
        return Result.failure("Missing recipient or body", "send_error")

    url = f"{settings.whatsapp_api_url.rstrip('/')}/{settings.whatsapp_phone_number_id}/messages"
    payload = {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": to,
        "type": "text",
        "text": {"preview_url": False, "body": body},
    }
    headers = {"Authorization": f"Bearer {settings.whatsapp_access_token}"}

    try:
        with httpx.Client(timeout=timeout or settings.send_timeout_seconds) as client:
            response = client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        logger.error("WhatsApp send timed out", extra={"context": {"to": to, "error": str(e)}})
        return Result.failure("WhatsApp send timed out", "timeout")
    except httpx.HTTPError as e:
        logger.error("WhatsApp send failed", extra={"context": {"to": to, "error": str(e)}})
        return Result.failure(str(e), "send_error")

    if response.status_code >= 400:
        logger.error(
            "WhatsApp API error",
            extra={"context": {"to": to, "status": response.status_code, "body": response.text[:200]}},
        )
        return Result.failure(f"HTTP {response.status_code}", "http_error")

    try:
        message_id = response.json()["messages"][0]["id"]
    except (ValueError, KeyError, IndexError, TypeError):
        message_id = ""
    logger.info("WhatsApp message sent", extra={"context": {"to": to, "message_id": message_id}})
    return Result.success(message_id)


def verify_signature(raw_body: bytes, signature_header: Optional[str]) -> bool:
    """Check X-Hub-Signature-256 against the app secret. Always true when no secret is set."""
    secret = settings.whatsapp_app_secret
    if not secret:
        return True
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        return False
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header[len(SIGNATURE_PREFIX) :])
