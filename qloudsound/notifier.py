"""
QloudSound API - Telegram notifier

Posts a short summary of every new song request to a Telegram chat through
the Bot API ``sendMessage`` method.

Delivery is advisory: when no credentials are configured the notifier does
nothing, and callers are expected to log (not propagate) any error raised
here so a failed notification never changes the HTTP response.
"""

from typing import Optional, Tuple

import httpx
from loguru import logger

from qloudsound.config import (
    NOTIFY_TIMEOUT,
    TELEGRAM_API_URL,
    TELEGRAM_CHAT,
    TELEGRAM_FALLBACK_CHAT,
    TELEGRAM_FALLBACK_TOKEN,
    TELEGRAM_TOKEN,
)
from qloudsound.models import Submission


class NotificationError(RuntimeError):
    """The Telegram API answered with a non-success status."""


def _credentials() -> Tuple[str, str]:
    token = TELEGRAM_TOKEN or TELEGRAM_FALLBACK_TOKEN
    chat = TELEGRAM_CHAT or TELEGRAM_FALLBACK_CHAT
    return token, chat


def is_configured() -> bool:
    """Return True if both a bot token and a chat id are available."""
    token, chat = _credentials()
    return bool(token and chat)


def format_message(submission: Submission, extra: Optional[str] = None) -> str:
    """Render the multi-line chat message for *submission*."""
    rows = [
        "🆕 Nueva solicitud de canción",
        f"• Nombre: {submission.name}",
        f"• Email: {submission.email}",
        f"• Estilo: {submission.style}",
        f"• Descripción: {submission.description}" if submission.description else "",
        f"• Archivo: {submission.filename}" if submission.filename else "",
        f"• Notas: {extra}" if extra else "",
    ]
    return "\n".join(row for row in rows if row)


async def notify_submission(
    submission: Submission,
    extra: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Send the notification for *submission*.

    If *client* is provided it is used as-is (and left open); otherwise a
    short-lived client is created for this one call.

    Returns True when the message was delivered, False when skipped because
    no credentials are configured.

    Raises:
        NotificationError: Telegram rejected the message.
        httpx.HTTPError: the request could not be completed.
    """
    token, chat = _credentials()
    if not token or not chat:
        logger.debug("🔕 Telegram not configured — skipping notification")
        return False

    url = f"{TELEGRAM_API_URL.rstrip('/')}/bot{token}/sendMessage"
    payload = {"chat_id": chat, "text": format_message(submission, extra)}

    if client is not None:
        response = await client.post(url, json=payload)
    else:
        async with httpx.AsyncClient(timeout=NOTIFY_TIMEOUT) as own_client:
            response = await own_client.post(url, json=payload)

    if response.status_code >= 300:
        # Keep the snippet short; Telegram error bodies are small JSON anyway.
        body = response.text[:200]
        raise NotificationError(
            f"Telegram sendMessage failed: {response.status_code} {body}"
        )

    logger.info("📨 Telegram notified for request {}", submission.id)
    return True
