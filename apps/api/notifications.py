from __future__ import annotations

import asyncio
import logging
import os
import smtplib
from email.message import EmailMessage
from typing import List, Optional

import httpx

from packages.core.reminders.scheduler import DeliveryCallback


logger = logging.getLogger("nagbot.notifications")

MAX_CHUNK_CHARS = 4000


def _smtp_config() -> dict:
    return {
        "host": os.getenv("SMTP_HOST", ""),
        "port": int(os.getenv("SMTP_PORT", "587")),
        "user": os.getenv("SMTP_USER", ""),
        "password": os.getenv("SMTP_PASSWORD", ""),
        "from_email": os.getenv("SMTP_FROM", ""),
        "use_tls": os.getenv("SMTP_USE_TLS", "true").lower() == "true",
    }


def send_email(to_email: str, subject: str, body: str) -> None:
    config = _smtp_config()
    if not config["host"] or not config["from_email"]:
        raise RuntimeError("SMTP is not configured. Set SMTP_HOST and SMTP_FROM.")

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = config["from_email"]
    message["To"] = to_email
    message.set_content(body)

    with smtplib.SMTP(config["host"], config["port"]) as server:
        if config["use_tls"]:
            server.starttls()
        if config["user"]:
            server.login(config["user"], config["password"])
        server.send_message(message)


def chunk_message(text: str, size: int = MAX_CHUNK_CHARS) -> List[str]:
    if not text:
        return []
    return [text[index : index + size] for index in range(0, len(text), size)]


class EmailDelivery:
    def __init__(self, to_email: str) -> None:
        self._to_email = to_email

    async def __call__(self, message: str) -> bool:
        subject = message.splitlines()[0] if message else "Reminder"
        try:
            await asyncio.to_thread(send_email, self._to_email, subject, message)
        except (smtplib.SMTPException, OSError, RuntimeError) as exc:
            logger.warning("email_delivery_failed to=%s error=%s", self._to_email, exc)
            return False
        return True


class WebhookDelivery:
    """Posts each message to a webhook as JSON, split into transport-sized chunks."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def __call__(self, message: str) -> bool:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for chunk in chunk_message(message):
                try:
                    response = await client.post(self._url, json={"text": chunk})
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.warning("webhook_delivery_failed url=%s error=%s", self._url, exc)
                    return False
        return True


async def deliver_to_log(message: str) -> bool:
    logger.info("reminder_notification message=%r", message)
    return True


def build_delivery() -> DeliveryCallback:
    mode = os.getenv("NAGBOT_DELIVERY", "log").lower()
    if mode == "webhook":
        url = os.getenv("NAGBOT_WEBHOOK_URL")
        if not url:
            raise RuntimeError("NAGBOT_WEBHOOK_URL is required when NAGBOT_DELIVERY=webhook")
        return WebhookDelivery(url, timeout=float(os.getenv("NAGBOT_WEBHOOK_TIMEOUT", "10")))
    if mode == "email":
        to_email = os.getenv("NAGBOT_NOTIFY_EMAIL")
        if not to_email:
            raise RuntimeError("NAGBOT_NOTIFY_EMAIL is required when NAGBOT_DELIVERY=email")
        return EmailDelivery(to_email)
    if mode != "log":
        raise RuntimeError(f"Unknown NAGBOT_DELIVERY mode: {mode}")
    return deliver_to_log
