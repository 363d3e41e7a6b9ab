"""Outbound message validation and delivery."""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from wa_gateway.app_logging import redact_phone
from wa_gateway.domain.errors import (
    NotReadyError,
    SendError,
    UnregisteredRecipientError,
    ValidationError,
)
from wa_gateway.domain.messages import SendResult
from wa_gateway.services.supervisor import SessionHandle

_logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


class HandleProvider(Protocol):
    """Source of the currently live session."""

    def current_handle(self) -> SessionHandle | None:
        """Return the live session handle, if any."""


def normalize_phone(raw: str, country_prefix: str = "62") -> str:
    """Strip non-digits and apply the country prefix.

    A single leading zero is replaced by the prefix; numbers that do not
    already start with the prefix get it prepended.
    """
    digits = _NON_DIGITS.sub("", raw)
    if digits.startswith("0"):
        return country_prefix + digits[1:]
    if not digits.startswith(country_prefix):
        return country_prefix + digits
    return digits


@dataclass
class MessageGateway:
    """Validates send requests and forwards them to the live session.

    Sends are never retried here. Once the network calls start they run to
    completion even if the caller stops waiting, since a message may already
    have been delivered.
    """

    sessions: HandleProvider
    country_prefix: str = "62"
    messaging_domain: str = "s.whatsapp.net"
    timeout_seconds: float | None = 30.0

    def normalize_phone(self, raw: str) -> str:
        """Normalize a phone number with the configured prefix."""
        return normalize_phone(raw, self.country_prefix)

    def address_for(self, normalized_phone: str) -> str:
        """Return the messaging address for normalized digits."""
        return f"{normalized_phone}@{self.messaging_domain}"

    async def send(self, phone: str | None, text: str | None) -> SendResult:
        """Send ``text`` to ``phone`` through the live session."""
        if not phone or not text:
            raise ValidationError("Phone and message are required")
        normalized = self.normalize_phone(phone)
        if normalized == self.country_prefix:
            raise ValidationError("Phone number must contain digits")
        handle = self.sessions.current_handle()
        if handle is None:
            raise NotReadyError("WhatsApp bot is not connected")

        delivery = asyncio.ensure_future(self._deliver(handle, normalized, text))
        delivery.add_done_callback(_consume_result)
        try:
            message_id = await asyncio.wait_for(
                asyncio.shield(delivery), self.timeout_seconds
            )
        except TimeoutError:
            _logger.warning(
                "Send to %s still pending after %.1f seconds",
                redact_phone(normalized),
                self.timeout_seconds,
            )
            raise SendError(
                "Timed out waiting for WhatsApp to accept the message"
            ) from None
        return SendResult(normalized_phone=normalized, message_id=message_id)

    async def _deliver(self, handle: SessionHandle, normalized: str, text: str) -> str:
        address = self.address_for(normalized)
        try:
            registered = await handle.is_registered(address)
        except Exception as exc:
            _logger.exception(
                "Registration lookup failed for %s", redact_phone(normalized)
            )
            raise SendError(str(exc)) from exc
        if not registered:
            raise UnregisteredRecipientError("Phone number not registered on WhatsApp")
        try:
            message_id = await handle.send_text(address, text)
        except Exception as exc:
            _logger.exception("Failed to send message to %s", redact_phone(normalized))
            raise SendError(str(exc)) from exc
        _logger.info("Message sent to %s", redact_phone(normalized))
        return message_id


def _consume_result(task: asyncio.Future[str]) -> None:
    # Retrieve the outcome so detached deliveries do not warn on collection.
    if not task.cancelled():
        task.exception()
