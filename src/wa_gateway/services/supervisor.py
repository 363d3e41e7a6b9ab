"""Lifecycle supervisor for the single WhatsApp session."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from wa_gateway.domain.credentials import Credentials
from wa_gateway.domain.errors import StorageError
from wa_gateway.domain.events import (
    CredentialsUpdated,
    QrIssued,
    SessionClosed,
    SessionEvent,
    SessionOpened,
    bot_id_from_jid,
)
from wa_gateway.domain.status import (
    AwaitingScan,
    Connected,
    Disconnected,
    LoggedOut,
)
from wa_gateway.services.credentials import CredentialStore
from wa_gateway.services.status import StatusRegistry

_logger = logging.getLogger(__name__)


class SessionHandle(Protocol):
    """A live connection produced by the protocol library."""

    def events(self) -> AsyncIterator[SessionEvent]:
        """Yield lifecycle events in arrival order until the session ends."""

    async def is_registered(self, address: str) -> bool:
        """Return whether the address belongs to a WhatsApp user."""

    async def send_text(self, address: str, text: str) -> str:
        """Send a text message and return the provider message id."""

    async def close(self) -> None:
        """Close the connection and end the event stream."""


class WhatsAppConnector(Protocol):
    """Factory for new sessions."""

    async def connect(self, credentials: Credentials) -> SessionHandle:
        """Open a session using the stored credentials."""


@dataclass
class SessionSupervisor:
    """Owns at most one session and keeps the status registry in sync.

    Events from the live session are consumed by a single task, so status
    writes follow arrival order. A close that is not a logout schedules one
    reconnect after ``reconnect_delay``; a failed connection attempt or a
    credential write failure retries after ``startup_retry_delay``. A logout
    is terminal until the credentials are cleared and the process restarts.
    """

    connector: WhatsAppConnector
    credential_store: CredentialStore
    registry: StatusRegistry
    reconnect_delay: float = 5.0
    startup_retry_delay: float = 10.0
    _handle: SessionHandle | None = field(default=None, init=False)
    _attempt: asyncio.Task[None] | None = field(default=None, init=False)
    _consumer: asyncio.Task[None] | None = field(default=None, init=False)
    _retry: asyncio.Task[None] | None = field(default=None, init=False)
    _stopped: bool = field(default=False, init=False)

    @property
    def retry_pending(self) -> bool:
        """Whether a reconnect timer is waiting to fire."""
        return self._retry is not None and not self._retry.done()

    def current_handle(self) -> SessionHandle | None:
        """Return the handle when the session is authenticated, else None."""
        if self._handle is None:
            return None
        if not isinstance(self.registry.read(), Connected):
            return None
        return self._handle

    async def start(self) -> None:
        """Open a session unless one is already live or being opened.

        The connection attempt runs in its own task so that ``shutdown`` can
        cancel it without waiting for the connect timeout.
        """
        if self._stopped:
            _logger.info("Supervisor is shut down, ignoring start")
            return
        if self._handle is not None:
            return
        if self._attempt is not None and not self._attempt.done():
            return
        if isinstance(self.registry.read(), LoggedOut):
            _logger.warning(
                "Session is logged out. Clear the credentials and restart."
            )
            return
        attempt = asyncio.create_task(self._open())
        self._attempt = attempt
        await asyncio.wait({attempt})

    async def shutdown(self) -> None:
        """Cancel pending work and close the live session."""
        self._stopped = True
        for task in (self._retry, self._attempt):
            if task is not None and task is not asyncio.current_task():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._retry = None
        self._attempt = None
        handle = self._handle
        try:
            if handle is not None:
                await self._discard(handle)
        finally:
            consumer = self._consumer
            self._consumer = None
            if consumer is not None and consumer is not asyncio.current_task():
                consumer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await consumer
            if not isinstance(self.registry.read(), LoggedOut):
                self.registry.write(Disconnected(reason="shutdown"))
        _logger.info("WhatsApp session supervisor stopped")

    async def _open(self) -> None:
        try:
            credentials = await self.credential_store.load()
            handle = await self.connector.connect(credentials)
        except Exception:
            _logger.exception("Failed to open WhatsApp session")
            self.registry.write(
                Disconnected(reason="connect_failed", reconnecting=True)
            )
            self._schedule_retry(self.startup_retry_delay)
            return
        if self._stopped:
            await handle.close()
            return
        self._handle = handle
        self._consumer = asyncio.create_task(self._consume(handle))

    async def _consume(self, handle: SessionHandle) -> None:
        try:
            async for event in handle.events():
                if handle is not self._handle:
                    _logger.debug(
                        "Ignoring %s from a closed session", type(event).__name__
                    )
                    continue
                await self._process(handle, event)
        except StorageError:
            _logger.exception("Failed to persist session credentials")
            await self._drop(handle, "storage_error", self.startup_retry_delay)
            return
        except Exception:
            _logger.exception("Session event stream failed")
            await self._drop(handle, "stream_error", self.reconnect_delay)
            return
        if handle is self._handle:
            _logger.warning("Session event stream ended without a close event")
            await self._drop(handle, "stream_ended", self.reconnect_delay)

    async def _process(self, handle: SessionHandle, event: SessionEvent) -> None:
        if isinstance(event, QrIssued):
            _logger.info("QR code generated")
            self.registry.write(
                AwaitingScan(qr_payload=event.payload, issued_at=datetime.now(tz=UTC))
            )
        elif isinstance(event, SessionOpened):
            bot_id = bot_id_from_jid(event.bot_id)
            _logger.info("WhatsApp bot connected as %s", bot_id)
            self.registry.write(Connected(bot_id=bot_id))
        elif isinstance(event, CredentialsUpdated):
            await self.credential_store.save(event.update)
        elif isinstance(event, SessionClosed):
            if event.logged_out:
                _logger.warning(
                    "Bot logged out. Delete the credentials directory and restart."
                )
                await self._discard(handle)
                self.registry.write(LoggedOut())
                return
            _logger.warning("Connection closed: reason=%s", event.reason)
            await self._drop(handle, event.reason or "closed", self.reconnect_delay)

    async def _drop(self, handle: SessionHandle, reason: str, delay: float) -> None:
        await self._discard(handle)
        self.registry.write(
            Disconnected(reason=reason, reconnecting=not self._stopped)
        )
        self._schedule_retry(delay)

    async def _discard(self, handle: SessionHandle) -> None:
        # The handle stays current until closed so start() cannot open another.
        try:
            await handle.close()
        except Exception:
            _logger.exception("Failed to close WhatsApp session")
        finally:
            if self._handle is handle:
                self._handle = None

    def _schedule_retry(self, delay: float) -> None:
        if self._stopped:
            return
        if self.retry_pending:
            _logger.info("Reconnect already scheduled")
            return
        _logger.info("Reconnecting in %.1f seconds", delay)
        self._retry = asyncio.create_task(self._retry_after(delay))

    async def _retry_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._retry = None
        await self.start()
