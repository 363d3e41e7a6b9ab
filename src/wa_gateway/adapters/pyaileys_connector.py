"""WhatsApp Web session adapter built on pyaileys."""

import asyncio
import contextlib
import logging
import re
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from pyaileys import WhatsAppClient
from pyaileys.auth.state import AuthenticationState
from pyaileys.client import ClientConfig
from pyaileys.exceptions import TransportError
from pyaileys.socket import ConnectionUpdate
from pyaileys.socket_config import SocketConfig
from pyaileys.usync import build_usync_iq, parse_usync_result

from wa_gateway.domain.credentials import Credentials
from wa_gateway.domain.events import (
    CredentialsUpdated,
    QrIssued,
    SessionClosed,
    SessionEvent,
    SessionOpened,
)
from wa_gateway.services.supervisor import SessionHandle, WhatsAppConnector

_logger = logging.getLogger(__name__)

# Stream error code the server sends when the linked device is logged out.
LOGGED_OUT_STATUS = 401

_STREAM_ERROR = re.compile(r"stream error (\d+)")


@dataclass
class PyaileysSession(SessionHandle):
    """Session handle that turns pyaileys callbacks into an ordered stream.

    The library restarts its own socket once after pairing (stream error 515).
    That close is not reported; only a restart that fails to reopen the socket
    ends the session.
    """

    client: Any
    _queue: asyncio.Queue[SessionEvent | None] = field(
        default_factory=asyncio.Queue, init=False
    )
    _closed: bool = field(default=False, init=False)
    _restart_watch: asyncio.Task[None] | None = field(default=None, init=False)

    async def events(self) -> AsyncIterator[SessionEvent]:
        """Yield session events until the session is closed."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    async def is_registered(self, address: str) -> bool:
        """Check registration with a USync device query.

        A query the server rejects raises ``TransportError`` instead of being
        reported as an unregistered number.
        """
        iq = build_usync_iq(
            [address],
            sid=uuid.uuid4().hex,
            context="interactive",
            include_lid_protocol=False,
        )
        response = await self.client.socket.query(iq)
        if response.attrs.get("type") != "result":
            raise TransportError(
                f"USync query failed: type={response.attrs.get('type')}"
            )
        user = _user_part(address)
        return any(
            _user_part(result.id) == user
            and result.devices is not None
            and bool(result.devices.device_list)
            for result in parse_usync_result(response)
        )

    async def send_text(self, address: str, text: str) -> str:
        """Send a text message and return its message id."""
        return await self.client.send_text(address, text)

    async def close(self) -> None:
        """Stop any pending socket restart, disconnect and end the stream."""
        if self._closed:
            return
        self._closed = True
        try:
            restart = getattr(self.client.socket, "_restart_task", None)
            if (
                restart is not None
                and not restart.done()
                and restart is not asyncio.current_task()
            ):
                restart.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await restart
            if self._restart_watch is not None:
                self._restart_watch.cancel()
            await self.client.disconnect()
        finally:
            self._queue.put_nowait(None)

    async def on_connection_update(self, update: ConnectionUpdate) -> None:
        """Translate a ``connection.update`` payload into session events."""
        if self._closed:
            return
        if update.qr:
            self._queue.put_nowait(QrIssued(payload=update.qr))
        if update.connection == "open":
            me = self.client.socket.auth.creds.me
            self._queue.put_nowait(SessionOpened(bot_id=me.id if me else ""))
        elif update.connection == "close":
            restart = getattr(self.client.socket, "_restart_task", None)
            if restart is not None and restart is asyncio.current_task():
                _logger.info("Server requested a socket restart")
                self._restart_watch = asyncio.create_task(
                    self._follow_restart(restart)
                )
                return
            status_code = stream_error_code(update.last_disconnect)
            self._queue.put_nowait(
                SessionClosed(
                    logged_out=status_code == LOGGED_OUT_STATUS,
                    reason=f"status={status_code}" if status_code else "closed",
                )
            )

    async def on_creds_update(self, creds: Any) -> None:
        """Hand updated credentials to the supervisor for persistence."""
        self._queue.put_nowait(CredentialsUpdated(update={"creds": creds}))

    async def _follow_restart(self, restart: asyncio.Task[Any]) -> None:
        await asyncio.wait({restart})
        if self._closed or self.client.socket.is_open:
            return
        _logger.warning("Socket restart did not reconnect")
        self._queue.put_nowait(SessionClosed(reason="restart_failed"))


@dataclass
class PyaileysConnector(WhatsAppConnector):
    """Opens pyaileys sessions from the auth state the credential store loaded."""

    async def connect(self, credentials: Credentials) -> PyaileysSession:
        """Build a client without library auto-reconnect and connect it."""
        state = credentials.state
        client = WhatsAppClient(
            auth=AuthenticationState(creds=state.creds, keys=state.keys),
            config=ClientConfig(socket=SocketConfig(auto_reconnect=False)),
        )
        session = PyaileysSession(client=client)
        client.on("connection.update", session.on_connection_update)
        client.on("creds.update", session.on_creds_update)
        _logger.info("Connecting to WhatsApp Web")
        try:
            await client.connect()
        except BaseException:
            await session.close()
            raise
        return session


def stream_error_code(error: Exception | None) -> int | None:
    """Return the numeric code of a ``WhatsApp stream error <code>`` failure."""
    if not isinstance(error, TransportError):
        return None
    match = _STREAM_ERROR.search(str(error))
    return int(match.group(1)) if match else None


def _user_part(jid: str) -> str:
    return jid.split("@", 1)[0].split(":", 1)[0]
