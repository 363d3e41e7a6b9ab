"""Connection status values for the bot session."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Disconnected:
    """No live session; a reconnect may be pending."""

    reason: str | None = None
    reconnecting: bool = False


@dataclass(frozen=True)
class AwaitingScan:
    """The session issued a pairing QR that has not been scanned yet."""

    qr_payload: str
    issued_at: datetime


@dataclass(frozen=True)
class Connected:
    """The session is open and authenticated."""

    bot_id: str


@dataclass(frozen=True)
class LoggedOut:
    """The paired device was logged out; credentials must be cleared."""


ConnectionStatus = Disconnected | AwaitingScan | Connected | LoggedOut


def state_name(status: ConnectionStatus) -> str:
    """Return the wire name for a connection status."""
    if isinstance(status, AwaitingScan):
        return "awaiting_scan"
    if isinstance(status, Connected):
        return "connected"
    if isinstance(status, LoggedOut):
        return "logged_out"
    return "disconnected"
