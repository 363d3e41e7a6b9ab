"""Lifecycle events emitted by a WhatsApp session."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class QrIssued:
    """A pairing QR payload was issued or rotated."""

    payload: str


@dataclass(frozen=True)
class SessionOpened:
    """The socket is open and authenticated as ``bot_id``."""

    bot_id: str


@dataclass(frozen=True)
class SessionClosed:
    """The socket closed; ``logged_out`` marks an explicit logout."""

    logged_out: bool = False
    reason: str | None = None


@dataclass(frozen=True)
class CredentialsUpdated:
    """Authentication material changed and must be persisted."""

    update: dict[str, object] = field(default_factory=dict)


SessionEvent = QrIssued | SessionOpened | SessionClosed | CredentialsUpdated


def bot_id_from_jid(jid: str) -> str:
    """Return the phone part of an account JID like ``628...:12@s.whatsapp.net``."""
    return jid.split("@", 1)[0].split(":", 1)[0]
