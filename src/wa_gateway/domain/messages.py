"""Domain models for outbound messages."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SendResult:
    """Outcome of a delivered message."""

    normalized_phone: str
    message_id: str
    success: bool = True
