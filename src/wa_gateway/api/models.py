"""Pydantic models for HTTP payloads."""

from pydantic import BaseModel


class SendMessageRequest(BaseModel):
    """Body of ``POST /send-message``."""

    phone: str | None = None
    message: str | None = None


class StatusResponse(BaseModel):
    """Connection status snapshot."""

    status: str
    state: str
    qrRequired: bool  # noqa: N815
    botNumber: str | None  # noqa: N815
    uptime: float
