"""Application configuration."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    port: int = 3000
    host: str = "0.0.0.0"  # noqa: S104
    auth_dir: Path = Path("auth_info_baileys")
    reconnect_delay_seconds: float = 5.0
    startup_retry_delay_seconds: float = 10.0
    send_timeout_seconds: float = 30.0
    country_prefix: str = "62"
    messaging_domain: str = "s.whatsapp.net"
    public_url: str | None = Field(
        default=None, validation_alias="RAILWAY_PUBLIC_DOMAIN"
    )
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
