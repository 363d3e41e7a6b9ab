"""Credential persistence interface."""

from collections.abc import Mapping
from typing import Protocol

from wa_gateway.domain.credentials import Credentials


class CredentialStore(Protocol):
    """Durable storage for the session's authentication material."""

    async def load(self) -> Credentials:
        """Return stored credentials, creating defaults when none exist."""

    async def save(self, update: Mapping[str, object]) -> Credentials:
        """Apply an incremental update and persist it before returning."""
