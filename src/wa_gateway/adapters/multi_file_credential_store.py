"""Credential store backed by the pyaileys multi-file auth folder."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from pyaileys.auth.store import MultiFileAuthState
from pyaileys.exceptions import AuthError

from wa_gateway.domain.credentials import Credentials
from wa_gateway.domain.errors import StorageError
from wa_gateway.services.credentials import CredentialStore

_CREDS_FILE = "creds.json"


@dataclass
class MultiFileCredentialStore(CredentialStore):
    """Owns the auth folder: ``creds.json`` plus one file per signal key."""

    directory: Path
    _state: MultiFileAuthState | None = field(default=None, init=False)

    async def load(self) -> Credentials:
        """Read the auth folder, writing fresh credentials on first run."""
        try:
            state = await MultiFileAuthState.load(self.directory)
            if not (self.directory / _CREDS_FILE).exists():
                await state.save_creds()
        except (AuthError, OSError) as exc:
            raise StorageError(f"Cannot read credentials in {self.directory}") from exc
        self._state = state
        return Credentials(directory=self.directory, state=state)

    async def save(self, update: Mapping[str, object]) -> Credentials:
        """Apply updated creds and flush ``creds.json`` before returning."""
        state = self._state
        if state is None:
            state = (await self.load()).state
        creds = update.get("creds")
        if creds is not None:
            state.creds = creds
        try:
            await state.save_creds()
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(
                f"Cannot persist credentials to {self.directory / _CREDS_FILE}"
            ) from exc
        return Credentials(directory=self.directory, state=state)
