"""Domain model for persisted session credentials."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Credentials:
    """Authentication material for the paired device.

    ``state`` is the protocol library's auth state; only the credential store
    and the connector look inside it.
    """

    directory: Path
    state: Any = None
