"""Process-wide connection status snapshot."""

import threading
import time
from dataclasses import dataclass, field

from wa_gateway.domain.status import ConnectionStatus, Disconnected


@dataclass
class StatusRegistry:
    """Holds the latest connection status behind a lock.

    Only the session supervisor writes; request handlers read. The lock is
    held for an assignment or a read, never across I/O.
    """

    _status: ConnectionStatus = field(default_factory=Disconnected)
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _started_at: float = field(default_factory=time.monotonic)

    def read(self) -> ConnectionStatus:
        """Return the current status."""
        with self._lock:
            return self._status

    def write(self, status: ConnectionStatus) -> None:
        """Replace the current status."""
        with self._lock:
            self._status = status

    def uptime_seconds(self) -> float:
        """Seconds since the registry was created."""
        return time.monotonic() - self._started_at
