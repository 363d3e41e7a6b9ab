"""Shared test fixtures."""

import asyncio
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from wa_gateway.config import Settings
from wa_gateway.containers import AppContainer, build_container
from wa_gateway.domain.credentials import Credentials
from wa_gateway.domain.errors import StorageError
from wa_gateway.domain.events import SessionEvent
from wa_gateway.services.credentials import CredentialStore
from wa_gateway.services.supervisor import SessionHandle, WhatsAppConnector


async def settle() -> None:
    """Let queued callbacks and tasks run."""
    for _ in range(10):
        await asyncio.sleep(0)


@dataclass
class InMemoryCredentialStore(CredentialStore):
    """In-memory credential store for tests."""

    values: dict[str, object] = field(default_factory=dict)
    saves: list[dict[str, object]] = field(default_factory=list)
    fail_on_save: bool = False
    fail_on_load: bool = False

    async def load(self) -> Credentials:
        if self.fail_on_load:
            raise StorageError("disk unavailable")
        return Credentials(directory=Path("memory"), state=dict(self.values))

    async def save(self, update: Mapping[str, object]) -> Credentials:
        if self.fail_on_save:
            raise StorageError("disk full")
        self.values.update(update)
        self.saves.append(dict(update))
        return Credentials(directory=Path("memory"), state=dict(self.values))


@dataclass
class FakeSessionHandle(SessionHandle):
    """Scripted session that emits events on demand and records sends."""

    registered: set[str] = field(default_factory=set)
    sent: list[tuple[str, str]] = field(default_factory=list)
    lookups: list[str] = field(default_factory=list)
    send_error: Exception | None = None
    lookup_error: Exception | None = None
    closed: bool = False
    _queue: asyncio.Queue = field(default_factory=asyncio.Queue)

    async def events(self) -> AsyncIterator[SessionEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    async def emit(self, *events: SessionEvent) -> None:
        for event in events:
            self._queue.put_nowait(event)
        await settle()

    async def is_registered(self, address: str) -> bool:
        self.lookups.append(address)
        if self.lookup_error is not None:
            raise self.lookup_error
        return address in self.registered

    async def send_text(self, address: str, text: str) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((address, text))
        return f"MSG{len(self.sent)}"

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(None)


@dataclass
class FakeConnector(WhatsAppConnector):
    """Connector that hands out fake sessions and can fail on demand."""

    failures: int = 0
    handles: list[FakeSessionHandle] = field(default_factory=list)
    calls: int = 0
    gate: asyncio.Event | None = None
    cancelled: bool = False

    async def connect(self, credentials: Credentials) -> FakeSessionHandle:
        self.calls += 1
        if self.gate is not None:
            try:
                await self.gate.wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("transport init failed")
        handle = FakeSessionHandle()
        self.handles.append(handle)
        return handle

    @property
    def latest(self) -> FakeSessionHandle:
        return self.handles[-1]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        auth_dir=tmp_path / "auth",
        reconnect_delay_seconds=60.0,
        startup_retry_delay_seconds=60.0,
        send_timeout_seconds=5.0,
    )


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def container(settings: Settings, connector: FakeConnector) -> AppContainer:
    return build_container(settings, connector=connector)
