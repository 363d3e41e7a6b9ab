"""Tests for status values and the status registry."""

import threading
from datetime import UTC, datetime

from wa_gateway.domain.events import bot_id_from_jid
from wa_gateway.domain.status import (
    AwaitingScan,
    Connected,
    Disconnected,
    LoggedOut,
    state_name,
)
from wa_gateway.services.status import StatusRegistry


def test_registry_starts_disconnected() -> None:
    registry = StatusRegistry()

    assert registry.read() == Disconnected()
    assert registry.uptime_seconds() >= 0


def test_registry_keeps_latest_write() -> None:
    registry = StatusRegistry()
    registry.write(AwaitingScan(qr_payload="qr", issued_at=datetime.now(tz=UTC)))
    registry.write(Connected(bot_id="620000000000"))

    assert registry.read() == Connected(bot_id="620000000000")


def test_registry_concurrent_access() -> None:
    registry = StatusRegistry()
    seen: list[object] = []

    def writer() -> None:
        for index in range(500):
            registry.write(Connected(bot_id=str(index)))

    def reader() -> None:
        for _ in range(500):
            seen.append(registry.read())

    threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(isinstance(s, Disconnected | Connected) for s in seen)
    assert registry.read() == Connected(bot_id="499")


def test_state_names() -> None:
    now = datetime.now(tz=UTC)
    assert state_name(Disconnected()) == "disconnected"
    assert state_name(AwaitingScan(qr_payload="qr", issued_at=now)) == "awaiting_scan"
    assert state_name(Connected(bot_id="62")) == "connected"
    assert state_name(LoggedOut()) == "logged_out"


def test_bot_id_from_jid() -> None:
    assert bot_id_from_jid("6281234567890:12@s.whatsapp.net") == "6281234567890"
    assert bot_id_from_jid("6281234567890@s.whatsapp.net") == "6281234567890"
    assert bot_id_from_jid("6281234567890") == "6281234567890"
