"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from wa_gateway.adapters.multi_file_credential_store import MultiFileCredentialStore
from wa_gateway.adapters.pyaileys_connector import PyaileysConnector
from wa_gateway.config import Settings
from wa_gateway.services.credentials import CredentialStore
from wa_gateway.services.gateway import MessageGateway
from wa_gateway.services.status import StatusRegistry
from wa_gateway.services.supervisor import SessionSupervisor, WhatsAppConnector


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    credential_store: CredentialStore
    registry: StatusRegistry
    supervisor: SessionSupervisor
    gateway: MessageGateway
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None,
    connector: WhatsAppConnector | None = None,
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    if connector is None:
        connector = PyaileysConnector()
    credential_store = MultiFileCredentialStore(resolved_settings.auth_dir)
    registry = StatusRegistry()
    supervisor = SessionSupervisor(
        connector=connector,
        credential_store=credential_store,
        registry=registry,
        reconnect_delay=resolved_settings.reconnect_delay_seconds,
        startup_retry_delay=resolved_settings.startup_retry_delay_seconds,
    )
    gateway = MessageGateway(
        sessions=supervisor,
        country_prefix=resolved_settings.country_prefix,
        messaging_domain=resolved_settings.messaging_domain,
        timeout_seconds=resolved_settings.send_timeout_seconds,
    )

    async def close_resources() -> None:
        await supervisor.shutdown()

    return AppContainer(
        settings=resolved_settings,
        credential_store=credential_store,
        registry=registry,
        supervisor=supervisor,
        gateway=gateway,
        close_resources=close_resources,
    )
