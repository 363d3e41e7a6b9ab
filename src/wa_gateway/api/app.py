"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse

from wa_gateway.api.models import SendMessageRequest, StatusResponse
from wa_gateway.api.status_page import render_status_page
from wa_gateway.app_logging import configure_logging
from wa_gateway.containers import AppContainer
from wa_gateway.domain.errors import (
    NotReadyError,
    SendError,
    UnregisteredRecipientError,
    ValidationError,
)
from wa_gateway.domain.status import AwaitingScan, Connected, LoggedOut, state_name


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        await state_container.supervisor.start()
        try:
            yield
        finally:
            await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(RequestValidationError)
    async def invalid_body(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Invalid request body"},
        )

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        """Landing page with connection status and pairing QR."""
        registry = request.app.state.container.registry
        return HTMLResponse(
            render_status_page(registry.read(), registry.uptime_seconds())
        )

    @app.get("/status")
    async def connection_status(request: Request) -> StatusResponse:
        """Return the bot connection status."""
        registry = request.app.state.container.registry
        current = registry.read()
        return StatusResponse(
            status="connected" if isinstance(current, Connected) else "disconnected",
            state=state_name(current),
            qrRequired=isinstance(current, AwaitingScan),
            botNumber=current.bot_id if isinstance(current, Connected) else None,
            uptime=registry.uptime_seconds(),
        )

    @app.get("/qr")
    async def qr_code(request: Request) -> dict[str, object]:
        """Return the pending pairing QR payload, if any."""
        current = request.app.state.container.registry.read()
        if isinstance(current, AwaitingScan):
            return {
                "success": True,
                "qr": current.qr_payload,
                "message": "Scan this QR code with WhatsApp",
            }
        if isinstance(current, Connected):
            message = "Already connected"
        elif isinstance(current, LoggedOut):
            message = "Logged out. Delete the credentials directory and restart."
        else:
            message = "QR not available yet"
        return {"success": False, "message": message}

    @app.post("/send-message")
    async def send_message(
        body: SendMessageRequest, request: Request
    ) -> JSONResponse:
        """Send a text message to a WhatsApp number."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.gateway.send(body.phone, body.message)
        except ValidationError as exc:
            return _error(status.HTTP_400_BAD_REQUEST, str(exc))
        except NotReadyError as exc:
            return _error(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                str(exc),
                hint="Please scan QR code first",
            )
        except UnregisteredRecipientError as exc:
            return _error(status.HTTP_404_NOT_FOUND, str(exc))
        except SendError as exc:
            logger.warning("Send failed: %s", exc)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
        return JSONResponse(
            {
                "success": True,
                "message": "Message sent successfully",
                "to": result.normalized_phone,
                "messageId": result.message_id,
            }
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok", "timestamp": datetime.now(tz=UTC).isoformat()}

    return app


def _error(status_code: int, message: str, **extra: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
    )
