"""Command-line entrypoint that serves the API with uvicorn."""

import logging

import uvicorn

from wa_gateway.api.app import create_app
from wa_gateway.app_logging import configure_logging
from wa_gateway.config import Settings
from wa_gateway.containers import build_container


def main() -> None:
    """Build the application and serve it until a termination signal."""
    configure_logging()
    logger = logging.getLogger(__name__)
    settings = Settings()
    app = create_app(build_container(settings))
    logger.info("Server running on port %s", settings.port)
    logger.info("Public URL: %s", settings.public_url or "localhost")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
