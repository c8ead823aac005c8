"""FastAPI application factory and process entry point."""

from __future__ import annotations

import logging
import socket

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from line_webhook import __version__
from line_webhook.config import Settings
from line_webhook.events import LoggingReporter, Reporter
from line_webhook.logging_config import configure_logging
from line_webhook.webhooks.handlers import register_webhook_routes

logger = logging.getLogger(__name__)


async def _http_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    # Unknown paths and wrong methods on known paths are both plain 404s
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not Found", status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


def create_app(settings: Settings | None = None, reporter: Reporter | None = None) -> FastAPI:
    """Build the webhook app.

    Args:
        settings: Process configuration; read from the environment if omitted.
        reporter: Signal sink; defaults to the operator log.
    """
    settings = settings or Settings()

    app = FastAPI(
        title="LINE Webhook Receiver",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.reporter = reporter or LoggingReporter()
    app.add_exception_handler(StarletteHTTPException, _http_error)

    register_webhook_routes(app)

    if settings.open_mode:
        if settings.line_strict_signature:
            logger.warning("LINE_CHANNEL_SECRET not set; strict mode will reject every webhook")
        else:
            logger.warning("LINE_CHANNEL_SECRET not set; signature verification is disabled (open mode)")
    return app


def _log_banner(settings: Settings) -> None:
    port = settings.webhook_port
    logger.info("LINE webhook server started: http://localhost:%d", port)
    logger.info("Webhook URL: http://localhost:%d/webhook", port)
    logger.info("Setup:")
    logger.info("  1. Run `ngrok http %d` in another terminal", port)
    logger.info("  2. Copy the ngrok HTTPS URL")
    logger.info("  3. LINE Developers console -> Messaging API -> set Webhook URL")
    logger.info("     e.g. https://xxxx.ngrok-free.app/webhook")
    logger.info("  4. Press 'Verify' to check connectivity")
    logger.info("  5. Add the bot as a friend; the user ID is logged here")
    logger.info("Waiting for events...")


class WebhookServer(uvicorn.Server):
    """uvicorn server that logs the setup banner once the socket is bound."""

    def __init__(self, config: uvicorn.Config, settings: Settings) -> None:
        super().__init__(config)
        self.settings = settings

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        # uvicorn sets started only after the listeners are up
        if self.started:
            _log_banner(self.settings)


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    config = uvicorn.Config(
        create_app(settings),
        host=settings.webhook_host,
        port=settings.webhook_port,
        log_config=None,
    )
    WebhookServer(config, settings).run()


if __name__ == "__main__":
    main()
