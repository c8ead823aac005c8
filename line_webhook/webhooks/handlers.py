"""Webhook HTTP handlers: FastAPI routes for the LINE callback endpoint.

The webhook handler:
1. Reads the full raw body (needed for HMAC verification), bounded by a timeout
2. Verifies x-line-signature when the header is present
3. Decodes the envelope
4. Dispatches events in delivery order
5. Returns 200 {"status": "ok"}

Security contract:
- Return 403 only for signature failures; the body is never decoded then
- Return 200 even when the body cannot be decoded (LINE retries on non-2xx)
- Unsigned requests are accepted unless strict mode is on
- Log all webhook activity for audit trail
"""

from __future__ import annotations

import asyncio
import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from line_webhook.config import Settings
from line_webhook.events import Reporter
from line_webhook.webhooks.dispatcher import dispatch_events
from line_webhook.webhooks.envelope import EnvelopeDecodeError, decode_envelope
from line_webhook.webhooks.verification import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger(__name__)

HEALTH_TEXT = "LINE Webhook Server is running"


def _ok() -> JSONResponse:
    return JSONResponse({"status": "ok"}, status_code=200)


def _log_webhook(destination: str | None, events: int, status: str) -> None:
    """Audit log for webhook activity."""
    logger.info("WEBHOOK_AUDIT destination=%s events=%d status=%s", destination, events, status)


async def _read_body(request: Request, timeout: float) -> bytes | None:
    """Accumulate the whole body; None if the client is too slow."""
    try:
        return await asyncio.wait_for(request.body(), timeout=timeout)
    except asyncio.TimeoutError:
        return None


async def handle_webhook(request: Request) -> Response:
    """Run the verify -> decode -> dispatch pipeline for one callback.

    Exactly one response is returned on every path.
    """
    settings: Settings = request.app.state.settings
    reporter: Reporter = request.app.state.reporter
    start = time.time()

    body = await _read_body(request, settings.webhook_body_timeout)
    if body is None:
        logger.warning("Webhook body not received within %.1fs", settings.webhook_body_timeout)
        return PlainTextResponse("Request Timeout", status_code=408)

    signature = request.headers.get(SIGNATURE_HEADER)
    if signature is None and settings.line_strict_signature:
        logger.error("Signature header missing (strict mode)")
        _log_webhook(None, 0, "signature_missing")
        return PlainTextResponse("Invalid signature", status_code=403)

    if signature is not None and not verify_signature(
        settings.line_channel_secret,
        body,
        signature,
        allow_open_mode=not settings.line_strict_signature,
    ):
        logger.error("Signature verification failed")
        _log_webhook(None, 0, "signature_failed")
        return PlainTextResponse("Invalid signature", status_code=403)

    try:
        envelope = decode_envelope(body)
    except EnvelopeDecodeError as exc:
        logger.error("Failed to decode webhook body: %s", exc.reason)
        _log_webhook(None, 0, "invalid_body")
        # Acknowledge anyway so the platform does not retry
        return _ok()

    signals = dispatch_events(envelope.events, reporter)
    _log_webhook(envelope.destination, len(signals), "dispatched")

    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Webhook processed in %.1fms: %d event(s)", elapsed_ms, len(signals))
    return _ok()


def register_webhook_routes(app: FastAPI) -> None:
    """Register the health check and the webhook endpoint on the app."""

    @app.get("/")
    async def health():
        """Static health check, independent of the webhook pipeline."""
        return PlainTextResponse(HEALTH_TEXT)

    @app.post("/webhook")
    async def line_webhook(request: Request):
        """Receive LINE webhooks (signature-verified when signed)."""
        return await handle_webhook(request)

    logger.debug("Webhook routes registered: GET /, POST /webhook")
