"""Webhook signature verification: base64 HMAC-SHA256 over the raw body.

Security contract:
- The digest is computed over the exact bytes received, never a re-serialized form
- Comparison uses hmac.compare_digest() (constant-time)
- Empty channel secret -> open mode: verification passes with a warning,
  unless strict mode asks for fail-closed
- Never raises for any body or signature content
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-line-signature"


def _as_bytes(secret: str | bytes) -> bytes:
    if isinstance(secret, bytes):
        return secret
    return secret.encode("utf-8")


def compute_signature(secret: str | bytes, body: bytes) -> str:
    """Return the x-line-signature value LINE would send for ``body``."""
    digest = hmac.new(_as_bytes(secret), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(
    secret: str | bytes,
    body: bytes,
    signature: str | None,
    *,
    allow_open_mode: bool = True,
) -> bool:
    """Verify a LINE webhook signature.

    LINE sends: x-line-signature header (base64-encoded HMAC-SHA256 of the
    request body, keyed with the channel secret).

    Args:
        secret: Channel secret. Empty means no secret is configured.
        body: Raw request body bytes
        signature: Value of the x-line-signature header, or None
        allow_open_mode: Accept everything when the secret is empty

    Returns:
        True if the signature is valid (or open mode is in effect)
    """
    if not secret:
        if allow_open_mode:
            logger.warning("LINE_CHANNEL_SECRET not set; skipping signature verification")
            return True
        logger.warning("LINE_CHANNEL_SECRET not set; rejecting webhook (strict mode)")
        return False
    if signature is None:
        return False

    expected = compute_signature(secret, body)
    try:
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii"))
    except UnicodeEncodeError:
        # A non-ASCII header value can never be a base64 digest
        return False
