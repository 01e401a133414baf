"""Webhook signature verification for inbound help-desk calls.

The provider signs every webhook with a base64-encoded HMAC-SHA256 of the raw
request body, keyed by a per-integration shared secret. The signature must be
computed over the exact bytes received, never over re-serialized JSON.
"""

import base64
import hashlib
import hmac
import logging
from typing import Awaitable, Callable, Optional, Union

from fastapi import HTTPException, Request, status

from helpdesk_oauth.config import DEFAULT_WEBHOOK_SIGNATURE_HEADER
from helpdesk_oauth.models import WebhookEnvelope

logger = logging.getLogger(__name__)

Payload = Union[bytes, bytearray, str]


def _to_bytes(payload: Payload) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise TypeError(f"Webhook payload must be bytes or str, not {type(payload).__name__}")


class WebhookSignatureVerifier:
    """HMAC-SHA256/base64 signature validator. Pure and thread-safe."""

    hash_func = hashlib.sha256

    def sign(self, payload: Payload, secret: str) -> str:
        """Generate the signature the provider would send for ``payload``."""
        digest = hmac.new(secret.encode("utf-8"), _to_bytes(payload), self.hash_func).digest()
        return base64.b64encode(digest).decode("ascii")

    def verify(self, payload: Payload, signature: Optional[str], secret: Optional[str]) -> bool:
        """Validate ``signature`` against the payload.

        Args:
            payload: Raw request body; ``str`` is UTF-8 encoded
            signature: Signature header value
            secret: Shared webhook secret

        Returns:
            True only on an exact match. Any malformed input or internal
            error yields False.
        """
        if not signature or not secret:
            return False

        try:
            expected = self.sign(payload, secret).encode("ascii")
            received = signature.encode("utf-8") if isinstance(signature, str) else bytes(signature)
            return hmac.compare_digest(received, expected)
        except Exception as e:
            logger.warning("Webhook signature verification error: %s", type(e).__name__)
            return False

    def verify_envelope(self, envelope: WebhookEnvelope, secret: Optional[str]) -> bool:
        return self.verify(envelope.body, envelope.signature, secret)


def webhook_signature_guard(
    secret: str,
    signature_header: str = DEFAULT_WEBHOOK_SIGNATURE_HEADER,
    verifier: Optional[WebhookSignatureVerifier] = None,
) -> Callable[[Request], Awaitable[WebhookEnvelope]]:
    """Create a FastAPI dependency that rejects unsigned or forged webhooks.

    Args:
        secret: Shared webhook secret for this integration
        signature_header: Header carrying the signature (case-insensitive)
        verifier: Optional custom verifier

    Returns:
        Dependency resolving to the verified :class:`WebhookEnvelope`

    Examples:
        ```python
        guard = webhook_signature_guard(secret=settings.webhook_secret)

        @app.post("/webhooks/helpdesk")
        async def receive(envelope: WebhookEnvelope = Depends(guard)):
            event = json.loads(envelope.body)
            ...
        ```
    """
    if not secret:
        raise ValueError("A webhook secret is required")
    verifier = verifier or WebhookSignatureVerifier()

    async def verify_webhook_request(request: Request) -> WebhookEnvelope:
        signature = request.headers.get(signature_header)
        if not signature:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Missing signature header: {signature_header}",
            )

        envelope = WebhookEnvelope(body=await request.body(), signature=signature)
        if not verifier.verify_envelope(envelope, secret):
            logger.warning("Rejected webhook with invalid signature from %s", request.client.host if request.client else "unknown")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid webhook signature",
            )
        return envelope

    return verify_webhook_request
