"""Webhook verification and parsing utilities."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Mapping

from .exceptions import (
    InvalidTimestampError,
    MalformedPayloadError,
    MissingHeadersError,
    SignatureMismatchError,
)
from .types import WebhookEvent

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-lystica-signature"
TIMESTAMP_HEADER = "x-lystica-timestamp"
DEFAULT_TOLERANCE = 300

_REQUIRED_FIELDS = ("id", "type", "data", "createdAt")


def timing_safe_equal(a: str, b: str) -> bool:
    """Compare two strings in time independent of where they differ.

    A length mismatch returns early; equal-length inputs are always
    compared over their full length.
    """
    if len(a) != len(b):
        return False
    result = 0
    for x, y in zip(a, b):
        result |= ord(x) ^ ord(y)
    return result == 0


class WebhookVerifier:
    """Verify and parse Lystica webhook payloads.

    Example:
        ```python
        from lystica import WebhookVerifier, WebhookError

        verifier = WebhookVerifier(secret="whsec_your_signing_secret")

        # In your webhook handler (e.g., Flask/FastAPI)
        @app.post("/webhooks/lystica")
        def handle_webhook(request):
            signature, timestamp = WebhookVerifier.extract_headers(request.headers)
            body = request.get_data(as_text=True)

            try:
                event = verifier.verify(body, signature, timestamp)
            except WebhookError as e:
                return {"error": str(e)}, 400

            if event.type == "contact.created":
                print(f"New contact: {event.data['contactId']}")
            return {"status": "ok"}
        ```
    """

    def __init__(self, secret: str):
        """Initialize webhook verifier.

        Args:
            secret: Webhook signing secret from the Lystica dashboard.

        Raises:
            ValueError: If the secret is empty.
        """
        if not secret:
            raise ValueError(
                "WebhookVerifier: secret is required. "
                "Find it at https://lystica.cloud/dashboard/webhooks"
            )
        self._secret = secret

    def compute_signature(self, timestamp: str | int, raw_body: str) -> str:
        """Return the hex HMAC-SHA256 signature of ``"<timestamp>.<raw_body>"``."""
        message = f"{timestamp}.{raw_body}"
        return hmac.new(
            self._secret.encode(),
            message.encode(),
            hashlib.sha256,
        ).hexdigest()

    def verify(
        self,
        raw_body: str,
        signature: str,
        timestamp: str,
        tolerance: int = DEFAULT_TOLERANCE,
    ) -> WebhookEvent:
        """Verify the signature and parse the event payload.

        Args:
            raw_body: Raw request body, exactly as received.
            signature: Value of the ``x-lystica-signature`` header.
            timestamp: Value of the ``x-lystica-timestamp`` header.
            tolerance: Maximum age (and clock skew) in seconds (default: 300).

        Returns:
            The parsed event.

        Raises:
            MissingHeadersError: If signature or timestamp is empty.
            InvalidTimestampError: If the timestamp is unparsable or outside the tolerance.
            SignatureMismatchError: If the signature does not match.
            MalformedPayloadError: If the body is not a valid event.
        """
        if not signature or not timestamp:
            raise MissingHeadersError()

        try:
            ts = int(timestamp)
        except (TypeError, ValueError):
            raise InvalidTimestampError() from None

        now = int(time.time())
        if abs(now - ts) > tolerance:
            logger.warning("Rejected webhook with timestamp %d (now %d)", ts, now)
            raise InvalidTimestampError()

        expected = self.compute_signature(timestamp, raw_body)
        if not timing_safe_equal(signature, expected):
            logger.warning("Rejected webhook with invalid signature")
            raise SignatureMismatchError()

        return self._parse(raw_body)

    @staticmethod
    def _parse(raw_body: str) -> WebhookEvent:
        try:
            payload = json.loads(raw_body)
        except json.JSONDecodeError as e:
            raise MalformedPayloadError(f"Invalid JSON payload: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedPayloadError("Webhook payload must be a JSON object")
        for name in _REQUIRED_FIELDS:
            if name not in payload:
                raise MalformedPayloadError(f"Missing '{name}' field in payload")
        if not isinstance(payload["data"], dict):
            raise MalformedPayloadError("Webhook 'data' field must be a JSON object")

        return WebhookEvent.from_dict(payload)

    @staticmethod
    def extract_headers(headers: Mapping[str, str]) -> tuple[str, str]:
        """Extract webhook headers from a request.

        Args:
            headers: Request headers mapping.

        Returns:
            Tuple of (signature, timestamp).

        Raises:
            MissingHeadersError: If required headers are missing.
        """
        # Handle case-insensitive headers
        normalized = {k.lower(): v for k, v in headers.items()}

        signature = normalized.get(SIGNATURE_HEADER)
        timestamp = normalized.get(TIMESTAMP_HEADER)

        if not signature:
            raise MissingHeadersError("Missing X-Lystica-Signature header")
        if not timestamp:
            raise MissingHeadersError("Missing X-Lystica-Timestamp header")

        return signature, timestamp
