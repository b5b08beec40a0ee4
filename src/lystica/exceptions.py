"""Lystica SDK exceptions."""

from __future__ import annotations


class LysticaError(Exception):
    """Base exception for the Lystica SDK."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class APIError(LysticaError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class AuthenticationError(APIError):
    """Raised when authentication fails (401)."""

    def __init__(self, message: str = "Authentication required", code: str | None = None):
        super().__init__(message, status_code=401, code=code)


class ForbiddenError(APIError):
    """Raised when access is denied (403)."""

    def __init__(self, message: str = "Access denied", code: str | None = None):
        super().__init__(message, status_code=403, code=code)


class NotFoundError(APIError):
    """Raised when a resource is not found (404)."""

    def __init__(self, message: str = "Resource not found", code: str | None = None):
        super().__init__(message, status_code=404, code=code)


class ValidationError(APIError):
    """Raised when request validation fails (422)."""

    def __init__(self, message: str = "Invalid request", code: str | None = None):
        super().__init__(message, status_code=422, code=code)


class RateLimitError(APIError):
    """Raised when rate limit is exceeded (429)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        code: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, status_code=429, code=code)
        self.retry_after = retry_after


class NetworkError(LysticaError):
    """Raised when the request never produced an HTTP response.

    Covers timeouts, connection and DNS failures, and exhausted retries.
    """

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out


class WebhookError(LysticaError, ValueError):
    """Base exception for webhook verification failures."""


class MissingHeadersError(WebhookError):
    """Raised when the signature or timestamp header is absent."""

    def __init__(self, message: str = "Missing webhook signature or timestamp headers"):
        super().__init__(message)


class InvalidTimestampError(WebhookError):
    """Raised when the timestamp is unparsable or outside the tolerance window."""

    def __init__(
        self,
        message: str = (
            "Webhook timestamp is too old or invalid. "
            "This could indicate a replay attack."
        ),
    ):
        super().__init__(message)


class SignatureMismatchError(WebhookError):
    """Raised when the signature does not match the payload."""

    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__(message)


class MalformedPayloadError(WebhookError):
    """Raised when a correctly signed body is not a valid event."""
