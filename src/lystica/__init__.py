"""Lystica Cloud Python SDK - Contacts, companies, email sending and lists."""

import logging

from ._version import VERSION
from .client import LysticaClient
from .http import HttpClient, backoff_delay
from .types import ClientConfig, ErrorBody, Page, RequestSpec, WebhookEvent
from .webhook import WebhookVerifier
from .exceptions import (
    LysticaError,
    APIError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    RateLimitError,
    NetworkError,
    WebhookError,
    MissingHeadersError,
    InvalidTimestampError,
    SignatureMismatchError,
    MalformedPayloadError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = VERSION
__all__ = [
    "LysticaClient",
    "HttpClient",
    "backoff_delay",
    "ClientConfig",
    "ErrorBody",
    "Page",
    "RequestSpec",
    "WebhookEvent",
    "WebhookVerifier",
    "LysticaError",
    "APIError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    "RateLimitError",
    "NetworkError",
    "WebhookError",
    "MissingHeadersError",
    "InvalidTimestampError",
    "SignatureMismatchError",
    "MalformedPayloadError",
]
