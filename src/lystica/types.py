"""Data types shared by the request engine, webhooks and resources."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, Mapping, TypeVar, Union

DEFAULT_BASE_URL = "https://api.lystica.cloud"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 2

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
QueryValue = Union[str, int, float, bool, None]

T = TypeVar("T")


@dataclass(frozen=True)
class RequestSpec:
    """A single logical API call.

    Query parameters whose value is ``None`` or an empty string are dropped
    before the request goes on the wire.
    """

    method: HttpMethod
    path: str
    params: Mapping[str, QueryValue] | None = None
    body: Any | None = None


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for one engine instance.

    Args:
        api_key: Lystica API key, sent as a bearer token.
        base_url: API base address. Trailing slashes are stripped.
        timeout: Per-attempt timeout in seconds.
        max_retries: Retries on transient failures, on top of the first attempt.
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", (self.base_url or DEFAULT_BASE_URL).rstrip("/"))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from ``LYSTICA_*`` environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            api_key=env.get("LYSTICA_API_KEY", ""),
            base_url=env.get("LYSTICA_BASE_URL", DEFAULT_BASE_URL),
            timeout=float(env.get("LYSTICA_TIMEOUT", DEFAULT_TIMEOUT)),
            max_retries=int(env.get("LYSTICA_MAX_RETRIES", DEFAULT_MAX_RETRIES)),
        )


@dataclass(frozen=True)
class ErrorBody:
    """Parsed payload of a non-2xx response."""

    error: str
    message: str | None = None
    code: str | None = None

    @classmethod
    def fallback(cls, status_code: int) -> ErrorBody:
        return cls(error=f"HTTP {status_code}")

    @classmethod
    def from_json(cls, data: Any, status_code: int) -> ErrorBody:
        if not isinstance(data, dict):
            return cls.fallback(status_code)
        return cls(
            error=str(data.get("error") or f"HTTP {status_code}"),
            message=data.get("message"),
            code=data.get("code"),
        )

    @property
    def display_message(self) -> str:
        return self.message or self.error

    @property
    def error_code(self) -> str:
        return self.code or self.error


@dataclass
class WebhookEvent:
    """A verified webhook event."""

    id: str
    type: str
    data: dict[str, Any]
    created_at: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> WebhookEvent:
        return cls(
            id=payload["id"],
            type=payload["type"],
            data=payload["data"],
            created_at=payload["createdAt"],
        )


@dataclass
class Page(Generic[T]):
    """One page of a cursor-paginated list response."""

    data: list[T] = field(default_factory=list)
    total: int = 0
    limit: int = 0
    cursor: str | None = None
    has_more: bool = False

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> Page[Any]:
        meta = response.get("meta") or {}
        return cls(
            data=list(response.get("data") or []),
            total=meta.get("total", 0),
            limit=meta.get("limit", 0),
            cursor=meta.get("cursor"),
            has_more=meta.get("hasMore", False),
        )
