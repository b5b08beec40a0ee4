"""Request engine: auth, timeouts, retries and error mapping for API calls."""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt

from ._version import VERSION
from .exceptions import (
    APIError,
    AuthenticationError,
    ForbiddenError,
    LysticaError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from .types import ClientConfig, ErrorBody, HttpMethod, QueryValue, RequestSpec

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({408, 502, 503, 504})

BACKOFF_BASE = 1.0
BACKOFF_CAP = 10.0
JITTER_MAX = 0.5

_STATUS_ERRORS: dict[int, type[APIError]] = {
    401: AuthenticationError,
    403: ForbiddenError,
    404: NotFoundError,
    422: ValidationError,
}


def backoff_delay(attempt: int, jitter: Callable[[], float] = random.random) -> float:
    """Seconds to wait before retrying after ``attempt`` failed attempts.

    Exponential from 1s, capped at 10s, plus up to 0.5s of jitter.
    ``jitter`` must return a float in ``[0, 1)``.
    """
    base = min(BACKOFF_BASE * 2**attempt, BACKOFF_CAP)
    return base + jitter() * JITTER_MAX


def build_query(params: Mapping[str, QueryValue] | None) -> dict[str, str]:
    """Drop unset parameters and coerce the rest to strings."""
    query: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            text = "true" if value else "false"
        else:
            text = str(value)
        if text == "":
            continue
        query[key] = text
    return query


def _parse_retry_after(headers: httpx.Headers) -> float | None:
    retry_after = headers.get("Retry-After")
    if not retry_after:
        return None
    try:
        seconds = float(retry_after)
    except ValueError:
        return None
    if not math.isfinite(seconds):
        return None
    return max(seconds, 0.0)


def _parse_error_body(response: httpx.Response) -> ErrorBody:
    try:
        data = response.json()
    except ValueError:
        return ErrorBody.fallback(response.status_code)
    return ErrorBody.from_json(data, response.status_code)


def _to_typed_error(response: httpx.Response, body: ErrorBody) -> APIError:
    status = response.status_code
    if status == 429:
        return RateLimitError(
            body.display_message,
            code=body.error_code,
            retry_after=_parse_retry_after(response.headers),
        )
    error_cls = _STATUS_ERRORS.get(status)
    if error_cls is not None:
        return error_cls(body.display_message, code=body.error_code)
    return APIError(body.display_message, status_code=status, code=body.error_code)


class _AttemptStatus(enum.Enum):
    SUCCESS = "success"
    TRANSIENT = "transient"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class _Outcome:
    status: _AttemptStatus
    value: Any = None
    error: LysticaError | None = None

    @classmethod
    def succeeded(cls, value: Any) -> _Outcome:
        return cls(_AttemptStatus.SUCCESS, value=value)

    @classmethod
    def transient(cls, error: LysticaError) -> _Outcome:
        return cls(_AttemptStatus.TRANSIENT, error=error)

    @classmethod
    def terminal(cls, error: LysticaError) -> _Outcome:
        return cls(_AttemptStatus.TERMINAL, error=error)


def _is_transient(outcome: _Outcome) -> bool:
    return outcome.status is _AttemptStatus.TRANSIENT


def _raise_pending(retry_state: RetryCallState) -> _Outcome:
    outcome = retry_state.outcome.result()
    raise outcome.error or NetworkError("Request failed after retries")


def _decode_success(response: httpx.Response) -> _Outcome:
    if response.status_code == 204 or not response.content:
        return _Outcome.succeeded(None)
    try:
        return _Outcome.succeeded(response.json())
    except ValueError as exc:
        # 2xx responses are never retried
        error = NetworkError(f"Invalid JSON in response: {exc}")
        error.__cause__ = exc
        return _Outcome.terminal(error)


class HttpClient:
    """Executes API calls with retries and typed errors.

    Example:
        ```python
        from lystica import ClientConfig, RequestSpec
        from lystica.http import HttpClient

        async with HttpClient(ClientConfig(api_key="lys_live_...")) as http:
            contacts = await http.execute(
                RequestSpec("GET", "/api/v1/contacts", params={"limit": 10})
            )
        ```

    Transient failures (408, 502, 503, 504, timeouts and transport errors)
    are retried up to ``config.max_retries`` times with exponential backoff.
    Every other non-2xx response is raised immediately as an ``APIError``
    subclass.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        jitter: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the engine.

        Args:
            config: Connection settings.
            jitter: Source of backoff jitter in ``[0, 1)``. Defaults to ``random.random``.
            sleep: Coroutine used to wait between attempts. Defaults to ``asyncio.sleep``.
            transport: Optional httpx transport, mainly for tests.
        """
        self.api_key = config.api_key
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout
        self.max_retries = config.max_retries
        self._jitter = jitter or random.random
        self._sleep = sleep or asyncio.sleep

        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": f"lystica-python/{VERSION}",
                "X-SDK-Version": VERSION,
            },
            timeout=self.timeout,
            transport=transport,
        )

    def build_url(self, path: str, params: Mapping[str, QueryValue] | None = None) -> httpx.URL:
        """Resolve ``path`` against the base URL and attach the query string."""
        url = httpx.URL(self.base_url).join(path)
        query = build_query(params)
        if query:
            url = url.copy_merge_params(query)
        return url

    async def request(
        self,
        method: HttpMethod,
        path: str,
        *,
        params: Mapping[str, QueryValue] | None = None,
        json: Any | None = None,
    ) -> Any:
        """Make an API request."""
        return await self.execute(RequestSpec(method=method, path=path, params=params, body=json))

    async def execute(self, spec: RequestSpec) -> Any:
        """Run ``spec`` to completion.

        Returns:
            The decoded JSON body, or ``None`` for 204 and empty 2xx responses.

        Raises:
            APIError: On a non-2xx response that is not retried, or once retries run out.
            NetworkError: On timeouts and transport failures once retries run out,
                or on a 2xx response whose body is not valid JSON.
        """
        url = self.build_url(spec.path, spec.params)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._backoff,
            retry=retry_if_result(_is_transient),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            retry_error_callback=_raise_pending,
        )
        outcome = await retrying(self._attempt, spec, url)

        if outcome.status is _AttemptStatus.TERMINAL:
            raise outcome.error
        return outcome.value

    def _backoff(self, retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number - 1, self._jitter)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        spec, url = retry_state.args
        logger.warning(
            "%s %s failed (%s), retrying in %.2fs (attempt %d/%d)",
            spec.method,
            url,
            retry_state.outcome.result().error,
            retry_state.next_action.sleep,
            retry_state.attempt_number,
            self.max_retries + 1,
        )

    async def _attempt(self, spec: RequestSpec, url: httpx.URL) -> _Outcome:
        try:
            response = await asyncio.wait_for(self._send(spec, url), timeout=self.timeout)
        except LysticaError as exc:
            return _Outcome.terminal(exc)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            error = NetworkError("Request timed out", timed_out=True)
            error.__cause__ = exc
            return _Outcome.transient(error)
        except Exception as exc:
            error = NetworkError(f"Network error: {exc}")
            error.__cause__ = exc
            return _Outcome.transient(error)

        logger.debug("%s %s -> %d", spec.method, url, response.status_code)
        if response.is_success:
            return _decode_success(response)

        error = _to_typed_error(response, _parse_error_body(response))
        if response.status_code in RETRYABLE_STATUS:
            return _Outcome.transient(error)
        return _Outcome.terminal(error)

    async def _send(self, spec: RequestSpec, url: httpx.URL) -> httpx.Response:
        if spec.body is None:
            return await self._client.request(spec.method, url)
        return await self._client.request(spec.method, url, json=spec.body)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
