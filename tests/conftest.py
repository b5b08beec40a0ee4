"""Shared fixtures."""

from typing import Callable

import pytest

from lystica import ClientConfig, HttpClient, LysticaClient

BASE_URL = "https://api.test.lystica.cloud"
API_KEY = "lys_live_test123"


@pytest.fixture
def sleeps() -> list[float]:
    """Backoff delays requested by engines built with ``make_http``."""
    return []


@pytest.fixture
def make_http(sleeps: list[float]) -> Callable[..., HttpClient]:
    """Build an engine with zero jitter whose backoff sleeps are recorded, not slept."""

    def _make(max_retries: int = 0, timeout: float = 30.0, **kwargs) -> HttpClient:
        config = ClientConfig(
            api_key=API_KEY,
            base_url=BASE_URL,
            timeout=timeout,
            max_retries=max_retries,
        )

        async def _record(seconds: float) -> None:
            sleeps.append(seconds)

        return HttpClient(config, jitter=lambda: 0.0, sleep=_record, **kwargs)

    return _make


@pytest.fixture
def client() -> LysticaClient:
    return LysticaClient(api_key=API_KEY, base_url=BASE_URL, max_retries=0)
