from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import httpx
import pytest

from arequest import ClientConfig, Request

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

TEST_URL = "https://api.example.com/data"


@pytest.fixture
def mock_sleep() -> Generator[Mock, None, None]:
    """Patch time.sleep to make tests run faster."""
    with patch("time.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture(autouse=True)
def mock_random() -> Generator[Mock, None, None]:
    """Patch random.uniform to make jitter deterministic in tests."""
    with patch("arequest.utils.random.uniform", return_value=0.0) as mock:
        yield mock


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Return a factory of requests answered by a mock transport
    handler."""

    def factory(
        handler: Callable[[httpx.Request], httpx.Response], url: str = TEST_URL
    ) -> Request:
        return Request(url, config=ClientConfig(transport=httpx.MockTransport(handler)))

    return factory


@pytest.fixture
def respond(make_request: Callable[..., Request]) -> Callable[..., Request]:
    """Return a factory of requests always answered with the same
    response."""

    def factory(status_code: int = 200, content: bytes | str = b"", **kwargs) -> Request:
        if isinstance(content, str):
            content = content.encode("utf-8")
        return make_request(
            lambda request: httpx.Response(status_code, content=content, **kwargs)
        )

    return factory
