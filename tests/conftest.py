from __future__ import annotations

import hashlib
from collections.abc import Awaitable, Callable

import httpx
import pytest

Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]

HELLO = b"hello"
HELLO_SHA256 = hashlib.sha256(HELLO).digest()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def mirrors() -> Callable[[dict[str, Handler]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered per host by *routes*."""

    def _make(routes: dict[str, Handler]) -> httpx.AsyncClient:
        async def dispatch(request: httpx.Request) -> httpx.Response:
            return await routes[request.url.host](request)

        return httpx.AsyncClient(transport=httpx.MockTransport(dispatch))

    return _make
