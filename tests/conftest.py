from __future__ import annotations

import typing as t

import pytest

from edgecache import AsyncInMemoryStorage, Headers, Request, Response
from edgecache._utils import make_async_iterator


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def storage() -> AsyncInMemoryStorage:
    return AsyncInMemoryStorage()


def create_request(
    method: str = "GET",
    url: str = "https://example.com/page",
    headers: t.Optional[t.Dict[str, str]] = None,
) -> Request:
    """Helper to create a request."""
    return Request(method=method, url=url, headers=Headers(headers or {}))


def create_response(
    status_code: int = 200,
    headers: t.Optional[t.Dict[str, str]] = None,
    body: bytes = b"<html>page</html>",
) -> Response:
    """Helper to create a response."""
    return Response(
        status_code=status_code,
        headers=Headers(headers or {}),
        stream=make_async_iterator([body]),
    )


class FakeOrigin:
    """
    Records every request it receives and answers with the configured response.

    `responses` is consumed in order, the last one repeats.
    """

    def __init__(self, *responses: t.Tuple[int, t.Dict[str, str], bytes]) -> None:
        self.responses = list(responses) or [(200, {}, b"<html>page</html>")]
        self.requests: list[Request] = []

    async def __call__(self, request: Request) -> Response:
        self.requests.append(request)
        status_code, headers, body = self.responses[0] if len(self.responses) == 1 else self.responses.pop(0)
        return create_response(status_code, dict(headers), body)
