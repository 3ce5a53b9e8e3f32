from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Mapping,
    TypedDict,
    cast,
)

from edgecache._core._headers import Headers
from edgecache._utils import make_async_iterator


def _empty_stream() -> AsyncIterator[bytes]:
    return make_async_iterator([])


class RequestMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "edgecache_" to avoid collisions with user data
    edgecache_refresh: bool
    """Set on requests replayed by a background refresh."""


@dataclass
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    stream: AsyncIterator[bytes] = field(default_factory=_empty_stream)
    metadata: RequestMetadata | Mapping[str, Any] = field(default_factory=dict)

    async def _aiter_stream(self) -> AsyncIterator[bytes]:
        if hasattr(self, "collected_body"):
            yield getattr(self, "collected_body")
            return
        if isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            async for chunk in self.stream:
                yield chunk
            return
        raise TypeError("Request stream is not an AsyncIterator")

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire request body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        collected = b"".join([chunk async for chunk in self._aiter_stream()])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected


class ResponseMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "edgecache_" to avoid collisions with user data
    edgecache_from_cache: bool
    """Indicates whether the body came from the store."""

    edgecache_stored: bool
    """Indicates whether the response was scheduled to be written to the store."""

    edgecache_purged: bool
    """Indicates whether the response triggered a generation bump."""

    edgecache_status: str
    """The status trail, the same text as the status header."""

    edgecache_generation: int | None
    """The generation used for the lookup, None when no lookup happened."""


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    stream: AsyncIterator[bytes] = field(default_factory=_empty_stream)
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)

    async def _aiter_stream(self) -> AsyncIterator[bytes]:
        if hasattr(self, "collected_body"):
            yield getattr(self, "collected_body")
            return
        if isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            async for chunk in self.stream:
                yield chunk
        else:
            raise TypeError("Response stream is not an AsyncIterator")

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire response body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        collected = b"".join([chunk async for chunk in self._aiter_stream()])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected


@dataclass(frozen=True)
class StoredResponse:
    """A response as it sits in the store: headers already rewritten for storage."""

    status_code: int
    headers: Headers
    body: bytes
    created_at: float = field(default_factory=time.time)

    def to_response(self) -> Response:
        return Response(
            status_code=self.status_code,
            headers=self.headers.copy(),
            stream=make_async_iterator([self.body]),
        )
