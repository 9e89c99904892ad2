# ============================================================================
# RESPONSE CACHE
# ============================================================================
# STATUS: Infrastructure - Time-windowed health response cache
# PURPOSE: One real probe run per window, byte-exact replay to every caller
# ============================================================================
"""
Response Cache

Wraps an async responder (request -> Response) so that within each cache
window exactly one call reaches the downstream responder. Its status, raw
headers and body are buffered and every caller in the window gets a fresh
Response built from those bytes.

States:
    EMPTY  - nothing captured yet
    FRESH  - capture exists, age < duration
    STALE  - capture exists, age >= duration (next arrival re-captures)

Capture uses double-checked locking: a lock-free staleness check, then the
capture lock, then a check that the capture each caller saw on arrival is
still the published one. Callers that queued behind a capture replay its
result instead of capturing a second time, even when the downstream took
longer than the window itself. The new
capture and its window start are published together in one assignment once
the body is fully buffered, so nobody ever replays a partial response.

A failure while sending a replay belongs to that caller's Response object
and never touches the captured slot.

Usage:
    cached = cache_middleware(2.0)(healthz_responder)

    # or keep a handle on the cache
    cache = ResponseCache(duration=2.0)
    cached = cache.decorate(healthz_responder)
"""

import asyncio
import functools
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

from fastapi.responses import Response

from core.logging import ComponentType, get_logger

logger = get_logger(__name__, ComponentType.CACHE)

Responder = Callable[..., Awaitable[Response]]
Middleware = Callable[[Responder], Responder]
RawHeaders = Tuple[Tuple[bytes, bytes], ...]

_ERROR_BODY = b"Internal Server Error"


class CacheState(str, Enum):
    """Lifecycle of one cache window."""
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


@dataclass(frozen=True)
class CapturedResponse:
    """A downstream response buffered verbatim."""
    status_code: int
    raw_headers: RawHeaders
    body: bytes
    window_start: float

    def replay(self) -> Response:
        """Build a new Response carrying the captured bytes unchanged."""
        response = Response(content=self.body, status_code=self.status_code)
        response.raw_headers = list(self.raw_headers)
        return response

    @classmethod
    def server_error(cls, window_start: float) -> "CapturedResponse":
        return cls(
            status_code=500,
            raw_headers=(
                (b"content-length", str(len(_ERROR_BODY)).encode("latin-1")),
                (b"content-type", b"text/plain; charset=utf-8"),
            ),
            body=_ERROR_BODY,
            window_start=window_start,
        )


async def buffer_response(response: Response, window_start: float) -> CapturedResponse:
    """
    Buffer a response's status, headers and body.

    Streaming bodies are drained; a content-length header is added when the
    downstream did not send one.
    """
    headers: List[Tuple[bytes, bytes]] = list(response.raw_headers)
    body = getattr(response, "body", None)

    if body is None:
        chunks = []
        async for chunk in response.body_iterator:
            if isinstance(chunk, str):
                chunk = chunk.encode(response.charset)
            chunks.append(bytes(chunk))
        body = b"".join(chunks)
        if not any(key.lower() == b"content-length" for key, _ in headers):
            headers.append((b"content-length", str(len(body)).encode("latin-1")))

    if response.background is not None:
        await response.background()

    return CapturedResponse(
        status_code=response.status_code,
        raw_headers=tuple(headers),
        body=bytes(body),
        window_start=window_start,
    )


class ResponseCache:
    """
    Cache window for one wrapped responder.

    Scoped to one event loop and one process; nothing is persisted.
    """

    def __init__(
        self,
        duration: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            duration: Window length in seconds
            clock: Monotonic clock, injectable for tests
        """
        if duration < 0:
            raise ValueError(f"cache duration must not be negative, got {duration}")
        self.duration = duration
        self._clock = clock
        self._captured: Optional[CapturedResponse] = None
        self._capturing = False
        self._lock = asyncio.Lock()
        self.capture_count = 0

    @property
    def state(self) -> CacheState:
        if self._captured is None:
            return CacheState.EMPTY
        if self._is_stale(self._captured):
            return CacheState.STALE
        return CacheState.FRESH

    @property
    def capturing(self) -> bool:
        return self._capturing

    @property
    def captured(self) -> Optional[CapturedResponse]:
        return self._captured

    def decorate(self, responder: Responder) -> Responder:
        """Wrap a responder; the wrapper keeps the responder's signature."""

        @functools.wraps(responder)
        async def cached_responder(*args, **kwargs) -> Response:
            observed = self._captured
            if observed is None or self._is_stale(observed):
                async with self._lock:
                    # Re-check: anything published while we waited is the
                    # capture for our arrival, however long it took
                    if self._captured is observed:
                        await self._capture(responder, args, kwargs)

            return self._captured.replay()

        cached_responder.cache = self
        return cached_responder

    def _is_stale(self, captured: CapturedResponse) -> bool:
        return self._clock() - captured.window_start >= self.duration

    async def _capture(self, responder: Responder, args, kwargs) -> None:
        window_start = self._clock()
        self._capturing = True
        try:
            try:
                response = await responder(*args, **kwargs)
                captured = await buffer_response(response, window_start)
            except Exception:
                # Cached like any other downstream response until the window ends
                logger.exception("Downstream responder failed during capture")
                captured = CapturedResponse.server_error(window_start)

            self._captured = captured
            self.capture_count += 1
            logger.debug(
                f"Captured response {captured.status_code} "
                f"({len(captured.body)} bytes, window {self.duration}s)"
            )
        finally:
            self._capturing = False


def cache_middleware(
    duration: float,
    clock: Callable[[], float] = time.monotonic,
) -> Middleware:
    """
    Middleware caching health responses for ``duration`` seconds.

    Each responder it is applied to gets its own cache window.
    """
    def middleware(responder: Responder) -> Responder:
        return ResponseCache(duration, clock=clock).decorate(responder)
    return middleware


__all__ = [
    "CacheState",
    "CapturedResponse",
    "ResponseCache",
    "Responder",
    "Middleware",
    "buffer_response",
    "cache_middleware",
]
