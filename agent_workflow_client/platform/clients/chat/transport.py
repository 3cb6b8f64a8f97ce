"""Streaming transport session.

Opens the streaming POST request, attaches frame decoding and event typing to
the response body, and exposes the result as one forward-only async iterator
whose every wait races a caller-supplied cancellation token.
"""

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable
from typing import Any, TypeVar

import httpx

from agent_workflow_client.platform.clients.chat.events import ChatEvent, iter_events
from agent_workflow_client.platform.clients.chat.exceptions import (
    ChatConnectionError,
    ChatHTTPStatusError,
    ChatStreamCancelledError,
    ChatTimeoutError,
)
from agent_workflow_client.platform.clients.chat.framing import iter_frames
from agent_workflow_client.platform.observability import get_logger, record_event

logger = get_logger(__name__)

T = TypeVar("T")

_ERROR_BODY_LIMIT = 500


class CancellationToken:
    """Cooperative cancellation signal shared between a caller and a stream.

    Triggering the token makes the stream stop waiting for network data,
    release its connection and raise ``ChatStreamCancelledError``.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether ``cancel()`` has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._event.set()

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()

    def raise_if_cancelled(self, url: str | None = None) -> None:
        """Raise ``ChatStreamCancelledError`` if cancellation was requested."""
        if self.cancelled:
            raise ChatStreamCancelledError(url)


class ChatStreamSession:
    """Single-pass async iterator of typed events from one streaming request.

    The request is sent lazily on the first ``__anext__``. Once the stream
    ends, fails or is cancelled, the response is released and every later
    ``__anext__`` raises ``StopAsyncIteration``.
    """

    def __init__(
        self,
        httpx_client: httpx.AsyncClient,
        url: str,
        body: dict[str, Any],
        cancellation: CancellationToken | None = None,
        *,
        owns_client: bool = False,
    ):
        """Initialize the session.

        Args:
            httpx_client: HTTP client used to send the request.
            url: Full URL of the streaming endpoint.
            body: JSON request body.
            cancellation: Optional token that cancels the stream.
            owns_client: Close ``httpx_client`` together with the session.
        """
        self._client = httpx_client
        self._url = url
        self._body = body
        self._cancellation = cancellation or CancellationToken()
        self._owns_client = owns_client
        self._response: httpx.Response | None = None
        self._events: AsyncGenerator[ChatEvent, None] | None = None
        self._closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def closed(self) -> bool:
        """Whether the session has released its resources."""
        return self._closed

    def __aiter__(self) -> "ChatStreamSession":
        return self

    async def __anext__(self) -> ChatEvent:
        if self._closed:
            raise StopAsyncIteration

        try:
            self._cancellation.raise_if_cancelled(self._url)
            if self._events is None:
                await self._race(self._open())
            event = await self._race(self._next_event())
        except BaseException:
            await self.aclose()
            raise

        record_event(event.type)
        return event

    async def __aenter__(self) -> "ChatStreamSession":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the response and, if owned, the HTTP client."""
        if self._closed:
            return
        self._closed = True

        try:
            if self._events is not None:
                await self._events.aclose()
            if self._response is not None:
                await self._response.aclose()
        finally:
            if self._owns_client:
                await self._client.aclose()
        logger.debug("chat stream closed", url=self._url)

    async def _race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the cancellation token fires first."""
        task = asyncio.ensure_future(awaitable)
        cancelled = asyncio.ensure_future(self._cancellation.wait())
        try:
            await asyncio.wait({task, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not task.done():
                task.cancel()
                # Let the read unwind before the generator chain is closed
                await asyncio.wait({task})

        if self._cancellation.cancelled:
            if task.done() and not task.cancelled():
                # Retrieve the outcome so it is not reported as never retrieved
                task.exception()
            logger.info("chat stream cancelled", url=self._url)
            raise ChatStreamCancelledError(self._url)

        return task.result()

    async def _next_event(self) -> ChatEvent:
        assert self._events is not None
        return await self._events.__anext__()

    async def _open(self) -> None:
        request = self._client.build_request(
            "POST",
            self._url,
            json=self._body,
            headers={"Accept": "text/event-stream"},
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise ChatTimeoutError(str(e) or "request timed out", url=self._url) from e
        except httpx.HTTPError as e:
            raise ChatConnectionError(str(e) or type(e).__name__, url=self._url) from e

        self._response = response
        logger.debug("chat stream opened", url=self._url, status_code=response.status_code)

        if response.is_error:
            raise ChatHTTPStatusError(
                response.status_code,
                url=self._url,
                body=await self._read_error_body(response),
            )

        self._events = iter_events(iter_frames(self._read_chunks(response)))

    async def _read_chunks(self, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.TimeoutException as e:
            raise ChatTimeoutError(str(e) or "stream read timed out", url=self._url) from e
        except httpx.HTTPError as e:
            raise ChatConnectionError(str(e) or type(e).__name__, url=self._url) from e

    async def _read_error_body(self, response: httpx.Response) -> str | None:
        try:
            content = await response.aread()
        except httpx.HTTPError:
            return None
        return content.decode("utf-8", errors="replace")[:_ERROR_BODY_LIMIT]


def open_chat_stream(
    endpoint: str,
    body: dict[str, Any],
    cancellation: CancellationToken | None = None,
    *,
    httpx_client: httpx.AsyncClient | None = None,
    timeout_seconds: float = 60.0,
    read_timeout_seconds: float = 300.0,
) -> ChatStreamSession:
    """Open a streaming chat request.

    Nothing is sent until the returned session is first iterated.

    Args:
        endpoint: Full URL of the streaming endpoint.
        body: JSON request body.
        cancellation: Optional token that cancels the stream.
        httpx_client: Optional client to borrow; a private one is created
            (and closed with the session) otherwise.
        timeout_seconds: Connect/write/pool timeout for a private client.
        read_timeout_seconds: Read timeout for a private client.

    Returns:
        The session, an async iterator of ``ChatEvent``.
    """
    owns_client = httpx_client is None
    if httpx_client is None:
        httpx_client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_seconds,
                read=read_timeout_seconds,
                write=timeout_seconds,
                pool=timeout_seconds,
            ),
        )
    return ChatStreamSession(
        httpx_client,
        endpoint,
        body,
        cancellation,
        owns_client=owns_client,
    )
