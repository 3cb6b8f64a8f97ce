"""Unit tests for the streaming transport session."""

import asyncio
import json

import httpx
import pytest
import respx

from agent_workflow_client.platform.clients.chat.events import EndOfAgentEvent, MessageEvent, StartOfAgentEvent
from agent_workflow_client.platform.clients.chat.exceptions import (
    ChatConnectionError,
    ChatEventDecodeError,
    ChatFramingError,
    ChatHTTPStatusError,
    ChatStreamCancelledError,
    ChatTimeoutError,
    ChatTransportError,
)
from agent_workflow_client.platform.clients.chat.transport import (
    CancellationToken,
    ChatStreamSession,
    open_chat_stream,
)

URL = "http://backend.test/api/chat/stream"

START = b'event: start_of_agent\ndata: {"agent_id": "a1", "agent_name": "researcher"}\n\n'
MESSAGE = b'event: message\ndata: {"agent_id": "a1", "delta": {"content": "hi"}}\n\n'
END = b'event: end_of_agent\ndata: {"agent_id": "a1"}\n\n'


def _session(handler, cancellation=None, body=None) -> ChatStreamSession:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ChatStreamSession(client, URL, body or {"messages": []}, cancellation, owns_client=True)


async def _drain(session):
    return [event async for event in session]


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_starts_not_cancelled(self):
        """Test initial state."""
        assert not CancellationToken().cancelled

    def test_cancel_is_idempotent(self):
        """Test cancelling twice."""
        token = CancellationToken()

        token.cancel()
        token.cancel()

        assert token.cancelled

    def test_raise_if_cancelled(self):
        """Test the error carries the url."""
        token = CancellationToken()
        token.raise_if_cancelled(URL)
        token.cancel()

        with pytest.raises(ChatStreamCancelledError) as exc_info:
            token.raise_if_cancelled(URL)

        assert exc_info.value.url == URL

    async def test_wait_returns_after_cancel(self):
        """Test waiters are released."""
        token = CancellationToken()
        asyncio.get_running_loop().call_soon(token.cancel)

        await asyncio.wait_for(token.wait(), timeout=1)


class TestChatStreamSession:
    """Tests for ChatStreamSession."""

    async def test_yields_typed_events_in_order(self):
        """Test a complete stream."""
        session = _session(lambda request: httpx.Response(200, content=START + MESSAGE + END))

        events = await _drain(session)

        assert [type(event) for event in events] == [StartOfAgentEvent, MessageEvent, EndOfAgentEvent]
        assert events[1].data.delta.content == "hi"
        assert session.closed

    async def test_events_split_across_chunks(self):
        """Test frames split at arbitrary byte positions."""
        raw = START + MESSAGE + END

        async def body():
            for i in range(0, len(raw), 7):
                yield raw[i : i + 7]

        session = _session(lambda request: httpx.Response(200, content=body()))

        events = await _drain(session)

        assert len(events) == 3

    async def test_sends_post_with_json_body(self):
        """Test the request method, body and headers."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            seen["accept"] = request.headers["accept"]
            return httpx.Response(200, content=END)

        await _drain(_session(handler, body={"messages": [{"role": "user", "content": "q"}]}))

        assert seen == {
            "method": "POST",
            "body": {"messages": [{"role": "user", "content": "q"}]},
            "accept": "text/event-stream",
        }

    async def test_request_is_sent_lazily(self):
        """Test nothing is sent before the first event is requested."""
        handler_calls = []

        def handler(request):
            handler_calls.append(request)
            return httpx.Response(200, content=END)

        session = _session(handler)
        assert handler_calls == []

        await session.__anext__()

        assert len(handler_calls) == 1
        await session.aclose()

    async def test_exhausted_session_stays_exhausted(self):
        """Test iteration after the end."""
        session = _session(lambda request: httpx.Response(200, content=END))
        await _drain(session)

        with pytest.raises(StopAsyncIteration):
            await session.__anext__()

    async def test_http_error_status(self):
        """Test a non-success response."""
        session = _session(lambda request: httpx.Response(503, text="overloaded"))

        with pytest.raises(ChatHTTPStatusError) as exc_info:
            await session.__anext__()

        assert exc_info.value.status_code == 503
        assert exc_info.value.body == "overloaded"
        assert session.closed

    async def test_connection_failure(self):
        """Test the backend cannot be reached."""

        def handler(request):
            raise httpx.ConnectError("connection refused")

        session = _session(handler)

        with pytest.raises(ChatConnectionError) as exc_info:
            await session.__anext__()

        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        assert session.closed

    async def test_timeout(self):
        """Test a request timeout."""

        def handler(request):
            raise httpx.ReadTimeout("too slow")

        with pytest.raises(ChatTimeoutError):
            await _drain(_session(handler))

    async def test_connection_dropped_mid_stream(self):
        """Test events before the drop are delivered, then the error is raised."""

        async def body():
            yield START
            raise httpx.ReadError("connection reset")

        session = _session(lambda request: httpx.Response(200, content=body()))
        received = []

        with pytest.raises(ChatConnectionError):
            async for event in session:
                received.append(event)

        assert [event.type for event in received] == ["start_of_agent"]
        assert session.closed

    async def test_truncated_frame(self):
        """Test a stream ending in the middle of a frame."""
        session = _session(lambda request: httpx.Response(200, content=START + b"event: message\ndata: {"))

        assert isinstance(await session.__anext__(), StartOfAgentEvent)
        with pytest.raises(ChatFramingError):
            await session.__anext__()

    async def test_undecodable_payload(self):
        """Test a frame whose payload is not valid JSON."""
        session = _session(lambda request: httpx.Response(200, content=b"event: message\ndata: {oops\n\n"))

        with pytest.raises(ChatEventDecodeError):
            await session.__anext__()

    async def test_cancelled_before_first_event(self):
        """Test a token cancelled before iteration starts."""
        handler_calls = []

        def handler(request):
            handler_calls.append(request)
            return httpx.Response(200, content=END)

        token = CancellationToken()
        token.cancel()
        session = _session(handler, cancellation=token)

        with pytest.raises(ChatStreamCancelledError):
            await session.__anext__()

        assert handler_calls == []
        assert session.closed

    async def test_cancel_while_waiting_for_data(self):
        """Test cancellation interrupts a read that would never complete."""
        released = asyncio.Event()

        async def body():
            try:
                yield START
                await asyncio.Event().wait()
            finally:
                released.set()

        token = CancellationToken()
        session = _session(lambda request: httpx.Response(200, content=body()), cancellation=token)

        first = await session.__anext__()
        asyncio.get_running_loop().call_later(0.05, token.cancel)

        with pytest.raises(ChatStreamCancelledError) as exc_info:
            await asyncio.wait_for(session.__anext__(), timeout=5)

        assert isinstance(first, StartOfAgentEvent)
        assert not isinstance(exc_info.value, ChatTransportError)
        assert released.is_set()
        assert session.closed

    async def test_closing_as_context_manager(self):
        """Test leaving the context releases the session."""
        async with _session(lambda request: httpx.Response(200, content=START + END)) as session:
            await session.__anext__()

        assert session.closed
        with pytest.raises(StopAsyncIteration):
            await session.__anext__()

    async def test_borrowed_client_is_not_closed(self):
        """Test a session leaves a client it does not own open."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=END)))
        session = ChatStreamSession(client, URL, {})

        await _drain(session)

        assert not client.is_closed
        await client.aclose()


class TestOpenChatStream:
    """Tests for open_chat_stream."""

    @respx.mock
    async def test_private_client_is_closed_with_session(self):
        """Test the session owns and closes the client it created."""
        route = respx.post(URL).mock(return_value=httpx.Response(200, content=START + END))

        session = open_chat_stream(URL, {"messages": []})
        events = await _drain(session)

        assert route.called
        assert [event.type for event in events] == ["start_of_agent", "end_of_agent"]
        assert session._client.is_closed

    async def test_borrowed_client(self):
        """Test a passed-in client is used and left open."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=END)))

        session = open_chat_stream(URL, {}, httpx_client=client)
        await _drain(session)

        assert session._client is client
        assert not client.is_closed
        await client.aclose()
