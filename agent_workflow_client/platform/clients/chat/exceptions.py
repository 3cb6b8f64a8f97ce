"""Custom exception hierarchy for the chat stream client.

This module defines a structured exception hierarchy for the conditions that
can end a chat stream: caller-initiated cancellation and transport failures
(network, HTTP status, framing and event decoding).
"""


class ChatClientError(Exception):
    """Base exception for all chat client errors."""


class ChatStreamCancelledError(ChatClientError):
    """Raised when the caller cancels a stream.

    This is not a failure. Events already delivered remain valid.
    """

    def __init__(self, url: str | None = None):
        self.url = url
        super().__init__(f"Stream cancelled{f' ({url})' if url else ''}")


class ChatTransportError(ChatClientError):
    """Raised when a stream breaks for any reason other than cancellation."""

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(f"{message}{f' [{url}]' if url else ''}")

    @property
    def cause(self) -> BaseException | None:
        """The underlying exception, if any."""
        return self.__cause__


class ChatConnectionError(ChatTransportError):
    """Raised when the connection to the backend fails or drops."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(f"Connection failed: {message}", url=url)


class ChatTimeoutError(ChatTransportError):
    """Raised when a request or stream read times out."""

    def __init__(self, message: str, timeout_seconds: float | None = None, url: str | None = None):
        self.timeout_seconds = timeout_seconds
        timeout_info = f" after {timeout_seconds}s" if timeout_seconds else ""
        super().__init__(f"Operation timed out{timeout_info}: {message}", url=url)


class ChatHTTPStatusError(ChatTransportError):
    """Raised when the backend answers with a non-success status."""

    def __init__(self, status_code: int, url: str | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Unexpected HTTP status {status_code}", url=url)


class ChatFramingError(ChatTransportError):
    """Raised when the byte stream violates the frame boundaries."""

    def __init__(self, message: str, buffered: str | None = None):
        self.buffered = buffered
        super().__init__(f"Framing error: {message}")


class ChatEventDecodeError(ChatTransportError):
    """Raised when a frame payload cannot be decoded for its declared kind."""

    def __init__(self, message: str, event_name: str, raw_payload: str):
        self.event_name = event_name
        self.raw_payload = raw_payload
        super().__init__(f"Cannot decode '{event_name}' event: {message}")
