"""Frame decoding for the line-oriented event stream.

The backend streams server-sent-event style text: ``event:`` names a frame,
``data:`` lines carry its payload and a blank line terminates it. Decoding is
incremental so frames are emitted as soon as their terminating blank line has
been buffered, regardless of how the transport splits the bytes.
"""

import codecs
import re
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass

from agent_workflow_client.platform.clients.chat.exceptions import ChatFramingError

DEFAULT_EVENT = "message"

_LINE_END = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class Frame:
    """One decoded frame.

    Attributes:
        event: Declared event name, ``"message"`` when the frame names none.
        data: Payload text, multiple ``data:`` lines joined with ``\\n``.
        id: Value of the frame's ``id:`` field, if any.
    """

    event: str = DEFAULT_EVENT
    data: str = ""
    id: str | None = None


class FrameDecoder:
    """Incremental frame decoder.

    Feed it text as it arrives and collect the frames each call completes.
    Call ``close()`` once the source is exhausted to detect truncation.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._skip_lf = False
        self._event: str | None = None
        self._data: list[str] = []
        self._id: str | None = None
        self._has_fields = False

    @property
    def has_pending(self) -> bool:
        """True while a partial line or an unterminated frame is buffered."""
        return bool(self._buffer) or self._has_fields

    def feed(self, text: str) -> list[Frame]:
        """Consume a chunk of text.

        Args:
            text: The next chunk of the stream, split anywhere.

        Returns:
            Frames completed by this chunk, in stream order.
        """
        if not text:
            return []

        if self._skip_lf:
            # A chunk ended on "\r"; a leading "\n" here belongs to that line end
            self._skip_lf = False
            if text.startswith("\n"):
                text = text[1:]

        buffer = self._buffer + text
        frames: list[Frame] = []
        position = 0

        while True:
            match = _LINE_END.search(buffer, position)
            if match is None:
                break
            line = buffer[position : match.start()]
            position = match.end()
            if match.group() == "\r" and position == len(buffer):
                self._skip_lf = True
            frame = self._process_line(line)
            if frame is not None:
                frames.append(frame)

        self._buffer = buffer[position:]
        return frames

    def close(self) -> None:
        """Signal end of stream.

        Raises:
            ChatFramingError: If the stream ended inside a line or before the
                current frame's terminating blank line.
        """
        if self._buffer:
            raise ChatFramingError("stream ended inside a line", buffered=self._buffer)
        if self._has_fields:
            raise ChatFramingError(
                "stream ended before the frame was terminated",
                buffered="\n".join(self._data),
            )

    def _process_line(self, line: str) -> Frame | None:
        if line == "":
            return self._dispatch()

        if line.startswith(":"):
            return None

        name, separator, value = line.partition(":")
        if separator and value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event = value
            self._has_fields = True
        elif name == "data":
            self._data.append(value)
            self._has_fields = True
        elif name == "id":
            self._id = value
            self._has_fields = True
        return None

    def _dispatch(self) -> Frame | None:
        if not self._has_fields:
            return None

        frame = Frame(
            event=self._event or DEFAULT_EVENT,
            data="\n".join(self._data),
            id=self._id,
        )
        self._event = None
        self._data = []
        self._id = None
        self._has_fields = False
        return frame


def decode_frames(text: str) -> list[Frame]:
    """Decode a complete stream held in memory.

    Args:
        text: The whole stream.

    Returns:
        All frames in the stream.

    Raises:
        ChatFramingError: If the text ends with a truncated frame.
    """
    decoder = FrameDecoder()
    frames = decoder.feed(text)
    decoder.close()
    return frames


async def iter_frames(chunks: AsyncIterable[bytes | str]) -> AsyncIterator[Frame]:
    """Lazily decode frames from an async stream of chunks.

    Bytes are decoded as UTF-8 incrementally, so multi-byte characters may be
    split across chunks.

    Args:
        chunks: Raw response body chunks.

    Yields:
        Frames as soon as they are complete.

    Raises:
        ChatFramingError: On invalid UTF-8 or a truncated trailing frame.
    """
    decoder = FrameDecoder()
    utf8 = codecs.getincrementaldecoder("utf-8")()

    async for chunk in chunks:
        if isinstance(chunk, bytes):
            try:
                text = utf8.decode(chunk)
            except UnicodeDecodeError as e:
                raise ChatFramingError("invalid UTF-8 in stream") from e
        else:
            text = chunk
        for frame in decoder.feed(text):
            yield frame

    try:
        utf8.decode(b"", final=True)
    except UnicodeDecodeError as e:
        raise ChatFramingError("stream ended inside a UTF-8 sequence") from e

    decoder.close()
