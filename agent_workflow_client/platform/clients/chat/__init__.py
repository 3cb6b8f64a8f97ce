"""Chat client module for the orchestration backend's streaming API.

The module includes:
- Frame decoding of the line-oriented event stream
- Typed chat events (closed union plus an unknown variant)
- A cancellable, single-pass transport session
- The team member catalog lookup
"""

from agent_workflow_client.platform.clients.chat.catalog import TeamMember, TeamMemberCatalog
from agent_workflow_client.platform.clients.chat.client import ChatClient, ChatParams, build_chat_body
from agent_workflow_client.platform.clients.chat.config import ChatClientConfig
from agent_workflow_client.platform.clients.chat.events import ChatEvent, ChatEventType, SessionMessage, to_chat_event
from agent_workflow_client.platform.clients.chat.exceptions import (
    ChatClientError,
    ChatConnectionError,
    ChatEventDecodeError,
    ChatFramingError,
    ChatHTTPStatusError,
    ChatStreamCancelledError,
    ChatTimeoutError,
    ChatTransportError,
)
from agent_workflow_client.platform.clients.chat.framing import Frame, FrameDecoder, iter_frames
from agent_workflow_client.platform.clients.chat.transport import (
    CancellationToken,
    ChatStreamSession,
    open_chat_stream,
)

__all__ = [
    # Client
    "ChatClient",
    "ChatClientConfig",
    "ChatParams",
    "build_chat_body",
    # Catalog
    "TeamMember",
    "TeamMemberCatalog",
    # Framing and events
    "ChatEvent",
    "ChatEventType",
    "Frame",
    "FrameDecoder",
    "SessionMessage",
    "iter_frames",
    "to_chat_event",
    # Transport
    "CancellationToken",
    "ChatStreamSession",
    "open_chat_stream",
    # Exceptions
    "ChatClientError",
    "ChatStreamCancelledError",
    "ChatTransportError",
    "ChatConnectionError",
    "ChatTimeoutError",
    "ChatHTTPStatusError",
    "ChatFramingError",
    "ChatEventDecodeError",
]
