"""HTTP clients for external services.

This module provides clients for communicating with external services,
currently the orchestration backend's chat API.
"""

from agent_workflow_client.platform.clients.chat import (
    CancellationToken,
    ChatClient,
    ChatClientConfig,
    ChatClientError,
    ChatParams,
    ChatStreamCancelledError,
    ChatStreamSession,
    ChatTransportError,
    TeamMember,
)

__all__ = [
    # Chat client
    "ChatClient",
    "ChatClientConfig",
    "ChatParams",
    "TeamMember",
    # Chat transport
    "CancellationToken",
    "ChatStreamSession",
    # Chat exceptions
    "ChatClientError",
    "ChatStreamCancelledError",
    "ChatTransportError",
]
