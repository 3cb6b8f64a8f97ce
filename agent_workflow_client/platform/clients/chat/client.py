"""Chat backend client.

Provides a high-level interface to the orchestration backend: opening
streaming chat turns and looking up the team member catalog, with shared
connection management and trace propagation.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
from opentelemetry import propagate

from agent_workflow_client.platform.clients.chat.catalog import TeamMember, TeamMemberCatalog
from agent_workflow_client.platform.clients.chat.config import ChatClientConfig
from agent_workflow_client.platform.clients.chat.events import SessionMessage
from agent_workflow_client.platform.clients.chat.transport import CancellationToken, ChatStreamSession
from agent_workflow_client.platform.observability import correlation_id_ctx


async def _inject_trace_context(request: httpx.Request) -> None:
    """Inject OpenTelemetry trace context into each outgoing request.

    Note: Must be async because httpx AsyncClient awaits event hooks.
    """
    propagate.inject(request.headers)

    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        request.headers["X-Request-ID"] = correlation_id


@dataclass(frozen=True)
class ChatParams:
    """Per-turn request parameters.

    Attributes:
        deep_thinking_mode: Ask the planner to reason before planning.
        search_before_planning: Ask the planner to search the web first.
        team_members: Names of the agents enabled for this turn.
    """

    deep_thinking_mode: bool = False
    search_before_planning: bool = False
    team_members: list[str] = field(default_factory=list)


def build_chat_body(
    user_message: SessionMessage,
    session_messages: Sequence[SessionMessage],
    params: ChatParams,
    *,
    debug: bool = False,
) -> dict[str, Any]:
    """Build the wire body of a streaming chat request.

    Args:
        user_message: The new user message.
        session_messages: The authoritative conversation so far.
        params: Per-turn parameters.
        debug: Ask the backend for debug output.

    Returns:
        The JSON-serializable request body.
    """
    return {
        "messages": [message.model_dump() for message in [*session_messages, user_message]],
        "deep_thinking_mode": params.deep_thinking_mode,
        "search_before_planning": params.search_before_planning,
        "debug": debug,
        "team_members": list(params.team_members),
    }


class ChatClient:
    """High-level chat backend client."""

    def __init__(
        self,
        base_url: str,
        config: ChatClientConfig | None = None,
        httpx_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the backend API (e.g. ``http://localhost:8000/api``).
            config: Optional client configuration.
            httpx_client: Optional pre-configured HTTP client.
        """
        self._base_url = base_url.rstrip("/")
        self._config = config or ChatClientConfig()
        self._httpx_client = httpx_client
        self._owns_httpx_client = httpx_client is None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def stream_url(self) -> str:
        return self._base_url + self._config.stream_path

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_httpx_client and self._httpx_client is not None:
            await self._httpx_client.aclose()
            self._httpx_client = None

    def chat_stream(
        self,
        user_message: SessionMessage,
        session_messages: Sequence[SessionMessage],
        params: ChatParams,
        cancellation: CancellationToken | None = None,
    ) -> ChatStreamSession:
        """Open one streaming chat turn.

        Args:
            user_message: The new user message.
            session_messages: The authoritative conversation so far.
            params: Per-turn parameters.
            cancellation: Optional token that cancels the stream.

        Returns:
            A single-pass async iterator of typed events.
        """
        body = build_chat_body(user_message, session_messages, params, debug=self._config.debug)
        return ChatStreamSession(self._get_httpx_client(), self.stream_url, body, cancellation)

    async def query_team_members(self) -> list[TeamMember]:
        """Look up the team member catalog. See ``TeamMemberCatalog``."""
        catalog = TeamMemberCatalog(self._get_httpx_client(), self._base_url, self._config)
        return await catalog.query_team_members()

    def _get_httpx_client(self) -> httpx.AsyncClient:
        if self._httpx_client is None:
            self._httpx_client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=self._config.timeout_seconds,
                    read=self._config.read_timeout_seconds,
                    write=self._config.timeout_seconds,
                    pool=self._config.timeout_seconds,
                ),
                event_hooks={"request": [_inject_trace_context]},
            )
            self._owns_httpx_client = True
        return self._httpx_client
