"""Dispatch loop for one conversation turn.

A single loop pulls events from the turn's stream. Plain agent output is
folded into text transcript entries; a ``start_of_workflow`` hands the rest
of the same stream to a ``WorkflowEngine`` whose snapshots replace the
workflow entry's content. Only this loop ever asks the stream for the next
event.
"""

from collections.abc import AsyncIterator

from agent_workflow_client.conversation.messages import (
    TextMessage,
    WorkflowContent,
    create_workflow_message,
)
from agent_workflow_client.conversation.store import ConversationStore
from agent_workflow_client.platform.clients.chat import (
    CancellationToken,
    ChatClient,
    ChatParams,
    ChatStreamCancelledError,
    SessionMessage,
)
from agent_workflow_client.platform.clients.chat.events import (
    ChatEvent,
    EndOfAgentEvent,
    FinalSessionStateEvent,
    MessageEvent,
    StartOfAgentEvent,
    StartOfWorkflowEvent,
)
from agent_workflow_client.platform.observability import (
    StreamOutcome,
    collect_stream_metrics,
    get_logger,
    turn_context,
)
from agent_workflow_client.workflow.engine import WorkflowEngine
from agent_workflow_client.workflow.models import SessionState

logger = get_logger(__name__)


class TranscriptReducer:
    """Folds agent output outside a workflow into text transcript entries.

    Each ``start_of_agent`` opens an entry keyed by its agent id; ``message``
    deltas extend the matching open entry and republish its full content;
    ``end_of_agent`` closes it.
    """

    def __init__(self, store: ConversationStore) -> None:
        self._store = store
        self._open: dict[str, str] = {}

    @property
    def open_agent_ids(self) -> tuple[str, ...]:
        return tuple(self._open)

    def apply(self, event: ChatEvent) -> bool:
        """Fold one event. Returns True if the transcript changed."""
        if isinstance(event, StartOfAgentEvent):
            agent_id = event.data.agent_id
            if agent_id in self._open or self._store.get_message(agent_id) is not None:
                logger.debug("repeated start_of_agent ignored", agent_id=agent_id)
                return False
            self._store.add_message(TextMessage(id=agent_id, role="assistant", content=""))
            self._open[agent_id] = ""
            return True

        if isinstance(event, MessageEvent):
            agent_id = event.data.agent_id
            if agent_id not in self._open:
                logger.debug("message for an agent without an open entry ignored", agent_id=agent_id)
                return False
            if not event.data.delta.content:
                return False
            self._open[agent_id] += event.data.delta.content
            self._store.update_message(agent_id, content=self._open[agent_id])
            return True

        if isinstance(event, EndOfAgentEvent):
            self._open.pop(event.data.agent_id, None)
            return False

        return False


async def dispatch_events(store: ConversationStore, events: AsyncIterator[ChatEvent]) -> None:
    """Consume ``events`` to completion, updating ``store``.

    Cancellation and transport failures of ``events`` propagate unchanged.
    """
    reducer = TranscriptReducer(store)

    async for event in events:
        if isinstance(event, StartOfWorkflowEvent):
            await _run_workflow(store, event, events)
        elif isinstance(event, FinalSessionStateEvent):
            store.set_session_state(SessionState(messages=tuple(event.data.messages)))
        else:
            reducer.apply(event)


async def _run_workflow(
    store: ConversationStore,
    event: StartOfWorkflowEvent,
    events: AsyncIterator[ChatEvent],
) -> None:
    engine = WorkflowEngine()
    workflow = engine.start(event)
    message = create_workflow_message(workflow)
    if store.get_message(message.id) is not None:
        logger.warning("workflow id already in transcript, replacing its content", workflow_id=message.id)
        store.update_message(message.id, content=message.content)
    else:
        store.add_message(message)

    async for snapshot in engine.run(events):
        store.update_message(message.id, content=WorkflowContent(workflow=snapshot))
        workflow = snapshot

    if workflow.final_state is not None:
        store.set_session_state(workflow.final_state)


async def send_message(
    store: ConversationStore,
    client: ChatClient,
    message: TextMessage,
    *,
    deep_thinking_mode: bool = False,
    search_before_planning: bool = False,
    cancellation: CancellationToken | None = None,
) -> TextMessage | None:
    """Send a user message and consume the turn's stream.

    The message is appended to the transcript, the request is seeded with the
    store's session state and enabled team members, and ``responding`` stays
    set until the stream ends, however it ends.

    Args:
        store: Conversation state to update.
        client: Backend client.
        message: The user's message.
        deep_thinking_mode: Forwarded request flag.
        search_before_planning: Forwarded request flag.
        cancellation: Optional token that stops the turn.

    Returns:
        The sent message, or None if the turn was cancelled.

    Raises:
        ChatTransportError: If the stream fails (network, HTTP status,
            framing or decoding).
    """
    store.add_message(message)
    params = ChatParams(
        deep_thinking_mode=deep_thinking_mode,
        search_before_planning=search_before_planning,
        team_members=list(store.enabled_team_members),
    )
    stream = client.chat_stream(
        SessionMessage(role=message.role, content=message.content),
        store.state.messages,
        params,
        cancellation,
    )

    store.set_responding(True)
    try:
        with turn_context(message.id), collect_stream_metrics() as metrics:
            try:
                async with stream:
                    await dispatch_events(store, stream)
            except ChatStreamCancelledError:
                metrics.outcome = StreamOutcome.CANCELLED
                logger.info("turn cancelled", message_id=message.id)
                return None
    finally:
        store.set_responding(False)

    return message
