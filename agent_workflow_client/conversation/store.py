"""Conversation state shared with the presentation layer.

The store holds the transcript, the responding flag, the authoritative
session state used to seed the next turn, and the team member selection.
Every change replaces values instead of mutating them, then notifies
subscribers.
"""

from collections.abc import Callable, Sequence
from typing import Any

from agent_workflow_client.conversation.messages import Message
from agent_workflow_client.platform.clients.chat import ChatClient, ChatClientError, TeamMember
from agent_workflow_client.platform.observability import get_logger
from agent_workflow_client.platform.preferences import (
    PreferencesStore,
    load_enabled_team_members,
    save_enabled_team_members,
)
from agent_workflow_client.workflow.models import SessionState

logger = get_logger(__name__)

Listener = Callable[["ConversationStore"], None]


class ConversationStore:
    """Observable conversation state for one user session."""

    def __init__(self, preferences: PreferencesStore | None = None) -> None:
        """Initialize an empty store.

        Args:
            preferences: Optional store the team selection is saved to.
        """
        self._preferences = preferences
        self._team_members: tuple[TeamMember, ...] = ()
        self._enabled_team_members: tuple[str, ...] = ()
        self._messages: tuple[Message, ...] = ()
        self._responding = False
        self._state = SessionState()
        self._listeners: list[Listener] = []

    @property
    def team_members(self) -> tuple[TeamMember, ...]:
        return self._team_members

    @property
    def enabled_team_members(self) -> tuple[str, ...]:
        return self._enabled_team_members

    @property
    def messages(self) -> tuple[Message, ...]:
        """The transcript, oldest first."""
        return self._messages

    @property
    def responding(self) -> bool:
        """True while a turn's stream is being consumed."""
        return self._responding

    @property
    def state(self) -> SessionState:
        """Authoritative conversation used to seed the next request."""
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_message(self, message_id: str) -> Message | None:
        return next((message for message in self._messages if message.id == message_id), None)

    def add_message(self, message: Message) -> Message:
        """Append a message to the transcript.

        Raises:
            ValueError: If a message with the same id already exists.
        """
        if self.get_message(message.id) is not None:
            raise ValueError(f"Duplicate message id: {message.id}")
        self._messages = (*self._messages, message)
        self._notify()
        return message

    def update_message(self, message_id: str, **changes: Any) -> Message | None:
        """Replace a message with a copy carrying ``changes``.

        Args:
            message_id: Id of the message to replace.
            **changes: Field values for the new message.

        Returns:
            The new message, or None if no message has that id.
        """
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                updated = message.model_copy(update=changes)
                self._messages = (*self._messages[:index], updated, *self._messages[index + 1 :])
                self._notify()
                return updated
        return None

    def clear_messages(self) -> None:
        self._messages = ()
        self._notify()

    def set_responding(self, responding: bool) -> None:
        self._responding = responding
        self._notify()

    def set_session_state(self, state: SessionState) -> None:
        self._state = state
        self._notify()

    def set_team_members(self, team_members: Sequence[TeamMember]) -> None:
        self._team_members = tuple(team_members)
        self._notify()

    def set_enabled_team_members(self, names: Sequence[str], *, persist: bool = True) -> None:
        """Select the agents sent with the next requests, saving the selection unless told not to."""
        self._enabled_team_members = tuple(names)
        if persist and self._preferences is not None:
            save_enabled_team_members(self._preferences, list(names))
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


async def init_team_members(
    store: ConversationStore,
    client: ChatClient,
    preferences: PreferencesStore | None = None,
) -> None:
    """Load the team member catalog into ``store``.

    A failed lookup leaves the catalog empty. The saved selection is restored
    when there is one; otherwise every member is enabled.
    """
    try:
        team_members = await client.query_team_members()
    except ChatClientError as e:
        logger.warning(
            "error connecting to the backend, team members unavailable",
            url=client.base_url,
            error=str(e),
        )
        team_members = []

    saved = load_enabled_team_members(preferences) if preferences is not None else None
    store.set_team_members(team_members)
    store.set_enabled_team_members(
        saved if saved is not None else [member.name for member in team_members],
        persist=False,
    )
