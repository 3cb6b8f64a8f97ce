"""Conversation transcript and the per-turn dispatch loop."""

from agent_workflow_client.conversation.dispatch import TranscriptReducer, dispatch_events, send_message
from agent_workflow_client.conversation.messages import (
    Message,
    TextMessage,
    WorkflowContent,
    WorkflowMessage,
    create_text_message,
    create_workflow_message,
)
from agent_workflow_client.conversation.store import ConversationStore, init_team_members

__all__ = [
    "ConversationStore",
    "Message",
    "TextMessage",
    "TranscriptReducer",
    "WorkflowContent",
    "WorkflowMessage",
    "create_text_message",
    "create_workflow_message",
    "dispatch_events",
    "init_team_members",
    "send_message",
]
