"""agent-workflow-client - Streaming client that rebuilds multi-agent workflows from a chat event stream."""

from .conversation import ConversationStore, create_text_message, send_message
from .platform.settings import Settings
from .workflow import Workflow, WorkflowEngine

__all__ = [
    "ConversationStore",
    "Settings",
    "Workflow",
    "WorkflowEngine",
    "create_text_message",
    "send_message",
]
