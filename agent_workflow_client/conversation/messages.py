"""Transcript message types.

The transcript is an ordered tuple of immutable messages. Updating a message
replaces it with a new value, so observers never see a half-applied change.
"""

from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from agent_workflow_client.workflow.models import Workflow


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: str


class TextMessage(_Message):
    type: Literal["text"] = "text"
    content: str = ""


class WorkflowContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    workflow: Workflow


class WorkflowMessage(_Message):
    type: Literal["workflow"] = "workflow"
    content: WorkflowContent


Message = Annotated[Union[TextMessage, WorkflowMessage], Field(discriminator="type")]


def create_text_message(
    text: str,
    *,
    role: str = "user",
    message_id: str | None = None,
) -> TextMessage:
    """Create a text message with a fresh id.

    Args:
        text: The message content.
        role: Message role (default: user).
        message_id: Optional explicit id.

    Returns:
        A new TextMessage.
    """
    return TextMessage(id=message_id or str(uuid4()), role=role, content=text)


def create_workflow_message(workflow: Workflow, *, role: str = "assistant") -> WorkflowMessage:
    """Create the transcript entry that tracks ``workflow``. Its id is the workflow id."""
    return WorkflowMessage(id=workflow.id, role=role, content=WorkflowContent(workflow=workflow))
