"""Typed chat stream events.

Every frame payload is JSON. Known event kinds validate into one pydantic
model each, forming the closed ``KnownChatEvent`` union discriminated by
``type``. Any other kind becomes an ``UnknownEvent`` so consumers can decide
to ignore or log it.
"""

import json
from collections.abc import AsyncGenerator, AsyncIterable
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from agent_workflow_client.platform.clients.chat.exceptions import ChatEventDecodeError
from agent_workflow_client.platform.clients.chat.framing import Frame


class ChatEventType(StrEnum):
    """Event kinds understood by this client."""

    START_OF_WORKFLOW = "start_of_workflow"
    END_OF_WORKFLOW = "end_of_workflow"
    START_OF_STEP = "start_of_step"
    END_OF_STEP = "end_of_step"
    START_OF_AGENT = "start_of_agent"
    END_OF_AGENT = "end_of_agent"
    MESSAGE = "message"
    TOOL_CALL = "tool_call"
    TOOL_CALL_RESULT = "tool_call_result"
    FINAL_SESSION_STATE = "final_session_state"


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")


class SessionMessage(_Payload):
    """A ``{role, content}`` pair as the backend stores the conversation."""

    role: str
    content: str


# =============================================================================
# Payloads
# =============================================================================


class PlannedToolCall(_Payload):
    id: str | None = None
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class PlannedStep(_Payload):
    """One entry of a workflow's steps plan."""

    agent_name: str
    inputs: dict[str, Any] = Field(default_factory=dict)
    tool_calls: list[PlannedToolCall] = Field(default_factory=list)


class StartOfWorkflowData(_Payload):
    workflow_id: str
    steps_plan: list[PlannedStep] = Field(default_factory=list)
    input: list[SessionMessage] = Field(default_factory=list)


class EndOfWorkflowData(_Payload):
    workflow_id: str | None = None


class StepBoundaryData(_Payload):
    workflow_id: str | None = None
    step_index: int | None = None


class StartOfAgentData(_Payload):
    agent_id: str
    agent_name: str


class EndOfAgentData(_Payload):
    agent_id: str


class Delta(_Payload):
    content: str = ""
    reasoning_content: str | None = None


class MessageData(_Payload):
    agent_id: str
    delta: Delta


class ToolCallData(_Payload):
    agent_id: str | None = None
    tool_call_id: str
    tool_name: str
    tool_input: dict[str, Any] = Field(default_factory=dict)


class ToolCallResultData(_Payload):
    agent_id: str | None = None
    tool_call_id: str
    tool_name: str | None = None
    tool_result: Any = None


class FinalSessionStateData(_Payload):
    messages: list[SessionMessage]


# =============================================================================
# Events
# =============================================================================


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class StartOfWorkflowEvent(_Event):
    type: Literal["start_of_workflow"] = "start_of_workflow"
    data: StartOfWorkflowData


class EndOfWorkflowEvent(_Event):
    type: Literal["end_of_workflow"] = "end_of_workflow"
    data: EndOfWorkflowData = EndOfWorkflowData()


class StartOfStepEvent(_Event):
    type: Literal["start_of_step"] = "start_of_step"
    data: StepBoundaryData = StepBoundaryData()


class EndOfStepEvent(_Event):
    type: Literal["end_of_step"] = "end_of_step"
    data: StepBoundaryData = StepBoundaryData()


class StartOfAgentEvent(_Event):
    type: Literal["start_of_agent"] = "start_of_agent"
    data: StartOfAgentData


class EndOfAgentEvent(_Event):
    type: Literal["end_of_agent"] = "end_of_agent"
    data: EndOfAgentData


class MessageEvent(_Event):
    type: Literal["message"] = "message"
    data: MessageData


class ToolCallEvent(_Event):
    type: Literal["tool_call"] = "tool_call"
    data: ToolCallData


class ToolCallResultEvent(_Event):
    type: Literal["tool_call_result"] = "tool_call_result"
    data: ToolCallResultData


class FinalSessionStateEvent(_Event):
    type: Literal["final_session_state"] = "final_session_state"
    data: FinalSessionStateData


class UnknownEvent(_Event):
    """An event kind this client does not recognize."""

    type: str
    data: Any = None


KnownChatEvent = Annotated[
    Union[
        StartOfWorkflowEvent,
        EndOfWorkflowEvent,
        StartOfStepEvent,
        EndOfStepEvent,
        StartOfAgentEvent,
        EndOfAgentEvent,
        MessageEvent,
        ToolCallEvent,
        ToolCallResultEvent,
        FinalSessionStateEvent,
    ],
    Field(discriminator="type"),
]

ChatEvent = Union[
    StartOfWorkflowEvent,
    EndOfWorkflowEvent,
    StartOfStepEvent,
    EndOfStepEvent,
    StartOfAgentEvent,
    EndOfAgentEvent,
    MessageEvent,
    ToolCallEvent,
    ToolCallResultEvent,
    FinalSessionStateEvent,
    UnknownEvent,
]

_known_event_adapter: TypeAdapter[KnownChatEvent] = TypeAdapter(KnownChatEvent)
_KNOWN_EVENT_TYPES = frozenset(event_type.value for event_type in ChatEventType)


def parse_payload(frame: Frame) -> Any:
    """Parse a frame's payload as JSON. An empty payload parses as ``{}``.

    Raises:
        ChatEventDecodeError: If the payload is not valid JSON.
    """
    if not frame.data.strip():
        return {}
    try:
        return json.loads(frame.data)
    except json.JSONDecodeError as e:
        raise ChatEventDecodeError(
            f"invalid JSON ({e.msg})",
            event_name=frame.event,
            raw_payload=frame.data,
        ) from e


def to_chat_event(frame: Frame) -> ChatEvent:
    """Type a decoded frame.

    Args:
        frame: The frame to type.

    Returns:
        The matching known event, or an ``UnknownEvent`` for other kinds.

    Raises:
        ChatEventDecodeError: If the payload is not JSON or does not match
            the schema of its declared kind.
    """
    payload = parse_payload(frame)

    if frame.event not in _KNOWN_EVENT_TYPES:
        return UnknownEvent(type=frame.event, data=payload)

    try:
        return _known_event_adapter.validate_python({"type": frame.event, "data": payload})
    except ValidationError as e:
        raise ChatEventDecodeError(
            f"{e.error_count()} validation error(s): {e.errors()[0]['msg']}",
            event_name=frame.event,
            raw_payload=frame.data,
        ) from e


async def iter_events(frames: AsyncIterable[Frame]) -> AsyncGenerator[ChatEvent, None]:
    """Lazily type a stream of frames."""
    async for frame in frames:
        yield to_chat_event(frame)
