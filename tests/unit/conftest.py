"""Shared unit test fixtures.

Provides event builders for the chat stream and an in-memory, single-pass
event stream that behaves like a transport session.
"""

from collections.abc import Sequence
from typing import Any

import pytest

from agent_workflow_client.platform.clients.chat.events import (
    ChatEvent,
    Delta,
    EndOfAgentData,
    EndOfAgentEvent,
    FinalSessionStateData,
    FinalSessionStateEvent,
    MessageData,
    MessageEvent,
    PlannedStep,
    PlannedToolCall,
    SessionMessage,
    StartOfAgentData,
    StartOfAgentEvent,
    StartOfWorkflowData,
    StartOfWorkflowEvent,
    ToolCallData,
    ToolCallEvent,
    ToolCallResultData,
    ToolCallResultEvent,
    UnknownEvent,
)


class EventFactory:
    """Builders for typed chat events."""

    @staticmethod
    def start_workflow(
        *agents: str,
        workflow_id: str = "wf-1",
        tool_calls: dict[str, list[PlannedToolCall]] | None = None,
    ) -> StartOfWorkflowEvent:
        tool_calls = tool_calls or {}
        return StartOfWorkflowEvent(
            data=StartOfWorkflowData(
                workflow_id=workflow_id,
                steps_plan=[
                    PlannedStep(agent_name=agent, tool_calls=tool_calls.get(agent, [])) for agent in agents
                ],
            )
        )

    @staticmethod
    def start_agent(agent_id: str, agent_name: str | None = None) -> StartOfAgentEvent:
        return StartOfAgentEvent(data=StartOfAgentData(agent_id=agent_id, agent_name=agent_name or agent_id))

    @staticmethod
    def message(agent_id: str, content: str = "", reasoning: str | None = None) -> MessageEvent:
        return MessageEvent(
            data=MessageData(agent_id=agent_id, delta=Delta(content=content, reasoning_content=reasoning))
        )

    @staticmethod
    def end_agent(agent_id: str) -> EndOfAgentEvent:
        return EndOfAgentEvent(data=EndOfAgentData(agent_id=agent_id))

    @staticmethod
    def tool_call(agent_id: str, call_id: str, name: str, arguments: dict[str, Any] | None = None) -> ToolCallEvent:
        return ToolCallEvent(
            data=ToolCallData(agent_id=agent_id, tool_call_id=call_id, tool_name=name, tool_input=arguments or {})
        )

    @staticmethod
    def tool_result(call_id: str, result: Any, agent_id: str | None = None) -> ToolCallResultEvent:
        return ToolCallResultEvent(
            data=ToolCallResultData(agent_id=agent_id, tool_call_id=call_id, tool_result=result)
        )

    @staticmethod
    def final_state(*pairs: tuple[str, str]) -> FinalSessionStateEvent:
        return FinalSessionStateEvent(
            data=FinalSessionStateData(messages=[SessionMessage(role=role, content=content) for role, content in pairs])
        )

    @staticmethod
    def unknown(name: str = "start_of_llm", data: Any = None) -> UnknownEvent:
        return UnknownEvent(type=name, data=data or {})


class EventStream:
    """Single-pass async iterator over canned events.

    Optionally raises ``error`` once the events run out, the way a transport
    session surfaces cancellation or failure.
    """

    def __init__(self, events: Sequence[ChatEvent], error: BaseException | None = None):
        self._events = list(events)
        self._error = error
        self._index = 0
        self.pulled = 0
        self.closed = False

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> ChatEvent:
        if self.closed:
            raise StopAsyncIteration
        if self._index < len(self._events):
            event = self._events[self._index]
            self._index += 1
            self.pulled += 1
            return event
        self.closed = True
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration

    async def __aenter__(self) -> "EventStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True


@pytest.fixture
def ev() -> type[EventFactory]:
    """Event builders."""
    return EventFactory


@pytest.fixture
def event_stream() -> type[EventStream]:
    """Factory for in-memory event streams."""
    return EventStream
