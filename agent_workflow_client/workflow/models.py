"""Workflow snapshot models.

These are the immutable values handed to observers. The engine keeps its own
mutable state and builds a fresh ``Workflow`` every time it publishes.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agent_workflow_client.platform.clients.chat.events import SessionMessage


class StepStatus(StrEnum):
    """Lifecycle of a planned step."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class SessionState(_Snapshot):
    """Authoritative conversation as reported by the backend."""

    messages: tuple[SessionMessage, ...] = ()


class ToolCall(_Snapshot):
    """A tool invocation made by a step's agent.

    Attributes:
        id: Backend identifier, unknown until the call is made.
        name: Tool name.
        arguments: Arguments the tool was (or is planned to be) called with.
        result: Tool output, ``None`` while the call is pending.
    """

    id: str | None = None
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: Any = None

    @property
    def is_pending(self) -> bool:
        return self.result is None


class Step(_Snapshot):
    """One planned unit of work, executed by one agent.

    Attributes:
        agent_name: Agent the plan assigned to this step.
        agent_id: Id of the agent run executing the step, set once it starts.
        inputs: Inputs the plan expects the agent to use.
        status: Pending, running or completed.
        output: Concatenated message content produced so far.
        reasoning: Concatenated reasoning content produced so far.
        tool_calls: Tool calls in the order they were planned or made.
    """

    agent_name: str
    agent_id: str | None = None
    inputs: dict[str, Any] = Field(default_factory=dict)
    status: StepStatus = StepStatus.PENDING
    output: str = ""
    reasoning: str = ""
    tool_calls: tuple[ToolCall, ...] = ()


class Workflow(_Snapshot):
    """Point-in-time copy of one reconstructed workflow."""

    id: str
    steps: tuple[Step, ...] = ()
    final_state: SessionState | None = None

    @property
    def is_complete(self) -> bool:
        """True when every step has completed."""
        return all(step.status == StepStatus.COMPLETED for step in self.steps)

    def step_for_agent(self, agent_id: str) -> Step | None:
        """Find the step executed by ``agent_id``, if any."""
        for step in self.steps:
            if step.agent_id == agent_id:
                return step
        return None
