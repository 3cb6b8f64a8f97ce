"""Workflow reconstruction engine.

Folds the chat event stream into one workflow: which planned steps ran, in
what order, and what each agent produced. The engine owns a mutable graph and
publishes immutable ``Workflow`` snapshots after every event that observably
changes it.

State machine:
    Uninitialized --start_of_workflow--> Active --source ends--> Terminal

Anomalies (messages for agents that are not running, repeated starts,
unplanned agents) are logged and ignored; they never raise.
"""

import copy
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from agent_workflow_client.platform.clients.chat.events import (
    ChatEvent,
    EndOfAgentEvent,
    EndOfStepEvent,
    EndOfWorkflowEvent,
    FinalSessionStateEvent,
    MessageEvent,
    StartOfAgentEvent,
    StartOfStepEvent,
    StartOfWorkflowEvent,
    ToolCallEvent,
    ToolCallResultEvent,
)
from agent_workflow_client.platform.observability import get_logger
from agent_workflow_client.workflow.models import SessionState, Step, StepStatus, ToolCall, Workflow

logger = get_logger(__name__)


@dataclass
class _ToolCallState:
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    invoked: bool = False
    result: Any = None
    has_result: bool = False

    def snapshot(self) -> ToolCall:
        return ToolCall(
            id=self.id,
            name=self.name,
            arguments=copy.deepcopy(self.arguments),
            result=copy.deepcopy(self.result),
        )


@dataclass
class _StepState:
    agent_name: str
    inputs: dict[str, Any] = field(default_factory=dict)
    tool_calls: list[_ToolCallState] = field(default_factory=list)
    agent_id: str | None = None
    status: StepStatus = StepStatus.PENDING
    output: str = ""
    reasoning: str = ""

    def snapshot(self) -> Step:
        return Step(
            agent_name=self.agent_name,
            agent_id=self.agent_id,
            inputs=copy.deepcopy(self.inputs),
            status=self.status,
            output=self.output,
            reasoning=self.reasoning,
            tool_calls=tuple(call.snapshot() for call in self.tool_calls),
        )


@dataclass
class _WorkflowState:
    id: str
    steps: list[_StepState]
    # Without a plan, steps are appended as agents start
    plan_less: bool
    final_state: SessionState | None = None


class WorkflowEngine:
    """Reconstructs one workflow from its event stream.

    One engine serves exactly one workflow of one turn. ``start()`` consumes
    the ``start_of_workflow`` event; ``run()`` consumes the rest of the same
    event sequence and yields a snapshot after every observable change.

    Usage:
        engine = WorkflowEngine()
        workflow = engine.start(event)
        async for workflow in engine.run(events):
            publish(workflow)
    """

    def __init__(self) -> None:
        self._state: _WorkflowState | None = None
        self._terminal = False

    @property
    def started(self) -> bool:
        return self._state is not None

    @property
    def terminal(self) -> bool:
        """True once ``run()`` has finished; no further mutation happens."""
        return self._terminal

    def start(self, event: StartOfWorkflowEvent) -> Workflow:
        """Create the workflow from its announcing event.

        All planned steps start out pending.

        Args:
            event: The ``start_of_workflow`` event, already taken from the stream.

        Returns:
            The initial snapshot.

        Raises:
            RuntimeError: If this engine already started a workflow.
        """
        if self._state is not None:
            raise RuntimeError(f"Engine already reconstructs workflow {self._state.id}")

        data = event.data
        self._state = _WorkflowState(
            id=data.workflow_id,
            steps=[
                _StepState(
                    agent_name=planned.agent_name,
                    inputs=copy.deepcopy(planned.inputs),
                    tool_calls=[
                        _ToolCallState(
                            name=call.name,
                            arguments=copy.deepcopy(call.arguments),
                            id=call.id,
                        )
                        for call in planned.tool_calls
                    ],
                )
                for planned in data.steps_plan
            ],
            plan_less=not data.steps_plan,
        )
        logger.info(
            "workflow started",
            workflow_id=data.workflow_id,
            planned_steps=len(data.steps_plan),
        )
        return self.snapshot()

    def snapshot(self) -> Workflow:
        """Build an immutable copy of the current workflow.

        Raises:
            RuntimeError: If no workflow has been started.
        """
        if self._state is None:
            raise RuntimeError("No workflow has been started")
        return Workflow(
            id=self._state.id,
            steps=tuple(step.snapshot() for step in self._state.steps),
            final_state=self._state.final_state,
        )

    async def run(self, events: AsyncIterable[ChatEvent]) -> AsyncIterator[Workflow]:
        """Consume the remaining events and yield snapshots.

        Events that do not change the workflow yield nothing. Cancellation and
        transport failures of ``events`` propagate to the caller after the
        snapshots already yielded.

        Args:
            events: The rest of the event sequence ``start()`` was taken from.

        Yields:
            A new ``Workflow`` after each state-changing event, in event order.

        Raises:
            RuntimeError: If ``start()`` has not been called.
        """
        if self._state is None:
            raise RuntimeError("start() must be called before run()")

        try:
            async for event in events:
                if self.apply(event):
                    yield self.snapshot()
        finally:
            self._terminal = True
            logger.debug(
                "workflow stream ended",
                workflow_id=self._state.id,
                complete=self.snapshot().is_complete,
                has_final_state=self._state.final_state is not None,
            )

    def apply(self, event: ChatEvent) -> bool:
        """Fold one event into the workflow.

        Before a workflow exists only ``start_of_workflow`` is accepted.

        Args:
            event: The next event of the stream.

        Returns:
            True if the workflow observably changed.
        """
        if self._terminal:
            return False

        if self._state is None:
            if isinstance(event, StartOfWorkflowEvent):
                self.start(event)
                return True
            return False

        if isinstance(event, StartOfAgentEvent):
            return self._on_start_of_agent(event)
        if isinstance(event, MessageEvent):
            return self._on_message(event)
        if isinstance(event, EndOfAgentEvent):
            return self._on_end_of_agent(event)
        if isinstance(event, ToolCallEvent):
            return self._on_tool_call(event)
        if isinstance(event, ToolCallResultEvent):
            return self._on_tool_call_result(event)
        if isinstance(event, FinalSessionStateEvent):
            return self._on_final_session_state(event)
        if isinstance(event, (StartOfStepEvent, EndOfStepEvent, EndOfWorkflowEvent)):
            logger.debug("workflow boundary", workflow_id=self._state.id, event_type=event.type)
            return False
        if isinstance(event, StartOfWorkflowEvent):
            logger.warning(
                "nested start_of_workflow ignored",
                workflow_id=self._state.id,
                other_workflow_id=event.data.workflow_id,
            )
            return False
        logger.debug("event ignored", workflow_id=self._state.id, event_type=event.type)
        return False

    def _on_start_of_agent(self, event: StartOfAgentEvent) -> bool:
        assert self._state is not None
        data = event.data

        if self._step_for_agent(data.agent_id) is not None:
            logger.debug("repeated start_of_agent ignored", agent_id=data.agent_id)
            return False

        step = self._next_pending_step()
        if step is None:
            if not self._state.plan_less:
                logger.warning(
                    "start_of_agent without a pending step ignored",
                    workflow_id=self._state.id,
                    agent_id=data.agent_id,
                    agent_name=data.agent_name,
                )
                return False
            step = _StepState(agent_name=data.agent_name)
            self._state.steps.append(step)
        elif step.agent_name != data.agent_name:
            logger.warning(
                "start_of_agent does not match the next planned step",
                workflow_id=self._state.id,
                agent_id=data.agent_id,
                agent_name=data.agent_name,
                expected_agent_name=step.agent_name,
            )
            return False

        step.agent_id = data.agent_id
        step.status = StepStatus.RUNNING
        return True

    def _on_message(self, event: MessageEvent) -> bool:
        data = event.data
        step = self._running_step(data.agent_id)
        if step is None:
            logger.debug("message for an agent that is not running ignored", agent_id=data.agent_id)
            return False

        changed = False
        if data.delta.content:
            step.output += data.delta.content
            changed = True
        if data.delta.reasoning_content:
            step.reasoning += data.delta.reasoning_content
            changed = True
        return changed

    def _on_end_of_agent(self, event: EndOfAgentEvent) -> bool:
        assert self._state is not None
        step = self._running_step(event.data.agent_id)
        if step is None:
            logger.debug("end_of_agent for an agent that is not running ignored", agent_id=event.data.agent_id)
            return False

        step.status = StepStatus.COMPLETED
        if self._state.steps[-1] is step and not self._state.plan_less:
            # Done logically, but the stream may still carry the final session state
            logger.info("last planned step completed", workflow_id=self._state.id)
        return True

    def _on_tool_call(self, event: ToolCallEvent) -> bool:
        data = event.data
        step = self._running_step(data.agent_id)
        if step is None:
            logger.debug("tool_call outside a running step ignored", tool_call_id=data.tool_call_id)
            return False

        call = next((c for c in step.tool_calls if c.id == data.tool_call_id), None)
        if call is not None and call.invoked:
            return False
        if call is None:
            call = next(
                (c for c in step.tool_calls if c.id is None and not c.invoked and c.name == data.tool_name),
                None,
            )
        if call is None:
            call = _ToolCallState(name=data.tool_name)
            step.tool_calls.append(call)

        call.id = data.tool_call_id
        call.invoked = True
        if data.tool_input:
            call.arguments = copy.deepcopy(data.tool_input)
        return True

    def _on_tool_call_result(self, event: ToolCallResultEvent) -> bool:
        assert self._state is not None
        data = event.data
        for step in self._state.steps:
            if data.agent_id is not None and step.agent_id != data.agent_id:
                continue
            for call in step.tool_calls:
                if call.id == data.tool_call_id:
                    if call.has_result:
                        return False
                    call.result = copy.deepcopy(data.tool_result)
                    call.has_result = True
                    return True

        logger.debug("tool_call_result for an unknown call ignored", tool_call_id=data.tool_call_id)
        return False

    def _on_final_session_state(self, event: FinalSessionStateEvent) -> bool:
        assert self._state is not None
        final_state = SessionState(messages=tuple(event.data.messages))
        if final_state == self._state.final_state:
            return False
        # Step statuses stay as they are, even when some never completed
        self._state.final_state = final_state
        return True

    def _next_pending_step(self) -> _StepState | None:
        assert self._state is not None
        return next((step for step in self._state.steps if step.status == StepStatus.PENDING), None)

    def _step_for_agent(self, agent_id: str) -> _StepState | None:
        assert self._state is not None
        return next((step for step in self._state.steps if step.agent_id == agent_id), None)

    def _running_step(self, agent_id: str | None) -> _StepState | None:
        assert self._state is not None
        running = [step for step in self._state.steps if step.status == StepStatus.RUNNING]
        if agent_id is None:
            return running[-1] if running else None
        return next((step for step in running if step.agent_id == agent_id), None)
