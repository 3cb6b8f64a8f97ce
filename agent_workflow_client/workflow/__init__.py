"""Workflow reconstruction.

Rebuilds the structured record of one multi-agent execution from the chat
event stream and publishes it as immutable snapshots.
"""

from agent_workflow_client.workflow.engine import WorkflowEngine
from agent_workflow_client.workflow.models import SessionState, Step, StepStatus, ToolCall, Workflow

__all__ = [
    "SessionState",
    "Step",
    "StepStatus",
    "ToolCall",
    "Workflow",
    "WorkflowEngine",
]
