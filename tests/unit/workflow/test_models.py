"""Unit tests for workflow snapshot models."""

from agent_workflow_client.workflow.models import Step, StepStatus, ToolCall, Workflow


class TestWorkflow:
    """Tests for Workflow helpers."""

    def test_is_complete(self):
        """Test completion requires every step to be completed."""
        done = Step(agent_name="a", status=StepStatus.COMPLETED)
        running = Step(agent_name="b", status=StepStatus.RUNNING)

        assert Workflow(id="w", steps=(done, done)).is_complete
        assert not Workflow(id="w", steps=(done, running)).is_complete

    def test_step_for_agent(self):
        """Test lookup by agent id."""
        step = Step(agent_name="researcher", agent_id="a1")
        workflow = Workflow(id="w", steps=(Step(agent_name="planner"), step))

        assert workflow.step_for_agent("a1") == step
        assert workflow.step_for_agent("a2") is None

    def test_serializes_statuses_as_strings(self):
        """Test the dumped form of a snapshot."""
        workflow = Workflow(id="w", steps=(Step(agent_name="a"),))

        assert workflow.model_dump(mode="json")["steps"][0]["status"] == "pending"


class TestToolCall:
    """Tests for ToolCall."""

    def test_pending_until_result(self):
        """Test pending state follows the result."""
        assert ToolCall(name="search").is_pending
        assert not ToolCall(name="search", result={"ok": True}).is_pending
