import pytest

from agent_engine.execution import (
    ExecutionStatus,
    ExecutionTrace,
    Message,
    StepAction,
    StepKind,
    Usage,
)


class TestMessage:
    def test_basic_message(self):
        msg = Message(role="user", content="hello")
        assert msg.role == "user"
        assert msg.content == "hello"
        assert msg.tool_call_id is None
        assert msg.name is None

    def test_tool_message(self):
        msg = Message(role="tool", content="result", name="search", tool_call_id="call_123")
        assert msg.name == "search"
        assert msg.tool_call_id == "call_123"


class TestUsage:
    def test_total_is_sum(self):
        usage = Usage(prompt_tokens=12, completion_tokens=30)
        assert usage.total_tokens == 42

    def test_addition(self):
        total = Usage(1, 2) + Usage(10, 20)
        assert total == Usage(prompt_tokens=11, completion_tokens=22)
        assert total.total_tokens == 33

    def test_to_dict(self):
        assert Usage(3, 4).to_dict() == {
            "prompt_tokens": 3,
            "completion_tokens": 4,
            "total_tokens": 7,
        }


class TestExecutionTrace:
    def test_defaults(self):
        trace = ExecutionTrace(agent_id="a", caller_id="u")
        assert trace.execution_id
        assert trace.steps == []
        assert trace.usage == Usage()
        assert trace.cost == 0.0
        assert trace.iterations == 0
        assert not trace.finished

    def test_steps_share_iteration_number(self):
        trace = ExecutionTrace(agent_id="a", caller_id="u")
        trace.next_iteration()
        trace.record_step(StepKind.REASONING, content="thinking")
        trace.record_step(StepKind.ACTION, action=StepAction("echo", {"text": "x"}))
        trace.next_iteration()
        trace.record_step(StepKind.FINAL, content="done")

        assert [s.step_number for s in trace.steps] == [1, 1, 2]

    def test_add_usage_accumulates(self):
        trace = ExecutionTrace(agent_id="a", caller_id="u")
        trace.add_usage(Usage(10, 5), 0.25)
        trace.add_usage(Usage(1, 1), 0.5)
        assert trace.usage == Usage(11, 6)
        assert trace.cost == pytest.approx(0.75)

    def test_to_result_requires_terminal_status(self):
        trace = ExecutionTrace(agent_id="a", caller_id="u")
        with pytest.raises(RuntimeError):
            trace.to_result(duration_ms=0)

    def test_to_result(self):
        trace = ExecutionTrace(agent_id="a", caller_id="u", execution_id="exec-1")
        trace.next_iteration()
        trace.record_step(StepKind.FINAL, content="done")
        trace.finish(ExecutionStatus.SUCCESS, "done")

        result = trace.to_result(duration_ms=12)
        assert result.execution_id == "exec-1"
        assert result.status == ExecutionStatus.SUCCESS
        assert result.output == "done"
        assert result.iterations == 1
        assert result.duration_ms == 12

        # The result owns its own step list
        trace.record_step(StepKind.FINAL, content="late")
        assert len(result.steps) == 1

    def test_result_to_dict(self):
        trace = ExecutionTrace(agent_id="a", caller_id="u")
        trace.next_iteration()
        trace.record_step(StepKind.ACTION, action=StepAction("echo", {"text": "x"}))
        trace.finish(ExecutionStatus.MAX_ITERATIONS, "stopped")

        data = trace.to_result(duration_ms=5).to_dict()
        assert data["status"] == "max_iterations"
        assert data["steps"][0]["step_type"] == "action"
        assert data["steps"][0]["action"] == {"tool": "echo", "arguments": {"text": "x"}}
        assert data["usage"]["total_tokens"] == 0
