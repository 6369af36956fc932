import pytest
from pydantic import BaseModel

from agent_engine.agent import AgentConfig
from agent_engine.engine import (
    MAX_ITERATIONS_MESSAGE,
    TIMEOUT_MESSAGE,
    ExecutionEngine,
    build_system_prompt,
)
from agent_engine.exceptions import ProviderError
from agent_engine.execution import ExecutionStatus, StepKind, ToolCall, Usage
from agent_engine.executor import ToolExecutor
from agent_engine.gateway import LLMGateway
from agent_engine.model import ChatResponse, ModelAdaptor
from agent_engine.pricing import ModelPricing, PriceTable
from agent_engine.settings import EngineSettings
from agent_engine.tools import Tool, ToolResult


# --- Test fixtures ---


class ScriptedModel(ModelAdaptor):
    """Model that replays canned responses (or raises canned errors) in order."""

    name = "scripted"
    prefixes = ("fake-",)

    def __init__(self, *responses):
        self.responses = list(responses)
        self.call_count = 0
        self.received = []

    async def chat(self, messages, options):
        self.received.append(messages)
        self.call_count += 1
        response = self.responses[min(self.call_count, len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


def final(text, prompt=10, completion=5):
    return ChatResponse(
        content=text,
        usage=Usage(prompt_tokens=prompt, completion_tokens=completion),
    )


def tool_call(name="echo", arguments=None, text="Let me check.", call_id="call_1"):
    return ChatResponse(
        content=text,
        tool_calls=[ToolCall(id=call_id, tool_name=name, arguments=arguments or {"text": "hello"})],
        usage=Usage(prompt_tokens=20, completion_tokens=8),
    )


class EchoInput(BaseModel):
    text: str


class EchoTool(Tool):
    name = "echo"
    description = "Echoes input"
    input_model = EchoInput

    async def execute(self, arguments):
        params = self.parse_arguments(arguments)
        return ToolResult.ok(f"echo: {params.text}")


class ExplodingExecutor(ToolExecutor):
    async def execute(self, tool_name, arguments):
        raise RuntimeError("executor exploded")


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_agent(tools=(), max_iterations=10, timeout_seconds=300, model="fake-model"):
    return AgentConfig(
        id="agent-1",
        system_prompt="You are helpful.",
        model=model,
        max_iterations=max_iterations,
        timeout_seconds=timeout_seconds,
        tools=tools,
    )


def make_engine(model, executor=None, **kwargs):
    return ExecutionEngine(
        gateway=LLMGateway([model]),
        executor=executor or ToolExecutor([EchoTool()]),
        **kwargs,
    )


# --- Scenarios ---


class TestDirectAnswer:
    @pytest.mark.asyncio
    async def test_no_tools_direct_answer(self):
        engine = make_engine(ScriptedModel(final("The answer is 42.")))
        result = await engine.execute(make_agent(), "What is the answer?", "user-1")

        assert result.status == ExecutionStatus.SUCCESS
        assert result.output == "The answer is 42."
        assert result.iterations == 1
        assert [step.kind for step in result.steps] == [StepKind.FINAL]
        assert result.steps[0].content == "The answer is 42."
        assert result.error is None

    @pytest.mark.asyncio
    async def test_result_identifies_agent_and_caller(self):
        engine = make_engine(ScriptedModel(final("ok")))
        result = await engine.execute(make_agent(), "hi", "user-7")

        assert result.agent_id == "agent-1"
        assert result.caller_id == "user-7"
        assert result.execution_id
        assert result.duration_ms >= 0
        assert result.completed_at >= result.started_at

    @pytest.mark.asyncio
    async def test_reuses_given_execution_id(self):
        engine = make_engine(ScriptedModel(final("ok")))
        result = await engine.execute(make_agent(), "hi", "user-1", execution_id="exec-123")
        assert result.execution_id == "exec-123"


class TestToolThenAnswer:
    @pytest.mark.asyncio
    async def test_step_sequence(self):
        agent = make_agent(tools=(EchoTool().spec(),))
        engine = make_engine(ScriptedModel(tool_call(), final("Done: echo: hello")))
        result = await engine.execute(agent, "Echo hello", "user-1")

        assert result.status == ExecutionStatus.SUCCESS
        assert result.output == "Done: echo: hello"
        assert result.iterations == 2
        assert [(s.step_number, s.kind) for s in result.steps] == [
            (1, StepKind.REASONING),
            (1, StepKind.ACTION),
            (1, StepKind.OBSERVATION),
            (2, StepKind.FINAL),
        ]

    @pytest.mark.asyncio
    async def test_step_payloads(self):
        agent = make_agent(tools=(EchoTool().spec(),))
        engine = make_engine(ScriptedModel(tool_call(), final("done")))
        result = await engine.execute(agent, "Echo hello", "user-1")

        reasoning, action, observation, _ = result.steps
        assert reasoning.content == "Let me check."
        assert action.action.tool_name == "echo"
        assert action.action.arguments == {"text": "hello"}
        assert observation.content == '{"success": true, "data": "echo: hello"}'

    @pytest.mark.asyncio
    async def test_observation_is_visible_to_next_model_call(self):
        model = ScriptedModel(tool_call(), final("done"))
        engine = make_engine(model)
        await engine.execute(make_agent(tools=(EchoTool().spec(),)), "Echo hello", "user-1")

        first, second = model.received
        assert [m.role for m in first] == ["system", "user"]
        assert [m.role for m in second] == ["system", "user", "assistant", "tool"]

        assistant, tool_result = second[2], second[3]
        assert assistant.content == "Let me check."
        assert assistant.tool_calls[0].id == "call_1"
        assert tool_result.name == "echo"
        assert tool_result.tool_call_id == "call_1"
        assert "echo: hello" in tool_result.content

    @pytest.mark.asyncio
    async def test_system_message_is_first_and_unchanged(self):
        model = ScriptedModel(tool_call(), tool_call(call_id="call_2"), final("done"))
        engine = make_engine(model)
        agent = make_agent(tools=(EchoTool().spec(),))
        await engine.execute(agent, "go", "user-1")

        expected = build_system_prompt(agent.system_prompt, agent.tools)
        for messages in model.received:
            assert messages[0].role == "system"
            assert messages[0].content == expected
            assert sum(1 for m in messages if m.role == "system") == 1

    @pytest.mark.asyncio
    async def test_multiple_tool_calls_processed_in_order(self):
        response = ChatResponse(
            content="Two things to do.",
            tool_calls=[
                ToolCall(id="a", tool_name="echo", arguments={"text": "first"}),
                ToolCall(id="b", tool_name="echo", arguments={"text": "second"}),
            ],
            usage=Usage(prompt_tokens=5, completion_tokens=5),
        )
        model = ScriptedModel(response, final("done"))
        engine = make_engine(model)
        result = await engine.execute(make_agent(), "go", "user-1")

        iteration_one = [s for s in result.steps if s.step_number == 1]
        assert [s.kind for s in iteration_one] == [
            StepKind.REASONING,
            StepKind.ACTION,
            StepKind.OBSERVATION,
        ] * 2
        assert iteration_one[1].action.arguments == {"text": "first"}
        assert iteration_one[4].action.arguments == {"text": "second"}

        conversation = model.received[1]
        assert [m.role for m in conversation] == [
            "system", "user", "assistant", "tool", "assistant", "tool",
        ]
        assert [m.tool_call_id for m in conversation if m.role == "tool"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_final_answer_on_last_allowed_iteration_is_success(self):
        engine = make_engine(ScriptedModel(tool_call(), final("made it")))
        result = await engine.execute(make_agent(max_iterations=2), "go", "user-1")

        assert result.status == ExecutionStatus.SUCCESS
        assert result.output == "made it"
        assert result.iterations == 2


class TestMaxIterations:
    @pytest.mark.asyncio
    async def test_never_finishing_model(self):
        model = ScriptedModel(tool_call())
        engine = make_engine(model)
        result = await engine.execute(make_agent(max_iterations=3), "Loop forever", "user-1")

        assert result.status == ExecutionStatus.MAX_ITERATIONS
        assert result.output == MAX_ITERATIONS_MESSAGE
        assert result.iterations == 3
        assert model.call_count == 3
        assert result.error is None

    @pytest.mark.asyncio
    async def test_every_action_followed_by_observation(self):
        engine = make_engine(ScriptedModel(tool_call()))
        result = await engine.execute(make_agent(max_iterations=3), "go", "user-1")

        numbers = [s.step_number for s in result.steps]
        assert numbers == sorted(numbers)
        for index, step in enumerate(result.steps):
            if step.kind == StepKind.ACTION:
                following = result.steps[index + 1]
                assert following.kind == StepKind.OBSERVATION
                assert following.step_number == step.step_number


class TestTimeout:
    @pytest.mark.asyncio
    async def test_zero_timeout_fires_before_model_call(self):
        model = ScriptedModel(final("never"))
        engine = make_engine(model)
        result = await engine.execute(make_agent(timeout_seconds=0), "hi", "user-1")

        assert result.status == ExecutionStatus.TIMEOUT
        assert result.output == TIMEOUT_MESSAGE
        assert model.call_count == 0
        assert result.tokens_used == 0
        assert result.cost == 0
        assert result.steps == []

    @pytest.mark.asyncio
    async def test_timeout_checked_at_iteration_boundary(self):
        clock = FakeClock()

        class SlowModel(ScriptedModel):
            async def chat(self, messages, options):
                clock.now += 100
                return await super().chat(messages, options)

        model = SlowModel(tool_call(), final("too late"))
        engine = make_engine(model, clock=clock)
        result = await engine.execute(make_agent(timeout_seconds=60), "hi", "user-1")

        # The slow call itself completes; only the next iteration is refused
        assert model.call_count == 1
        assert result.status == ExecutionStatus.TIMEOUT
        assert [s.kind for s in result.steps] == [
            StepKind.REASONING,
            StepKind.ACTION,
            StepKind.OBSERVATION,
        ]
        assert result.usage == Usage(prompt_tokens=20, completion_tokens=8)
        assert result.duration_ms == 100_000


class TestErrors:
    @pytest.mark.asyncio
    async def test_gateway_failure_on_first_iteration(self):
        engine = make_engine(ScriptedModel(ProviderError("provider down")))
        result = await engine.execute(make_agent(), "hi", "user-1")

        assert result.status == ExecutionStatus.ERROR
        assert result.error == "provider down"
        assert result.output == ""
        assert result.tokens_used == 0

    @pytest.mark.asyncio
    async def test_gateway_failure_keeps_partial_totals(self):
        engine = make_engine(ScriptedModel(tool_call(), RuntimeError("connection reset")))
        result = await engine.execute(make_agent(), "hi", "user-1")

        assert result.status == ExecutionStatus.ERROR
        assert result.error == "connection reset"
        assert result.usage == Usage(prompt_tokens=20, completion_tokens=8)
        assert len(result.steps) == 3
        assert result.cost > 0

    @pytest.mark.asyncio
    async def test_unsupported_model_becomes_error_status(self):
        engine = make_engine(ScriptedModel(final("unused")))
        result = await engine.execute(make_agent(model="llama-3"), "hi", "user-1")

        assert result.status == ExecutionStatus.ERROR
        assert result.error == "Unsupported model: llama-3"

    @pytest.mark.asyncio
    async def test_unknown_tool_continues_execution(self):
        model = ScriptedModel(tool_call(name="nonexistent", arguments={}), final("recovered"))
        engine = make_engine(model)
        result = await engine.execute(make_agent(), "Call bad tool", "user-1")

        observation = result.steps[2]
        assert observation.kind == StepKind.OBSERVATION
        assert '"success": false' in observation.content
        assert "Unknown tool: nonexistent" in observation.content
        assert model.call_count == 2
        assert result.status == ExecutionStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_executor_exception_becomes_error_observation(self):
        model = ScriptedModel(tool_call(), final("recovered"))
        engine = make_engine(model, executor=ExplodingExecutor())
        result = await engine.execute(make_agent(), "go", "user-1")

        assert result.steps[2].content == "Error: executor exploded"
        assert model.received[1][-1].content == "Error: executor exploded"
        assert result.status == ExecutionStatus.SUCCESS


class TestAccounting:
    @pytest.mark.asyncio
    async def test_usage_accumulates_across_iterations(self):
        engine = make_engine(ScriptedModel(tool_call(), final("done", prompt=30, completion=12)))
        result = await engine.execute(make_agent(), "go", "user-1")

        assert result.usage.prompt_tokens == 50
        assert result.usage.completion_tokens == 20
        assert result.usage.total_tokens == 70
        assert result.tokens_used == 70

    @pytest.mark.asyncio
    async def test_cost_uses_price_table(self):
        prices = PriceTable({"fake-model": ModelPricing(input_rate=0.5, output_rate=2.0)})
        engine = make_engine(ScriptedModel(final("done", prompt=4, completion=3)), price_table=prices)
        result = await engine.execute(make_agent(), "go", "user-1")

        assert result.cost == pytest.approx(4 * 0.5 + 3 * 2.0)

    @pytest.mark.asyncio
    async def test_unknown_model_uses_default_rates(self):
        prices = PriceTable({}, default=ModelPricing(input_rate=1.0, output_rate=1.0))
        engine = make_engine(ScriptedModel(final("done", prompt=4, completion=3)), price_table=prices)
        result = await engine.execute(make_agent(), "go", "user-1")

        assert result.cost == pytest.approx(7.0)

    @pytest.mark.asyncio
    async def test_cost_never_decreases(self):
        model = ScriptedModel(tool_call(), tool_call(call_id="call_2"), final("done"))
        engine = make_engine(model)
        running = []

        @engine.hook("after_model_call")
        async def track(event):
            running.append(event.cost)

        result = await engine.execute(make_agent(), "go", "user-1")

        assert len(running) == 3
        assert all(cost >= 0 for cost in running)
        assert result.cost == pytest.approx(sum(running))


class TestSyncRun:
    def test_run_wraps_execute(self):
        engine = make_engine(ScriptedModel(final("Done.")))
        result = engine.run(make_agent(), "hi", "user-1")
        assert result.status == ExecutionStatus.SUCCESS
        assert result.output == "Done."


class TestSystemPrompt:
    def test_lists_tools_after_base_prompt(self):
        prompt = build_system_prompt("Base prompt.", (EchoTool().spec(),))
        assert prompt.startswith("Base prompt.\n\n")
        assert "ReAct" in prompt
        assert "- echo: Echoes input" in prompt
        assert prompt.index("ReAct") < prompt.index("- echo")

    def test_without_tools(self):
        prompt = build_system_prompt("Base prompt.", ())
        assert "Available tools:" in prompt
        assert "no tools attached" in prompt


class TestFromSettings:
    def test_uses_configured_sampling_and_official_tools(self):
        settings = EngineSettings(
            _env_file=None,
            openai_api_key="sk-test",
            anthropic_api_key=None,
            default_temperature=0.2,
            default_max_tokens=512,
        )
        engine = ExecutionEngine.from_settings(settings)

        assert engine.temperature == 0.2
        assert engine.max_tokens == 512
        assert engine.executor.has_tool("web_search")
        assert engine.gateway.route("gpt-4").name == "openai"

    def test_custom_executor_is_kept(self):
        executor = ToolExecutor([EchoTool()])
        engine = ExecutionEngine.from_settings(
            EngineSettings(_env_file=None, openai_api_key=None, anthropic_api_key=None),
            executor=executor,
        )
        assert engine.executor is executor
