"""The ReAct execution engine.

One call to ``ExecutionEngine.execute`` drives one execution: it alternates
gateway calls with tool invocations until the model answers without calling
a tool, the iteration budget runs out, or the timeout check fires. Every
outcome, including failures, comes back as an ExecutionResult.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

from agent_engine.agent import AgentConfig, ToolSpec
from agent_engine.execution import (
    ExecutionResult,
    ExecutionStatus,
    ExecutionTrace,
    Message,
    StepAction,
    StepKind,
    ToolCall,
)
from agent_engine.executor import ToolExecutor
from agent_engine.gateway import LLMGateway
from agent_engine.hooks import (
    AfterModelCallEventData,
    AfterRunEventData,
    AfterToolCallEventData,
    BeforeIterationEventData,
    BeforeRunEventData,
    BeforeToolCallEventData,
    HookRegistry,
    Middleware,
    StepEventData,
)
from agent_engine.model import ChatOptions
from agent_engine.pricing import DEFAULT_PRICE_TABLE, PriceTable
from agent_engine.settings import EngineSettings, get_settings

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Execution timed out"
MAX_ITERATIONS_MESSAGE = "Maximum iterations reached without finding a final answer"

REACT_INSTRUCTIONS = """You are an AI agent using the ReAct (Reasoning + Acting) pattern. For each task:

1. **Reason**: Think step-by-step about what you need to do
2. **Act**: Use the appropriate tool if needed
3. **Observe**: Analyze the tool's output
4. **Repeat**: Continue until you have the final answer"""

FINAL_ANSWER_INSTRUCTIONS = """When you have the final answer, respond directly without calling any tools.

Always think carefully and explain your reasoning."""


def build_system_prompt(base_prompt: str, tools: Sequence[ToolSpec]) -> str:
    """Compose the single system message for an execution."""
    if tools:
        tool_lines = "\n".join(f"- {tool.name}: {tool.description}" for tool in tools)
    else:
        tool_lines = "- (no tools attached; answer directly)"

    return (
        f"{base_prompt}\n\n"
        f"{REACT_INSTRUCTIONS}\n\n"
        f"Available tools:\n{tool_lines}\n\n"
        f"{FINAL_ANSWER_INSTRUCTIONS}"
    )


class ExecutionEngine:
    """Bounded reasoning/action/observation loop over a gateway and a tool executor.

    The gateway, executor, price table and hooks are shared, read-only
    collaborators; all per-execution state lives in an ExecutionTrace and a
    conversation list created inside ``execute``, so one engine can serve
    concurrent executions.

    Args:
        gateway: Routes chat calls to a model provider.
        executor: Dispatches tool calls.
        price_table: Per-model token prices for cost estimates.
        hooks: Optional registry of execution observers.
        middlewares: Middleware instances registered into ``hooks``.
        temperature: Sampling temperature for every model call.
        max_tokens: Maximum output tokens for every model call.
        clock: Monotonic clock in seconds, used for timeout and duration.
    """

    def __init__(
        self,
        gateway: LLMGateway,
        executor: ToolExecutor,
        price_table: PriceTable = DEFAULT_PRICE_TABLE,
        hooks: Optional[HookRegistry] = None,
        middlewares: Optional[list[Middleware]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gateway = gateway
        self.executor = executor
        self.price_table = price_table
        self.hooks = hooks if hooks is not None else HookRegistry()
        for middleware in middlewares or []:
            self.hooks.register_middleware(middleware)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Optional[EngineSettings] = None,
        executor: Optional[ToolExecutor] = None,
        **kwargs,
    ) -> "ExecutionEngine":
        """Build an engine wired to the configured providers and official tools."""
        from agent_engine.builtin_tools import default_registry

        settings = settings or get_settings()
        return cls(
            gateway=LLMGateway.from_settings(settings),
            executor=executor or default_registry(settings),
            temperature=settings.default_temperature,
            max_tokens=settings.default_max_tokens,
            **kwargs,
        )

    def hook(self, hook_name: str):
        """Decorator for registering hooks directly on the engine."""
        return self.hooks.on(hook_name)

    def run(
        self,
        config: AgentConfig,
        input_text: str,
        caller_id: str,
        execution_id: Optional[str] = None,
    ) -> ExecutionResult:
        """Run an execution synchronously."""
        return asyncio.run(self.execute(config, input_text, caller_id, execution_id))

    async def execute(
        self,
        config: AgentConfig,
        input_text: str,
        caller_id: str,
        execution_id: Optional[str] = None,
    ) -> ExecutionResult:
        """Run one execution to a terminal status. Never raises.

        ``execution_id`` lets a caller that already created a record for the
        execution reuse its id; a fresh UUID is generated otherwise.
        """
        start = self._clock()
        trace = ExecutionTrace(
            agent_id=config.id, caller_id=caller_id, execution_id=execution_id
        )

        logger.info(
            "Starting agent execution %s (agent=%s, caller=%s)",
            trace.execution_id,
            config.id,
            caller_id,
        )

        try:
            await self.hooks.trigger(
                "before_run",
                BeforeRunEventData(
                    execution_id=trace.execution_id,
                    agent=config,
                    input=input_text,
                    caller_id=caller_id,
                ),
            )
            await self._loop(config, input_text, trace, start)
        except Exception as e:
            logger.exception("Execution %s failed", trace.execution_id)
            trace.finish(ExecutionStatus.ERROR, "", error=str(e) or e.__class__.__name__)

        result = trace.to_result(duration_ms=int((self._clock() - start) * 1000))

        await self.hooks.trigger("after_run", AfterRunEventData(result=result))
        logger.info(
            "Execution %s finished: status=%s iterations=%d tokens=%d cost=%.6f",
            result.execution_id,
            result.status.value,
            result.iterations,
            result.tokens_used,
            result.cost,
        )
        return result

    async def _loop(
        self,
        config: AgentConfig,
        input_text: str,
        trace: ExecutionTrace,
        start: float,
    ) -> None:
        messages = [
            Message(role="system", content=build_system_prompt(config.system_prompt, config.tools)),
            Message(role="user", content=input_text),
        ]
        options = ChatOptions(
            model=config.model,
            tools=config.tools,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        while trace.iterations < config.max_iterations:
            iteration = trace.next_iteration()

            elapsed = self._clock() - start
            if elapsed >= config.timeout_seconds:
                logger.warning(
                    "Execution %s timed out after %.1fs", trace.execution_id, elapsed
                )
                trace.finish(ExecutionStatus.TIMEOUT, TIMEOUT_MESSAGE)
                return

            logger.debug("Execution %s iteration %d", trace.execution_id, iteration)
            await self.hooks.trigger(
                "before_iteration",
                BeforeIterationEventData(
                    execution_id=trace.execution_id,
                    iteration=iteration,
                    elapsed_ms=elapsed * 1000,
                ),
            )

            model_start = self._clock()
            response = await self.gateway.chat(list(messages), options)
            model_time = (self._clock() - model_start) * 1000

            cost = self.price_table.cost(
                config.model,
                response.usage.prompt_tokens,
                response.usage.completion_tokens,
            )
            trace.add_usage(response.usage, cost)

            await self.hooks.trigger(
                "after_model_call",
                AfterModelCallEventData(
                    execution_id=trace.execution_id,
                    iteration=iteration,
                    response=response,
                    response_time_ms=model_time,
                    cost=cost,
                ),
            )

            if not response.has_tool_calls:
                await self._record(trace, StepKind.FINAL, content=response.content)
                trace.finish(ExecutionStatus.SUCCESS, response.content)
                return

            for tool_call in response.tool_calls:
                await self._handle_tool_call(trace, messages, response.content, tool_call)

        trace.finish(ExecutionStatus.MAX_ITERATIONS, MAX_ITERATIONS_MESSAGE)

    async def _handle_tool_call(
        self,
        trace: ExecutionTrace,
        messages: list[Message],
        reasoning: str,
        tool_call: ToolCall,
    ) -> None:
        await self._record(trace, StepKind.REASONING, content=reasoning)
        await self._record(
            trace,
            StepKind.ACTION,
            action=StepAction(tool_name=tool_call.tool_name, arguments=tool_call.arguments),
        )

        await self.hooks.trigger(
            "before_tool_call",
            BeforeToolCallEventData(
                execution_id=trace.execution_id,
                iteration=trace.iterations,
                tool_name=tool_call.tool_name,
                arguments=tool_call.arguments,
            ),
        )

        tool_start = self._clock()
        result = None
        try:
            result = await self.executor.execute(tool_call.tool_name, tool_call.arguments)
            observation = result.to_observation()
        except Exception as e:
            logger.error("Tool execution error (%s): %s", tool_call.tool_name, e)
            observation = f"Error: {e}"
        tool_time = (self._clock() - tool_start) * 1000

        await self.hooks.trigger(
            "after_tool_call",
            AfterToolCallEventData(
                execution_id=trace.execution_id,
                iteration=trace.iterations,
                tool_name=tool_call.tool_name,
                result=result,
                observation=observation,
                execution_time_ms=tool_time,
            ),
        )

        await self._record(trace, StepKind.OBSERVATION, content=observation)

        messages.append(Message(role="assistant", content=reasoning, tool_calls=[tool_call]))
        messages.append(
            Message(
                role="tool",
                content=observation,
                name=tool_call.tool_name,
                tool_call_id=tool_call.id,
            )
        )

    async def _record(self, trace: ExecutionTrace, kind: StepKind, **payload) -> None:
        step = trace.record_step(kind, **payload)
        await self.hooks.trigger(
            "on_step", StepEventData(execution_id=trace.execution_id, step=step)
        )
