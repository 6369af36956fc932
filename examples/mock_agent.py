#!/usr/bin/env python3
"""Offline example of agent-engine with a scripted model.

Runs a full execution, persists it to an in-memory SQLite store and prints
the stored step log. No API key needed: a scripted ModelAdaptor stands in
for the provider, and the built-in tools fall back to their unconfigured
placeholders.

Run:
    python examples/mock_agent.py
"""

import asyncio
import sys

from agent_engine import (
    AgentConfig,
    AgentRunner,
    ChatOptions,
    ChatResponse,
    ExecutionEngine,
    LLMGateway,
    Message,
    ModelAdaptor,
    SQLiteExecutionStore,
    ToolCall,
    Usage,
    default_registry,
)


class ScriptedAdaptor(ModelAdaptor):
    """Claims ``mock-`` models and replays canned responses in order."""

    name = "mock"
    prefixes = ("mock-",)

    def __init__(self):
        self.call_count = 0
        self.responses = [
            ChatResponse(
                content="I should look this up first.",
                tool_calls=[
                    ToolCall(
                        id="call-001",
                        tool_name="web_search",
                        arguments={"query": "weather in São Paulo"},
                    )
                ],
                usage=Usage(prompt_tokens=120, completion_tokens=18),
            ),
            ChatResponse(
                content="Now I'll let the team know.",
                tool_calls=[
                    ToolCall(
                        id="call-002",
                        tool_name="slack_notify",
                        arguments={"channel": "#weather", "message": "Forecast checked"},
                    )
                ],
                usage=Usage(prompt_tokens=210, completion_tokens=22),
            ),
            ChatResponse(
                content="It's partly cloudy in São Paulo and the team has been notified.",
                usage=Usage(prompt_tokens=260, completion_tokens=15),
            ),
        ]

    async def chat(self, messages: list[Message], options: ChatOptions) -> ChatResponse:
        if self.call_count >= len(self.responses):
            return ChatResponse(content="(Scripted adaptor ran out of responses)")
        response = self.responses[self.call_count]
        self.call_count += 1
        return response


async def main() -> int:
    executor = default_registry()
    engine = ExecutionEngine(gateway=LLMGateway([ScriptedAdaptor()]), executor=executor)

    async with SQLiteExecutionStore(":memory:") as store:
        await store.save_agent(
            AgentConfig(
                id="weather-bot",
                system_prompt="You report the weather and notify the team.",
                model="mock-1",
                max_iterations=5,
                timeout_seconds=30,
                tools=(
                    executor.tools["web_search"].spec(),
                    executor.tools["slack_notify"].spec(),
                ),
            )
        )

        runner = AgentRunner(engine, store)
        result = await runner.run("weather-bot", "How's the weather in São Paulo?", "demo-user")
        record = await store.get_execution(result.execution_id)

    print(f"Execution {record.id}: {record.status.value} after {record.iterations} iterations")
    print(f"Tokens: {record.tokens_used}  Cost: ${record.cost:.6f}\n")
    for step in record.steps:
        detail = step.action or step.reasoning or step.observation
        print(f"  [{step.step_number}] {step.step_type:<11} {detail}")
    print(f"\nOutput: {record.output}")
    return 0 if result.status.value == "success" else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
