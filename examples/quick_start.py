"""Minimal agent-engine example with a step hook. Requires OPENAI_API_KEY."""

from agent_engine import (
    AgentConfig,
    ExecutionEngine,
    configure_logging,
)

configure_logging()

engine = ExecutionEngine.from_settings()

agent = AgentConfig.from_settings(
    id="researcher",
    system_prompt="You are a concise research assistant.",
    tools=(engine.executor.tools["web_search"].spec(),),
)


@engine.hook("on_step")
async def on_step(event):
    step = event.step
    detail = step.action.to_dict() if step.action else step.content
    print(f"[{step.step_number}] {step.kind.value}: {detail}")


if __name__ == "__main__":
    result = engine.run(agent, "What's the population of Tokyo?", caller_id="demo-user")
    print(f"{result.status.value}: {result.output}")
    print(f"tokens={result.tokens_used} cost=${result.cost:.4f} time={result.duration_ms}ms")
