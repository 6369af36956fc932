"""Hook system for agent-engine.

Lets callers observe an execution as it runs (progress streaming, audit,
metrics) without modifying the engine. Handlers are observers only: they
receive event data and can't change the course of the execution.

Architecture:
- HookRegistry is the CORE implementation
- Decorator (@hooks.on) and Middleware are convenience wrappers
- Everything goes through HookRegistry
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from agent_engine.execution import utc_now

logger = logging.getLogger(__name__)


class HookEvent(str, Enum):
    """Available hook points in an execution."""

    BEFORE_RUN = "before_run"
    AFTER_RUN = "after_run"

    BEFORE_ITERATION = "before_iteration"
    AFTER_MODEL_CALL = "after_model_call"

    BEFORE_TOOL_CALL = "before_tool_call"
    AFTER_TOOL_CALL = "after_tool_call"

    ON_STEP = "on_step"


# ============================================================================
# Hook Event Data Classes
# ============================================================================


@dataclass
class BeforeRunEventData:
    """Called before the first iteration."""

    execution_id: str
    agent: Any  # AgentConfig instance
    input: str
    caller_id: str
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class AfterRunEventData:
    """Called once the ExecutionResult is assembled, whatever the status."""

    result: Any  # ExecutionResult instance
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class BeforeIterationEventData:
    """Called after the timeout check passes, before the model call."""

    execution_id: str
    iteration: int
    elapsed_ms: float


@dataclass
class AfterModelCallEventData:
    """Called after the gateway returns a response."""

    execution_id: str
    iteration: int
    response: Any  # ChatResponse instance
    response_time_ms: float
    cost: float


@dataclass
class BeforeToolCallEventData:
    execution_id: str
    iteration: int
    tool_name: str
    arguments: Dict[str, Any]


@dataclass
class AfterToolCallEventData:
    execution_id: str
    iteration: int
    tool_name: str
    result: Optional[Any]  # ToolResult, None when the executor raised
    observation: str
    execution_time_ms: float


@dataclass
class StepEventData:
    """Called for every recorded ExecutionStep, in trace order."""

    execution_id: str
    step: Any  # ExecutionStep instance


# ============================================================================
# Hook Registry
# ============================================================================


class HookRegistry:
    """Central registry for all hooks.

    Supports both decorator-style and direct registration.

    Usage:
        hooks = HookRegistry()

        @hooks.on('on_step')
        async def stream_step(event):
            await channel.publish(event.step.to_dict())

        # Or direct registration
        async def my_hook(event):
            pass
        hooks.register_handler('after_run', my_hook)
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {
            event.value: [] for event in HookEvent
        }

    def on(self, hook_name: str):
        """Decorator for registering hook handlers."""

        def decorator(func: Callable) -> Callable:
            self.register_handler(hook_name, func)
            return func

        return decorator

    def register_handler(self, hook_name: str, handler: Callable) -> None:
        """Register an async hook handler.

        Raises:
            ValueError: If hook_name is not valid
        """
        if hook_name not in self._handlers:
            valid_hooks = [e.value for e in HookEvent]
            raise ValueError(
                f"Invalid hook name '{hook_name}'. Valid hooks: {valid_hooks}"
            )
        self._handlers[hook_name].append(handler)

    def register_middleware(self, middleware: "Middleware") -> None:
        """Register every hook method a Middleware instance defines."""
        for event in HookEvent:
            handler = getattr(middleware, event.value, None)
            if handler is not None and asyncio.iscoroutinefunction(handler):
                self.register_handler(event.value, handler)

    async def trigger(self, hook_name: str, event_data: Any) -> None:
        """Execute all handlers for a hook, in registration order."""
        for handler in self._handlers.get(hook_name, []):
            try:
                await handler(event_data)
            except Exception as e:
                # Log but don't fail execution
                logger.warning(f"Hook '{hook_name}' raised exception: {e}")

    def has_handlers(self, hook_name: str) -> bool:
        """Check if hook has any registered handlers."""
        return len(self._handlers.get(hook_name, [])) > 0

    def clear(self) -> None:
        """Clear all handlers (useful for testing)."""
        for hook_name in self._handlers:
            self._handlers[hook_name] = []


# ============================================================================
# Middleware Base Class (Optional, for stateful handlers)
# ============================================================================


class Middleware:
    """Base class for middleware (stateful hook handlers).

    Override methods for hooks you want to handle.

    Usage:
        class StepPrinter(Middleware):
            async def on_step(self, event):
                print(event.step.kind, event.step.content)

        hooks = HookRegistry()
        hooks.register_middleware(StepPrinter())
    """

    async def before_run(self, event: BeforeRunEventData) -> None:
        pass

    async def after_run(self, event: AfterRunEventData) -> None:
        pass

    async def before_iteration(self, event: BeforeIterationEventData) -> None:
        pass

    async def after_model_call(self, event: AfterModelCallEventData) -> None:
        pass

    async def before_tool_call(self, event: BeforeToolCallEventData) -> None:
        pass

    async def after_tool_call(self, event: AfterToolCallEventData) -> None:
        pass

    async def on_step(self, event: StepEventData) -> None:
        pass
