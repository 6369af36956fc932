import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ToolCall:
    id: str
    tool_name: str
    arguments: dict


@dataclass
class Message:
    role: str  # "system" | "user" | "assistant" | "tool"
    content: str
    name: Optional[str] = None  # Tool name on tool-result messages
    tool_call_id: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None  # For assistant messages with tool calls


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
        )

    def to_dict(self) -> dict:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    MAX_ITERATIONS = "max_iterations"


class StepKind(str, Enum):
    REASONING = "reasoning"
    ACTION = "action"
    OBSERVATION = "observation"
    FINAL = "final"


@dataclass(frozen=True)
class StepAction:
    tool_name: str
    arguments: dict

    def to_dict(self) -> dict:
        return {"tool": self.tool_name, "arguments": self.arguments}


@dataclass(frozen=True)
class ExecutionStep:
    """One entry of the execution trace. Never mutated once recorded."""

    step_number: int
    kind: StepKind
    content: Optional[str] = None  # reasoning, observation and final text
    action: Optional[StepAction] = None
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "step_number": self.step_number,
            "step_type": self.kind.value,
            "content": self.content,
            "action": self.action.to_dict() if self.action else None,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ExecutionResult:
    execution_id: str
    agent_id: str
    caller_id: str
    status: ExecutionStatus
    output: str
    steps: list[ExecutionStep]
    usage: Usage
    cost: float
    duration_ms: int
    iterations: int
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def tokens_used(self) -> int:
        return self.usage.total_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "agent_id": self.agent_id,
            "caller_id": self.caller_id,
            "status": self.status.value,
            "output": self.output,
            "steps": [step.to_dict() for step in self.steps],
            "usage": self.usage.to_dict(),
            "cost": self.cost,
            "duration_ms": self.duration_ms,
            "iterations": self.iterations,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class ExecutionTrace:
    """Single-writer accumulator for one execution.

    Owns the step log, the running usage and cost totals, the iteration
    counter and the terminal status. The engine creates one per execution and
    is the only code that writes to it.
    """

    def __init__(self, agent_id: str, caller_id: str, execution_id: Optional[str] = None):
        self.execution_id = execution_id or str(uuid.uuid4())
        self.agent_id = agent_id
        self.caller_id = caller_id
        self.started_at = utc_now()
        self.steps: list[ExecutionStep] = []
        self.usage = Usage()
        self.cost = 0.0
        self.iterations = 0
        self.status: Optional[ExecutionStatus] = None
        self.output = ""
        self.error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.status is not None

    def next_iteration(self) -> int:
        self.iterations += 1
        return self.iterations

    def record_step(
        self,
        kind: StepKind,
        content: Optional[str] = None,
        action: Optional[StepAction] = None,
    ) -> ExecutionStep:
        step = ExecutionStep(
            step_number=self.iterations,
            kind=kind,
            content=content,
            action=action,
        )
        self.steps.append(step)
        return step

    def add_usage(self, usage: Usage, cost: float) -> None:
        self.usage = self.usage + usage
        self.cost += cost

    def finish(
        self,
        status: ExecutionStatus,
        output: str = "",
        error: Optional[str] = None,
    ) -> None:
        self.status = status
        self.output = output
        self.error = error

    def to_result(self, duration_ms: int) -> ExecutionResult:
        if self.status is None:
            raise RuntimeError("Execution trace has no terminal status")
        return ExecutionResult(
            execution_id=self.execution_id,
            agent_id=self.agent_id,
            caller_id=self.caller_id,
            status=self.status,
            output=self.output,
            steps=list(self.steps),
            usage=self.usage,
            cost=self.cost,
            duration_ms=duration_ms,
            iterations=self.iterations,
            error=self.error,
            started_at=self.started_at,
            completed_at=utc_now(),
        )
