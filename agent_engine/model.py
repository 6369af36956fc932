from dataclasses import dataclass, field
from typing import Optional, Sequence

from agent_engine.agent import ToolSpec
from agent_engine.execution import Message, ToolCall, Usage


@dataclass
class ChatOptions:
    model: str
    tools: Sequence[ToolSpec] = ()
    temperature: float = 0.7
    max_tokens: int = 4096

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be within [0, 2], got {self.temperature}")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be a positive integer")


@dataclass
class ChatResponse:
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    model: Optional[str] = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class ModelAdaptor:
    """One model provider behind the gateway's chat contract.

    Subclasses set ``prefixes`` (or override ``supports``) to claim model
    identifiers, and implement ``chat``.
    """

    name: str = "model"
    prefixes: tuple[str, ...] = ()

    def supports(self, model: str) -> bool:
        return model.startswith(self.prefixes) if self.prefixes else False

    async def chat(self, messages: list[Message], options: ChatOptions) -> ChatResponse:
        """Call the model with messages and the tools available this turn."""
        raise NotImplementedError
