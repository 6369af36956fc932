import json
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

from agent_engine.settings import EngineSettings, get_settings


@dataclass(frozen=True)
class ToolSpec:
    """A tool attached to an agent, as the model sees it.

    Args:
        name: Tool name the model uses to call it.
        description: Human-readable description shown to the model.
        parameters: JSON schema of the tool's arguments.
        config: Optional per-agent configuration blob.
    """

    name: str
    description: str = ""
    parameters: dict = field(default_factory=lambda: {"type": "object", "properties": {}})
    config: Optional[dict] = None

    @classmethod
    def from_function_schema(
        cls,
        schema: Union[str, dict],
        description: Optional[str] = None,
        config: Optional[dict] = None,
    ) -> "ToolSpec":
        """Build a ToolSpec from an OpenAI-style function definition.

        Accepts either ``{"type": "function", "function": {...}}`` or the bare
        ``{"name": ..., "parameters": ...}`` object, as a dict or JSON text.
        ``description`` is used when the schema itself carries none.
        """
        if isinstance(schema, str):
            schema = json.loads(schema)
        function = schema.get("function", schema)
        if "name" not in function:
            raise ValueError("Tool schema is missing a function name")
        return cls(
            name=function["name"],
            description=function.get("description") or description or "",
            parameters=function.get("parameters") or {"type": "object", "properties": {}},
            config=config,
        )

    def to_function_schema(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class AgentConfig:
    """Everything one execution needs to know about an agent."""

    id: str
    system_prompt: str
    model: str
    max_iterations: int = 10
    timeout_seconds: int = 300
    tools: tuple[ToolSpec, ...] = ()

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be a positive integer")
        if self.timeout_seconds < 0:
            raise ValueError("timeout_seconds must not be negative")
        # Lists are accepted for convenience but stored immutably
        object.__setattr__(self, "tools", tuple(self.tools))

    @classmethod
    def from_settings(
        cls,
        id: str,
        system_prompt: str,
        tools: Sequence[ToolSpec] = (),
        settings: Optional[EngineSettings] = None,
    ) -> "AgentConfig":
        """Build a config using the configured default model and limits."""
        settings = settings or get_settings()
        return cls(
            id=id,
            system_prompt=system_prompt,
            model=settings.default_model,
            max_iterations=settings.default_max_iterations,
            timeout_seconds=settings.default_timeout_seconds,
            tools=tuple(tools),
        )

    def tool_names(self) -> list[str]:
        return [tool.name for tool in self.tools]
