import json
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel

from agent_engine.agent import ToolSpec


class ToolInput(BaseModel):
    """Subclass this for tool-specific input models."""


@dataclass
class ToolResult:
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        return result

    def to_observation(self) -> str:
        """Serialize the result as the text the model observes."""
        return json.dumps(self.to_dict(), default=str)


class Tool:
    name: str
    description: str
    input_model: type[BaseModel]

    def schema(self) -> dict:
        """Return JSON schema from Pydantic model."""
        return self.input_model.model_json_schema()

    def spec(self, config: Optional[dict] = None) -> ToolSpec:
        """Describe this tool for attachment to an agent."""
        return ToolSpec(
            name=self.name,
            description=self.description,
            parameters=self.schema(),
            config=config,
        )

    def parse_arguments(self, arguments: dict) -> BaseModel:
        return self.input_model.model_validate(arguments or {})

    async def execute(self, arguments: dict) -> ToolResult:
        """Run the tool. Always async; sync tools wrap sync code.

        Raise ToolExecutionError (or any exception) to report failure; the
        executor turns it into a failed ToolResult.
        """
        raise NotImplementedError
