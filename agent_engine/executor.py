"""Tool dispatch for agent-engine.

The executor is the only boundary between an execution and side-effecting
tools. It never raises: every failure comes back as a failed ToolResult so a
broken tool can't abort the caller's loop.
"""

import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from pydantic import ValidationError

from agent_engine.exceptions import ToolExecutionError, ToolNotFound
from agent_engine.tools import Tool, ToolResult

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Dispatch tool calls by name to registered Tool handlers.

    The registry is fixed at construction; use ``extend`` to build a new
    executor with additional tools.

    Usage:
        executor = ToolExecutor([WebSearchTool(), HttpRequestTool()])
        result = await executor.execute("web_search", {"query": "python"})
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        registry: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in registry:
                raise ValueError(f"Tool '{tool.name}' is already registered")
            registry[tool.name] = tool
        self._tools = MappingProxyType(registry)

    @property
    def tools(self) -> Mapping[str, Tool]:
        return self._tools

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def extend(self, *tools: Tool) -> "ToolExecutor":
        return ToolExecutor([*self._tools.values(), *tools])

    def _find_tool(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFound(f"Unknown tool: {name}")
        return tool

    async def execute(self, tool_name: str, arguments: dict) -> ToolResult:
        logger.debug("Executing tool %s with %s", tool_name, arguments)
        try:
            tool = self._find_tool(tool_name)
            return await tool.execute(arguments or {})
        except ValidationError as e:
            logger.warning("Invalid arguments for tool %s: %s", tool_name, e)
            return ToolResult.fail(f"Invalid arguments for tool '{tool_name}': {e}")
        except (ToolNotFound, ToolExecutionError) as e:
            logger.error("Tool execution error: %s (%s)", tool_name, e)
            return ToolResult.fail(str(e))
        except Exception as e:
            logger.exception("Tool %s raised unexpectedly", tool_name)
            return ToolResult.fail(str(e) or e.__class__.__name__)
