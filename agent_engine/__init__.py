from agent_engine.adaptors.anthropic import AnthropicAdaptor
from agent_engine.adaptors.openai import OpenAIAdaptor
from agent_engine.agent import AgentConfig, ToolSpec
from agent_engine.builtin_tools import (
    DatabaseQueryTool,
    HttpRequestTool,
    SendEmailTool,
    SlackNotifyTool,
    WebSearchTool,
    builtin_tools,
    default_registry,
)
from agent_engine.engine import (
    MAX_ITERATIONS_MESSAGE,
    TIMEOUT_MESSAGE,
    ExecutionEngine,
    build_system_prompt,
)
from agent_engine.exceptions import (
    AgentEngineError,
    AgentNotFound,
    ExecutionNotFound,
    ProviderError,
    ToolExecutionError,
    ToolNotFound,
    UnsupportedModel,
)
from agent_engine.execution import (
    ExecutionResult,
    ExecutionStatus,
    ExecutionStep,
    ExecutionTrace,
    Message,
    StepAction,
    StepKind,
    ToolCall,
    Usage,
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
    HookEvent,
    HookRegistry,
    Middleware,
    StepEventData,
)
from agent_engine.model import ChatOptions, ChatResponse, ModelAdaptor
from agent_engine.pricing import DEFAULT_PRICE_TABLE, ModelPricing, PriceTable
from agent_engine.runner import AgentRunner
from agent_engine.settings import EngineSettings, configure_logging, get_settings
from agent_engine.store import ExecutionRecord, ExecutionStore, SQLiteExecutionStore
from agent_engine.tools import Tool, ToolInput, ToolResult

__all__ = [
    # Core
    "AgentConfig",
    "ExecutionEngine",
    "ExecutionResult",
    "ExecutionStatus",
    "ExecutionStep",
    "ExecutionTrace",
    "Message",
    "StepAction",
    "StepKind",
    "ToolCall",
    "Usage",
    "build_system_prompt",
    "MAX_ITERATIONS_MESSAGE",
    "TIMEOUT_MESSAGE",
    # Gateway
    "LLMGateway",
    "ChatOptions",
    "ChatResponse",
    "ModelAdaptor",
    "OpenAIAdaptor",
    "AnthropicAdaptor",
    # Tools
    "Tool",
    "ToolInput",
    "ToolResult",
    "ToolSpec",
    "ToolExecutor",
    "WebSearchTool",
    "SendEmailTool",
    "DatabaseQueryTool",
    "HttpRequestTool",
    "SlackNotifyTool",
    "builtin_tools",
    "default_registry",
    # Pricing
    "ModelPricing",
    "PriceTable",
    "DEFAULT_PRICE_TABLE",
    # Persistence
    "AgentRunner",
    "ExecutionRecord",
    "ExecutionStore",
    "SQLiteExecutionStore",
    # Settings
    "EngineSettings",
    "configure_logging",
    "get_settings",
    # Hooks
    "HookRegistry",
    "HookEvent",
    "Middleware",
    # Hook Event Data
    "BeforeRunEventData",
    "AfterRunEventData",
    "BeforeIterationEventData",
    "AfterModelCallEventData",
    "BeforeToolCallEventData",
    "AfterToolCallEventData",
    "StepEventData",
    # Exceptions
    "AgentEngineError",
    "AgentNotFound",
    "ExecutionNotFound",
    "ProviderError",
    "ToolExecutionError",
    "ToolNotFound",
    "UnsupportedModel",
]
