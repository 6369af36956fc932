class AgentEngineError(Exception):
    """Base exception for agent-engine errors."""


class UnsupportedModel(AgentEngineError):
    """Raised when no model adaptor accepts the requested model identifier."""


class ProviderError(AgentEngineError):
    """Raised when a model provider call fails or returns a malformed response."""


class ToolNotFound(AgentEngineError):
    """Raised when the model calls a tool that isn't registered."""


class ToolExecutionError(AgentEngineError):
    """Raised by a tool handler to report a failed invocation."""


class AgentNotFound(AgentEngineError):
    """Raised when an agent configuration can't be loaded from the store."""


class ExecutionNotFound(AgentEngineError):
    """Raised when an execution record can't be loaded from the store."""
