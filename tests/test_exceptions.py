from agent_engine.exceptions import (
    AgentEngineError,
    AgentNotFound,
    ExecutionNotFound,
    ProviderError,
    ToolExecutionError,
    ToolNotFound,
    UnsupportedModel,
)


class TestExceptionHierarchy:
    def test_all_exceptions_inherit_from_agent_engine_error(self):
        for exc_class in [
            UnsupportedModel,
            ProviderError,
            ToolNotFound,
            ToolExecutionError,
            AgentNotFound,
            ExecutionNotFound,
        ]:
            assert issubclass(exc_class, AgentEngineError)

    def test_agent_engine_error_inherits_from_exception(self):
        assert issubclass(AgentEngineError, Exception)

    def test_exceptions_carry_message(self):
        err = UnsupportedModel("Unsupported model: llama")
        assert str(err) == "Unsupported model: llama"
