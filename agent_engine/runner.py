import logging
import uuid

from agent_engine.engine import ExecutionEngine
from agent_engine.execution import ExecutionResult
from agent_engine.store import ExecutionStore

logger = logging.getLogger(__name__)


class AgentRunner:
    """Load an agent, execute it and persist what happened.

    The engine never touches storage; this is the caller that does. A record
    with status ``running`` is written before the engine starts, so even an
    execution that dies with the process leaves a trace behind.
    """

    def __init__(self, engine: ExecutionEngine, store: ExecutionStore):
        self.engine = engine
        self.store = store

    async def run(self, agent_id: str, input_text: str, caller_id: str) -> ExecutionResult:
        config = await self.store.get_agent(agent_id)

        execution_id = str(uuid.uuid4())
        await self.store.create_execution(execution_id, agent_id, caller_id, input_text)

        result = await self.engine.execute(
            config, input_text, caller_id, execution_id=execution_id
        )

        try:
            await self.store.append_steps(execution_id, result.steps)
        finally:
            # The terminal status is written even when the step log fails
            await self.store.finish_execution(result)
        await self.store.record_usage(caller_id, execution_id, result.tokens_used, result.cost)

        logger.info(
            "Execution %s persisted (agent=%s, status=%s)",
            execution_id,
            agent_id,
            result.status.value,
        )
        return result
