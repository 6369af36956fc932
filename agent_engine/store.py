"""Durable storage for agent configurations, execution records and step logs."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol, Sequence

import aiosqlite

from agent_engine.agent import AgentConfig, ToolSpec
from agent_engine.exceptions import AgentNotFound, ExecutionNotFound
from agent_engine.execution import (
    ExecutionResult,
    ExecutionStatus,
    ExecutionStep,
    StepKind,
    utc_now,
)
from agent_engine.settings import EngineSettings, get_settings

SCHEMA = """
CREATE TABLE IF NOT EXISTS agents (
    id TEXT PRIMARY KEY,
    system_prompt TEXT NOT NULL,
    model TEXT NOT NULL,
    max_iterations INTEGER NOT NULL DEFAULT 10,
    timeout_seconds INTEGER NOT NULL DEFAULT 300,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS agent_tools (
    agent_id TEXT NOT NULL REFERENCES agents(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    schema TEXT NOT NULL,
    configuration TEXT,
    PRIMARY KEY (agent_id, name)
);

CREATE TABLE IF NOT EXISTS executions (
    id TEXT PRIMARY KEY,
    agent_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    input TEXT NOT NULL,
    output TEXT,
    status TEXT NOT NULL DEFAULT 'running',
    iterations INTEGER DEFAULT 0,
    prompt_tokens INTEGER DEFAULT 0,
    completion_tokens INTEGER DEFAULT 0,
    tokens_used INTEGER DEFAULT 0,
    cost_usd REAL DEFAULT 0,
    execution_time_ms INTEGER,
    error_message TEXT,
    started_at TIMESTAMP,
    completed_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS execution_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    execution_id TEXT NOT NULL REFERENCES executions(id) ON DELETE CASCADE,
    step_number INTEGER NOT NULL,
    step_type TEXT NOT NULL,
    reasoning TEXT,
    action TEXT,
    observation TEXT,
    created_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS usage_tracking (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    execution_id TEXT REFERENCES executions(id) ON DELETE CASCADE,
    tokens_used INTEGER DEFAULT 0,
    cost_usd REAL DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_executions_agent_id ON executions(agent_id);
CREATE INDEX IF NOT EXISTS idx_executions_user_id ON executions(user_id);
CREATE INDEX IF NOT EXISTS idx_execution_logs_execution_id ON execution_logs(execution_id);
CREATE INDEX IF NOT EXISTS idx_usage_tracking_user_id ON usage_tracking(user_id);
"""


@dataclass
class StepLogEntry:
    step_number: int
    step_type: str
    reasoning: Optional[str] = None
    action: Optional[dict] = None
    observation: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class ExecutionRecord:
    id: str
    agent_id: str
    caller_id: str
    input: str
    status: ExecutionStatus
    output: Optional[str] = None
    iterations: int = 0
    tokens_used: int = 0
    cost: float = 0.0
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    steps: list[StepLogEntry] = field(default_factory=list)


class ExecutionStore(Protocol):
    """Persistence consumed by AgentRunner."""

    async def get_agent(self, agent_id: str) -> AgentConfig:
        ...

    async def create_execution(
        self, execution_id: str, agent_id: str, caller_id: str, input_text: str
    ) -> None:
        ...

    async def finish_execution(self, result: ExecutionResult) -> None:
        ...

    async def append_steps(self, execution_id: str, steps: Sequence[ExecutionStep]) -> None:
        ...

    async def record_usage(
        self, caller_id: str, execution_id: str, tokens_used: int, cost: float
    ) -> None:
        ...


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class SQLiteExecutionStore:
    """SQLite implementation of ExecutionStore."""

    def __init__(self, db_path: str = ":memory:"):
        self._db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    @classmethod
    def from_settings(cls, settings: Optional[EngineSettings] = None) -> "SQLiteExecutionStore":
        return cls((settings or get_settings()).database_path)

    async def init(self) -> None:
        """Open the database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "SQLiteExecutionStore":
        await self.init()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Store not initialized")
        return self._conn

    # Agents
    async def save_agent(self, config: AgentConfig) -> None:
        """Insert or replace an agent and its attached tools."""
        await self.conn.execute(
            """
            INSERT OR REPLACE INTO agents
            (id, system_prompt, model, max_iterations, timeout_seconds, updated_at)
            VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            (
                config.id,
                config.system_prompt,
                config.model,
                config.max_iterations,
                config.timeout_seconds,
            ),
        )
        await self.conn.execute("DELETE FROM agent_tools WHERE agent_id = ?", (config.id,))
        for position, tool in enumerate(config.tools):
            await self.conn.execute(
                """
                INSERT INTO agent_tools
                (agent_id, position, name, description, schema, configuration)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    config.id,
                    position,
                    tool.name,
                    tool.description,
                    json.dumps(tool.to_function_schema()),
                    json.dumps(tool.config) if tool.config is not None else None,
                ),
            )
        await self.conn.commit()

    async def get_agent(self, agent_id: str) -> AgentConfig:
        cursor = await self.conn.execute(
            """
            SELECT id, system_prompt, model, max_iterations, timeout_seconds
            FROM agents WHERE id = ?
            """,
            (agent_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise AgentNotFound(f"Agent '{agent_id}' not found")

        cursor = await self.conn.execute(
            """
            SELECT description, schema, configuration
            FROM agent_tools WHERE agent_id = ?
            ORDER BY position ASC
            """,
            (agent_id,),
        )
        tools = [
            ToolSpec.from_function_schema(
                schema,
                description=description,
                config=json.loads(configuration) if configuration else None,
            )
            for description, schema, configuration in await cursor.fetchall()
        ]

        return AgentConfig(
            id=row[0],
            system_prompt=row[1],
            model=row[2],
            max_iterations=row[3],
            timeout_seconds=row[4],
            tools=tuple(tools),
        )

    # Executions
    async def create_execution(
        self, execution_id: str, agent_id: str, caller_id: str, input_text: str
    ) -> None:
        await self.conn.execute(
            """
            INSERT INTO executions (id, agent_id, user_id, input, status, started_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                execution_id,
                agent_id,
                caller_id,
                input_text,
                ExecutionStatus.RUNNING.value,
                _to_iso(utc_now()),
            ),
        )
        await self.conn.commit()

    async def finish_execution(self, result: ExecutionResult) -> None:
        await self.conn.execute(
            """
            UPDATE executions
            SET output = ?, status = ?, iterations = ?, prompt_tokens = ?,
                completion_tokens = ?, tokens_used = ?, cost_usd = ?,
                execution_time_ms = ?, error_message = ?, started_at = ?,
                completed_at = ?
            WHERE id = ?
            """,
            (
                result.output,
                result.status.value,
                result.iterations,
                result.usage.prompt_tokens,
                result.usage.completion_tokens,
                result.usage.total_tokens,
                result.cost,
                result.duration_ms,
                result.error,
                _to_iso(result.started_at),
                _to_iso(result.completed_at),
                result.execution_id,
            ),
        )
        await self.conn.commit()

    async def append_steps(self, execution_id: str, steps: Sequence[ExecutionStep]) -> None:
        for step in steps:
            reasoning = step.content if step.kind in (StepKind.REASONING, StepKind.FINAL) else None
            observation = step.content if step.kind == StepKind.OBSERVATION else None
            await self.conn.execute(
                """
                INSERT INTO execution_logs
                (execution_id, step_number, step_type, reasoning, action, observation, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    execution_id,
                    step.step_number,
                    step.kind.value,
                    reasoning,
                    json.dumps(step.action.to_dict(), default=str) if step.action else None,
                    observation,
                    _to_iso(step.created_at),
                ),
            )
        await self.conn.commit()

    async def record_usage(
        self, caller_id: str, execution_id: str, tokens_used: int, cost: float
    ) -> None:
        await self.conn.execute(
            """
            INSERT INTO usage_tracking (user_id, execution_id, tokens_used, cost_usd)
            VALUES (?, ?, ?, ?)
            """,
            (caller_id, execution_id, tokens_used, cost),
        )
        await self.conn.commit()

    async def get_execution(self, execution_id: str) -> ExecutionRecord:
        """Load an execution record with its step log in trace order."""
        cursor = await self.conn.execute(
            """
            SELECT id, agent_id, user_id, input, status, output, iterations,
                   tokens_used, cost_usd, execution_time_ms, error_message,
                   started_at, completed_at
            FROM executions WHERE id = ?
            """,
            (execution_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise ExecutionNotFound(f"Execution '{execution_id}' not found")

        record = self._row_to_record(row)
        cursor = await self.conn.execute(
            """
            SELECT step_number, step_type, reasoning, action, observation, created_at
            FROM execution_logs WHERE execution_id = ?
            ORDER BY id ASC
            """,
            (execution_id,),
        )
        record.steps = [
            StepLogEntry(
                step_number=step_row[0],
                step_type=step_row[1],
                reasoning=step_row[2],
                action=json.loads(step_row[3]) if step_row[3] else None,
                observation=step_row[4],
                created_at=step_row[5],
            )
            for step_row in await cursor.fetchall()
        ]
        return record

    async def list_executions(
        self,
        agent_id: Optional[str] = None,
        caller_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[ExecutionRecord]:
        """List executions newest first, without their step logs."""
        clauses = []
        params: list = []
        if agent_id is not None:
            clauses.append("agent_id = ?")
            params.append(agent_id)
        if caller_id is not None:
            clauses.append("user_id = ?")
            params.append(caller_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        cursor = await self.conn.execute(
            f"""
            SELECT id, agent_id, user_id, input, status, output, iterations,
                   tokens_used, cost_usd, execution_time_ms, error_message,
                   started_at, completed_at
            FROM executions {where}
            ORDER BY started_at DESC, rowid DESC
            LIMIT ?
            """,
            (*params, limit),
        )
        return [self._row_to_record(row) for row in await cursor.fetchall()]

    async def get_usage_total(self, caller_id: str) -> tuple[int, float]:
        """Total (tokens, cost) recorded for a caller."""
        cursor = await self.conn.execute(
            """
            SELECT COALESCE(SUM(tokens_used), 0), COALESCE(SUM(cost_usd), 0)
            FROM usage_tracking WHERE user_id = ?
            """,
            (caller_id,),
        )
        tokens, cost = await cursor.fetchone()
        return int(tokens), float(cost)

    def _row_to_record(self, row) -> ExecutionRecord:
        return ExecutionRecord(
            id=row[0],
            agent_id=row[1],
            caller_id=row[2],
            input=row[3],
            status=ExecutionStatus(row[4]),
            output=row[5],
            iterations=row[6] or 0,
            tokens_used=row[7] or 0,
            cost=row[8] or 0.0,
            duration_ms=row[9],
            error=row[10],
            started_at=row[11],
            completed_at=row[12],
        )
