import json
import logging
from typing import Any

from database.connection import DatabaseConnection
from models.task_model import ProjectState, RepositoryRef, Task

logger = logging.getLogger("AgentBridge")


def _load_json(value: Any) -> Any:
    if value is None or not isinstance(value, str):
        return value
    return json.loads(value)


def state_from_row(row: dict[str, Any]) -> ProjectState:
    return ProjectState(
        project_id=row["project_id"],
        idea=row["idea"],
        repository=RepositoryRef(url=row["repository_url"], branch=row["branch"]),
        tasks=[Task(**task) for task in _load_json(row["tasks"]) or []],
        current_index=row["current_index"],
        iteration=row["iteration"],
        max_iterations=row["max_iterations"],
        status=row["status"],
        current_agent_id=row["current_agent_id"],
        last_agent_id=row["last_agent_id"],
        task_attempts=row["task_attempts"],
        autonomy_mode=row["autonomy_mode"],
        outcome=_load_json(row["outcome"]),
        decision=_load_json(row["decision"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ProjectRepository:
    """Cópia sombra dos projetos no PostgreSQL. Credenciais nunca são gravadas."""

    @staticmethod
    async def upsert(state: ProjectState):
        pool = await DatabaseConnection.get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO projects (
                    project_id, idea, repository_url, branch, tasks, current_index, iteration,
                    max_iterations, status, current_agent_id, last_agent_id, task_attempts,
                    autonomy_mode, outcome, decision, created_at, updated_at
                )
                VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7, $8, $9, $10, $11, $12, $13, $14::jsonb, $15::jsonb, $16, $17)
                ON CONFLICT (project_id) DO UPDATE SET
                    tasks = EXCLUDED.tasks,
                    current_index = EXCLUDED.current_index,
                    iteration = EXCLUDED.iteration,
                    status = EXCLUDED.status,
                    current_agent_id = EXCLUDED.current_agent_id,
                    last_agent_id = EXCLUDED.last_agent_id,
                    task_attempts = EXCLUDED.task_attempts,
                    outcome = EXCLUDED.outcome,
                    decision = EXCLUDED.decision,
                    updated_at = EXCLUDED.updated_at
                """,
                state.project_id,
                state.idea,
                state.repository.url,
                state.repository.branch,
                json.dumps([task.model_dump() for task in state.tasks]),
                state.current_index,
                state.iteration,
                state.max_iterations,
                state.status.value,
                state.current_agent_id,
                state.last_agent_id,
                state.task_attempts,
                state.autonomy_mode.value,
                json.dumps(state.outcome) if state.outcome is not None else None,
                json.dumps(state.decision) if state.decision is not None else None,
                state.created_at,
                state.updated_at,
            )
            logger.debug(f"Projeto {state.project_id} persistido ({state.status.value})")

    @staticmethod
    async def load_all() -> list[ProjectState]:
        pool = await DatabaseConnection.get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch("SELECT * FROM projects ORDER BY created_at")

        states = []
        for row in rows:
            try:
                states.append(state_from_row(dict(row)))
            except (ValueError, TypeError) as e:
                logger.warning(f"Projeto {row['project_id']} ignorado na reidratação: {str(e)}")
        return states

    @staticmethod
    async def delete(project_id: str):
        pool = await DatabaseConnection.get_pool()
        async with pool.acquire() as conn:
            await conn.execute("DELETE FROM projects WHERE project_id = $1", project_id)
