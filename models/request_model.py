import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .task_model import AgentCredentials, AutonomyMode, ProjectState, ProjectStatus, Task


class TaskInput(BaseModel):
    id: Optional[str] = Field(None, description="Identificador opcional da tarefa")
    title: Optional[str] = Field(None, max_length=300)
    description: Optional[str] = Field(None, max_length=5000)
    prompt: Optional[str] = Field(None, min_length=1)


class CredentialsInput(BaseModel):
    coding_api_key: Optional[SecretStr] = None
    coding_webhook_secret: Optional[SecretStr] = None
    planning_token: Optional[SecretStr] = None
    planning_gateway_url: Optional[str] = None
    github_token: Optional[SecretStr] = None

    def to_credentials(self) -> Optional[AgentCredentials]:
        if not (self.coding_api_key or self.planning_token):
            return None
        return AgentCredentials(**self.model_dump())


class StartRequest(BaseModel):
    idea: str = Field(..., min_length=1, max_length=2000, description="Ideia do produto")
    repository: str = Field(..., min_length=1, max_length=500, description="owner/name ou URL do repositório")
    branch: str = Field("main", max_length=100)
    autonomy_mode: AutonomyMode = AutonomyMode.BUILDER
    tasks: Optional[list[TaskInput]] = None
    credentials: Optional[CredentialsInput] = None


class ApproveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId", min_length=1)


class StartResponse(BaseModel):
    project_id: Optional[str] = None
    status: str
    agent_id: Optional[str] = None
    message: str
    outcome: Optional[dict[str, Any]] = None
    decision: Optional[dict[str, Any]] = None


class ProjectView(BaseModel):
    """Visão pública do projeto (sem credenciais)"""

    project_id: str
    idea: str
    repository: str
    branch: str
    status: ProjectStatus
    current_task_index: int
    total_tasks: int
    iteration: int
    max_iterations: int
    current_agent_id: Optional[str] = None
    autonomy_mode: AutonomyMode
    outcome: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_state(cls, state: ProjectState) -> "ProjectView":
        return cls(
            project_id=state.project_id,
            idea=state.idea,
            repository=state.repository.url,
            branch=state.repository.branch,
            status=state.status,
            current_task_index=state.current_index,
            total_tasks=len(state.tasks),
            iteration=state.iteration,
            max_iterations=state.max_iterations,
            current_agent_id=state.current_agent_id,
            autonomy_mode=state.autonomy_mode,
            outcome=state.outcome,
            created_at=state.created_at,
            updated_at=state.updated_at,
        )


def tasks_from_input(task_inputs: Optional[list[TaskInput]], idea: str) -> list[Task]:
    """Normaliza tarefas enviadas pelo chamador, descartando entradas sem prompt e sem título"""
    tasks = []
    for task_input in task_inputs or []:
        if not (task_input.prompt or task_input.title):
            continue
        tasks.append(
            Task(
                id=task_input.id or f"task_{uuid.uuid4().hex[:7]}",
                title=task_input.title or "Task",
                description=task_input.description or "",
                prompt=task_input.prompt or task_input.title or idea,
            )
        )
    return tasks
