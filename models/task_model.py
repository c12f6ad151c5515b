"""
Modelos de dados do núcleo de orquestração: tarefas, verificação, falhas e estado do projeto
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProjectStatus(str, Enum):
    PENDING_PLAN = "pending_plan"
    RUNNING = "running"
    PENDING_FIX = "pending_fix"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETED = "completed"
    FAILED = "failed"


# Status em que o projeto não aceita novas rodadas de verificação
IDLE_STATUSES = frozenset({ProjectStatus.AWAITING_APPROVAL, ProjectStatus.COMPLETED, ProjectStatus.FAILED})


class AutonomyMode(str, Enum):
    ASSIST = "assist"
    BUILDER = "builder"
    AUTOPILOT = "autopilot"


class Task(BaseModel):
    """Unidade de trabalho entregue ao coding agent. `prompt` é a instrução exata enviada."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Identificador da tarefa")
    title: str = Field("Task", description="Título curto")
    description: str = Field("", description="Descrição da tarefa")
    prompt: str = Field(..., description="Instrução exata para o coding agent")


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    errors: list[str] = Field(default_factory=list)
    stdout: Optional[str] = None
    stderr: Optional[str] = None


class FailureCategory(str, Enum):
    DEPENDENCY = "dependency"
    SYNTAX = "syntax"
    ARCHITECTURE = "architecture"
    ENVIRONMENT = "environment"
    UNKNOWN = "unknown"


class RetryAction(str, Enum):
    RETRY = "retry"
    ESCALATE = "escalate"
    ABORT = "abort"


class RetryStrategy(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: RetryAction
    max_attempts: int = Field(..., ge=1)
    attempt_number: int = Field(..., ge=0)
    modified_prompt: Optional[str] = None


class FailureAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: FailureCategory
    root_cause_hint: str
    retry_strategy: RetryStrategy
    suggested_prompt: Optional[str] = None
    should_escalate: bool


class RepositoryRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="owner/name ou URL http(s) do repositório")
    branch: str = Field("main", description="Branch alvo")


class AgentCredentials(BaseModel):
    """Override de credenciais por projeto. Nunca é logado nem devolvido aos chamadores."""

    model_config = ConfigDict(frozen=True)

    coding_api_key: Optional[SecretStr] = None
    coding_webhook_secret: Optional[SecretStr] = None
    planning_token: Optional[SecretStr] = None
    planning_gateway_url: Optional[str] = None
    github_token: Optional[SecretStr] = None


class ProjectState(BaseModel):
    """
    Raiz de agregado do motor: estado mutável de um projeto, possuído pelo ProjectStore.
    """

    project_id: str
    idea: str
    repository: RepositoryRef
    tasks: list[Task] = Field(default_factory=list)
    current_index: int = Field(0, ge=0)
    iteration: int = Field(0, ge=0)
    max_iterations: int = Field(..., ge=1)
    status: ProjectStatus = ProjectStatus.RUNNING
    current_agent_id: Optional[str] = None
    last_agent_id: Optional[str] = None
    task_attempts: int = Field(0, ge=0, description="Falhas consecutivas de verificação da tarefa atual")
    autonomy_mode: AutonomyMode = AutonomyMode.BUILDER
    credentials_override: Optional[AgentCredentials] = Field(default=None, exclude=True, repr=False)
    outcome: Optional[dict[str, Any]] = None
    decision: Optional[dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def current_task(self) -> Optional[Task]:
        if self.current_index >= len(self.tasks):
            return None
        return self.tasks[self.current_index]

    def touch(self) -> None:
        self.updated_at = utc_now()


class CompletionOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    next_task: Optional[Task] = None
    status: ProjectStatus
    should_continue: bool
