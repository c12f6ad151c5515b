"""
ProjectManager - máquina de estados do ciclo de vida dos projetos.

Transições síncronas sobre o agregado em memória; a persistência é um efeito colateral
disparado pelo chamador via `persist`.
"""

import logging
import time
import uuid
from typing import Optional

from config.constants import DEFAULT_MAX_ITERATIONS, PROJECT_ID_PREFIX
from models.task_model import (
    IDLE_STATUSES,
    AgentCredentials,
    AutonomyMode,
    CompletionOutcome,
    ProjectState,
    ProjectStatus,
    RepositoryRef,
    Task,
    VerificationResult,
)
from shared_context.project_store import ProjectStore

logger = logging.getLogger("AgentBridge")


class ProjectNotFoundError(LookupError):
    def __init__(self, project_id: str):
        super().__init__(f"Projeto não encontrado: {project_id}")
        self.project_id = project_id


class InvalidTransitionError(ValueError):
    """Transição pedida não é válida para o status atual do projeto"""

    def __init__(self, project_id: str, status: ProjectStatus, expected: ProjectStatus):
        super().__init__(f"Projeto {project_id} está em {status.value}, esperado {expected.value}")
        self.project_id = project_id
        self.status = status
        self.expected = expected


def generate_project_id() -> str:
    return f"{PROJECT_ID_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


class ProjectManager:
    def __init__(self, store: ProjectStore, repository=None, default_max_iterations: int = DEFAULT_MAX_ITERATIONS):
        self.store = store
        self.repository = repository
        self.default_max_iterations = default_max_iterations

    def create_project(
        self,
        idea: str,
        repository: RepositoryRef,
        tasks: list[Task],
        status: ProjectStatus = ProjectStatus.RUNNING,
        max_iterations: Optional[int] = None,
        autonomy_mode: AutonomyMode = AutonomyMode.BUILDER,
        credentials: Optional[AgentCredentials] = None,
        outcome: Optional[dict] = None,
        decision: Optional[dict] = None,
    ) -> ProjectState:
        project_id = generate_project_id()
        while project_id in self.store:
            project_id = generate_project_id()

        state = ProjectState(
            project_id=project_id,
            idea=idea,
            repository=repository,
            tasks=list(tasks),
            max_iterations=max_iterations or self.default_max_iterations,
            status=status,
            autonomy_mode=autonomy_mode,
            credentials_override=credentials,
            outcome=outcome,
            decision=decision,
        )
        self.store.set(state)
        logger.info(f"Projeto criado: {project_id} ({status.value}, {len(state.tasks)} tarefas)")
        return state

    def hydrate(self, state: ProjectState) -> None:
        """Reinsere um projeto carregado da persistência (sem override de credenciais)"""
        state.credentials_override = None
        self.store.set(state)

    def get_project(self, project_id: str) -> Optional[ProjectState]:
        return self.store.get(project_id)

    def require_project(self, project_id: str) -> ProjectState:
        state = self.store.get(project_id)
        if state is None:
            raise ProjectNotFoundError(project_id)
        return state

    def list_projects(self) -> list[ProjectState]:
        return sorted(self.store.list(), key=lambda s: s.created_at, reverse=True)

    def get_project_by_agent_id(self, agent_id: str) -> Optional[ProjectState]:
        return self.store.find_by_agent_id(agent_id)

    def set_current_agent_id(self, project_id: str, agent_id: str) -> bool:
        state = self.store.get(project_id)
        if state is None:
            return False
        previous = state.current_agent_id
        state.current_agent_id = agent_id
        state.touch()
        self.store.index_agent(state, previous)
        return True

    def claim_agent_run(self, agent_id: str) -> Optional[ProjectState]:
        """
        Reivindica o sinal de término de um agente.

        Limpa o current_agent_id antes de qualquer ponto de suspensão; uma segunda entrega do
        mesmo sinal, ou um sinal de agente substituído, não encontra dono e retorna None.
        """
        state = self.store.find_by_agent_id(agent_id)
        if state is None:
            return None
        state.last_agent_id = agent_id
        state.current_agent_id = None
        state.touch()
        self.store.index_agent(state, agent_id)
        return state

    def release_agent_run(self, project_id: str, agent_id: str) -> bool:
        """
        Devolve a reivindicação feita por claim_agent_run quando o sinal não pôde ser processado.

        Só restaura se nenhum outro agente assumiu o projeto nesse meio tempo; a reentrega do
        mesmo sinal volta a encontrar dono.
        """
        state = self.store.get(project_id)
        if state is None or state.current_agent_id is not None:
            return False
        state.current_agent_id = agent_id
        state.touch()
        self.store.index_agent(state)
        return True

    def get_next_task(self, project_id: str) -> Optional[Task]:
        state = self.store.get(project_id)
        if state is None:
            return None
        return state.current_task()

    def record_completion(self, project_id: str, result: VerificationResult) -> CompletionOutcome:
        """
        Registra uma rodada de verificação.

        A checagem do orçamento de iterações vem antes do resultado da verificação. Em status
        ocioso (aguardando aprovação, concluído ou falho) a chamada não altera nada.
        """
        state = self.require_project(project_id)

        if state.status in IDLE_STATUSES:
            logger.warning(f"Conclusão ignorada para {project_id}: projeto em {state.status.value}")
            return CompletionOutcome(next_task=None, status=state.status, should_continue=False)

        state.touch()
        state.iteration += 1

        if state.iteration >= state.max_iterations:
            state.status = ProjectStatus.FAILED
            logger.warning(f"Projeto {project_id} excedeu o limite de {state.max_iterations} iterações")
            return CompletionOutcome(next_task=None, status=state.status, should_continue=False)

        if result.success:
            if state.current_index < len(state.tasks):
                state.current_index += 1
            state.task_attempts = 0
            if state.current_index >= len(state.tasks):
                state.status = ProjectStatus.AWAITING_APPROVAL
                return CompletionOutcome(next_task=None, status=state.status, should_continue=False)
            state.status = ProjectStatus.RUNNING
            return CompletionOutcome(next_task=state.current_task(), status=state.status, should_continue=True)

        state.task_attempts += 1
        state.status = ProjectStatus.RUNNING
        return CompletionOutcome(next_task=state.current_task(), status=state.status, should_continue=True)

    def update_project_with_tasks(self, project_id: str, tasks: list[Task]) -> bool:
        state = self.store.get(project_id)
        if state is None or state.status != ProjectStatus.PENDING_PLAN:
            return False
        state.tasks = list(tasks)
        state.current_index = 0
        state.status = ProjectStatus.RUNNING
        state.touch()
        return True

    def _transition(self, project_id: str, expected: tuple[ProjectStatus, ...], target: ProjectStatus) -> bool:
        state = self.store.get(project_id)
        if state is None or state.status not in expected:
            return False
        state.status = target
        state.touch()
        logger.info(f"Projeto {project_id}: {'/'.join(s.value for s in expected)} -> {target.value}")
        return True

    def set_pending_fix(self, project_id: str) -> bool:
        return self._transition(project_id, (ProjectStatus.RUNNING,), ProjectStatus.PENDING_FIX)

    def set_project_running(self, project_id: str) -> bool:
        return self._transition(project_id, (ProjectStatus.PENDING_FIX,), ProjectStatus.RUNNING)

    def mark_completed(self, project_id: str) -> bool:
        return self._transition(project_id, (ProjectStatus.AWAITING_APPROVAL,), ProjectStatus.COMPLETED)

    def mark_failed(self, project_id: str) -> bool:
        return self._transition(
            project_id,
            (ProjectStatus.PENDING_PLAN, ProjectStatus.RUNNING, ProjectStatus.PENDING_FIX),
            ProjectStatus.FAILED,
        )

    async def persist(self, project_id: str) -> bool:
        """Grava a cópia sombra do projeto; falhas são registradas e não desfazem a transição"""
        if self.repository is None:
            return False
        state = self.store.get(project_id)
        if state is None:
            return False
        try:
            await self.repository.upsert(state)
            return True
        except Exception as e:
            logger.error(f"Erro ao persistir projeto {project_id}: {str(e)}")
            return False
