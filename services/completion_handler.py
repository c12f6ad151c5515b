"""
Ponte de webhooks: reage aos sinais dos agentes externos e conduz verificação, retry, escalonamento e aprovação
"""

import logging
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agents.planning_agent import PlanningAgentClient
from config.logging_config import project_logger
from guardrails.decision_engine import evaluate_decision
from models.decision_model import DecisionOutcome
from models.memory_model import MemoryRecordType
from models.signal_model import (
    ApprovalSignal,
    CodingAgentSignal,
    FixSignal,
    MessageSignal,
    PlanSignal,
    SignalParseError,
    is_approval_message,
    parse_fix_prompt_from_message,
    parse_tasks_from_message,
    tasks_from_payload,
)
from models.task_model import (
    CompletionOutcome,
    ProjectState,
    ProjectStatus,
    RetryAction,
    Task,
)
from orchestrator.fallback_handler import FixPromptGenerator
from orchestrator.retry_strategy import analyze_failure
from orchestrator.workflow import ProjectOrchestrator
from shared_context.memory_store import MemoryStore
from utils.git_utils import project_work_dir

from .git_service import AuthenticationError, GitService, RepositoryError
from .project_manager import InvalidTransitionError, ProjectManager
from .release_service import ReleaseService
from .verification_engine import VerificationEngine

logger = logging.getLogger("AgentBridge")

MAX_FAILED_FIX_ERRORS = 5


class PlanningAction(BaseModel):
    """Ação decidida a partir de um sinal do planning agent, executada depois em segundo plano"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["plan", "fix", "approval"]
    project_id: str
    tasks: list[Task] = Field(default_factory=list)
    fix_prompt: Optional[str] = None


class CompletionHandler:
    def __init__(
        self,
        project_manager: ProjectManager,
        orchestrator: ProjectOrchestrator,
        verification_engine: VerificationEngine,
        git_service: GitService,
        planning_agent: PlanningAgentClient,
        memory_store: MemoryStore,
        release_service: ReleaseService,
        work_dir: str,
        fix_prompt_generator: Optional[FixPromptGenerator] = None,
    ):
        self.project_manager = project_manager
        self.orchestrator = orchestrator
        self.verification_engine = verification_engine
        self.git_service = git_service
        self.planning_agent = planning_agent
        self.memory_store = memory_store
        self.release_service = release_service
        self.work_dir = work_dir
        self.fix_prompt_generator = fix_prompt_generator or FixPromptGenerator()

    # === Coding agent ===

    async def handle_agent_complete(self, signal: CodingAgentSignal) -> Optional[CompletionOutcome]:
        """
        Processa o término de uma execução do coding agent.

        O sinal é reivindicado antes da verificação: sinais repetidos ou de agentes substituídos
        não encontram dono e são descartados sem erro.
        """
        state = self.project_manager.claim_agent_run(signal.agent_id)
        if state is None:
            logger.warning(f"Nenhum projeto com o agente {signal.agent_id} em execução, sinal descartado")
            return None

        project_id = state.project_id
        log = project_logger(project_id)
        task = state.current_task()
        if task is None:
            log.warning(f"Sem tarefa atual (índice {state.current_index}), sinal do agente {signal.agent_id} ignorado")
            return None

        log.info(f"Agente {signal.agent_id} terminou com {signal.status}, iniciando verificação")
        credentials = state.credentials_override
        branch = signal.result_branch or state.repository.branch
        github_token = None
        if credentials is not None and credentials.github_token is not None:
            github_token = credentials.github_token.get_secret_value()

        try:
            repo_path = await self.git_service.clone_or_pull(
                state.repository.url, branch, project_work_dir(self.work_dir, project_id), github_token
            )
        except (AuthenticationError, RepositoryError) as e:
            log.error(f"Falha ao obter o repositório: {str(e)}")
            self.project_manager.release_agent_run(project_id, signal.agent_id)
            await self.planning_agent.notify(f"Repo clone error: {str(e)}. Project: {project_id}", credentials)
            return None
        except Exception:
            self.project_manager.release_agent_run(project_id, signal.agent_id)
            raise

        try:
            result = await self.verification_engine.verify(repo_path)
        except Exception as e:
            log.error(f"Verificação interrompida, sinal do agente {signal.agent_id} liberado para reentrega: {str(e)}")
            self.project_manager.release_agent_run(project_id, signal.agent_id)
            raise

        outcome = self.project_manager.record_completion(project_id, result)
        await self.project_manager.persist(project_id)

        if outcome.status == ProjectStatus.AWAITING_APPROVAL:
            await self.memory_store.write(
                project_id, MemoryRecordType.IMPLEMENTATION, {"task_id": task.id, "summary": signal.summary or ""}
            )
            log.info("Todas as tarefas verificadas, aguardando aprovação")
            await self.planning_agent.notify(
                f"App ready for approval. Send projectId via POST /approve: {project_id}", credentials
            )
            return outcome

        if outcome.status == ProjectStatus.FAILED:
            await self.planning_agent.notify(f"Project failed (max iterations exceeded): {project_id}", credentials)
            return outcome

        if not outcome.should_continue:
            return outcome

        if result.success and outcome.next_task is not None:
            await self.memory_store.write(
                project_id, MemoryRecordType.IMPLEMENTATION, {"task_id": task.id, "summary": signal.summary or ""}
            )
            log.info(f"Tarefa {task.id} verificada, despachando {outcome.next_task.id}")
            await self._dispatch(state, outcome.next_task.prompt)
            return outcome

        await self.memory_store.write(
            project_id,
            MemoryRecordType.FAILED_FIX,
            {"task_id": task.id, "error_output": "\n".join(result.errors[:MAX_FAILED_FIX_ERRORS])},
        )
        await self._handle_verification_failure(state, task, result.errors, result.stderr)
        return outcome

    async def _handle_verification_failure(
        self, state: ProjectState, task: Task, errors: list[str], stderr: Optional[str]
    ) -> None:
        project_id = state.project_id
        log = project_logger(project_id)
        credentials = state.credentials_override
        analysis = analyze_failure(errors, stderr, task.prompt, state.task_attempts)
        action = analysis.retry_strategy.action
        log.info(
            f"Verificação falhou: {analysis.category.value}, tentativa "
            f"{analysis.retry_strategy.attempt_number}/{analysis.retry_strategy.max_attempts} -> {action.value}"
        )

        if action == RetryAction.ABORT:
            self.project_manager.mark_failed(project_id)
            await self.project_manager.persist(project_id)
            await self.planning_agent.notify(
                f"Project {project_id} aborted: {analysis.category.value} failure is not fixable by retry. "
                f"{analysis.root_cause_hint}",
                credentials,
            )
            return

        if action == RetryAction.ESCALATE and self.planning_agent.is_configured(credentials):
            self.project_manager.set_pending_fix(project_id)
            await self.project_manager.persist(project_id)
            try:
                await self.planning_agent.request_fix(project_id, errors, task.prompt, stderr, credentials)
                log.info("Falha escalada ao planning agent, aguardando instrução de correção")
                return
            except Exception as e:
                log.error(f"Falha ao escalar ao planning agent, seguindo com retry local: {str(e)}")
                self.project_manager.set_project_running(project_id)
                await self.project_manager.persist(project_id)

        summary = await self.memory_store.get_project_summary(project_id)
        previous_fixes = "\n".join(f"- {pattern}" for pattern in summary.failed_fix_patterns[1:4]) or None
        prompt = self.fix_prompt_generator.generate(errors, task.prompt, analysis, stderr, previous_fixes)
        await self._dispatch(state, prompt)

    async def _dispatch(self, state: ProjectState, prompt: str) -> Optional[str]:
        try:
            return await self.orchestrator.dispatch(state, prompt)
        except Exception as e:
            project_logger(state.project_id).error(f"Falha ao iniciar o coding agent: {str(e)}")
            await self.planning_agent.notify(
                f"Coding agent failed to launch for {state.project_id}: {str(e)}", state.credentials_override
            )
            return None

    # === Planning agent ===

    def route_planning_signal(
        self,
        signal: PlanSignal | FixSignal | ApprovalSignal | MessageSignal,
        explicit_project_id: bool = True,
    ) -> PlanningAction:
        """
        Decide, de forma síncrona, o que fazer com um sinal do planning agent.

        Planos e correções explícitos são sempre aceitos (repetições viram no-op na execução);
        mensagens livres são interpretadas conforme o status do projeto.

        Raises:
            ProjectNotFoundError: projeto desconhecido
            InvalidTransitionError: aprovação fora de awaiting_approval
            SignalParseError: mensagem sem conteúdo reconhecível
        """
        state = self.project_manager.require_project(signal.project_id)
        project_id = state.project_id

        if isinstance(signal, PlanSignal):
            return PlanningAction(kind="plan", project_id=project_id, tasks=tasks_from_payload(signal.tasks))
        if isinstance(signal, FixSignal):
            return PlanningAction(kind="fix", project_id=project_id, fix_prompt=signal.fix_prompt)

        message = signal.message
        if isinstance(signal, MessageSignal):
            if state.status == ProjectStatus.PENDING_PLAN:
                tasks = parse_tasks_from_message(message)
                if tasks:
                    return PlanningAction(kind="plan", project_id=project_id, tasks=tasks)
            if state.status == ProjectStatus.PENDING_FIX:
                fix_prompt = signal.fix_prompt or parse_fix_prompt_from_message(message)
                if fix_prompt:
                    return PlanningAction(kind="fix", project_id=project_id, fix_prompt=fix_prompt)

        if state.status != ProjectStatus.AWAITING_APPROVAL:
            raise InvalidTransitionError(project_id, state.status, ProjectStatus.AWAITING_APPROVAL)

        if isinstance(signal, MessageSignal) and not explicit_project_id and not is_approval_message(message):
            raise SignalParseError("Mensagem de aprovação ou projectId obrigatório")

        return PlanningAction(kind="approval", project_id=project_id)

    async def execute_planning_action(self, action: PlanningAction) -> bool:
        if action.kind == "plan":
            return await self.handle_plan(action.project_id, action.tasks)
        if action.kind == "fix":
            return await self.handle_fix(action.project_id, action.fix_prompt or "")
        return await self.approve(action.project_id, raise_on_invalid=False)

    async def handle_plan(self, project_id: str, tasks: list[Task]) -> bool:
        """
        Aplica um plano recebido: passa pelo Decision Engine no modo do projeto e despacha a primeira tarefa.

        Plano repetido para projeto fora de pending_plan é no-op.
        """
        state = self.project_manager.require_project(project_id)
        log = project_logger(project_id)
        if state.status != ProjectStatus.PENDING_PLAN:
            log.info(f"Plano ignorado: projeto já está em {state.status.value}")
            return False

        credentials = state.credentials_override
        summary = await self.memory_store.get_project_summary(project_id)
        if state.status != ProjectStatus.PENDING_PLAN:
            log.info(f"Plano ignorado: outra entrega já levou o projeto a {state.status.value}")
            return False
        decision = evaluate_decision(state.idea, tasks, summary, state.autonomy_mode)
        state.decision = decision.model_dump(mode="json")

        if decision.outcome == DecisionOutcome.REJECT:
            self.project_manager.mark_failed(project_id)
            await self.project_manager.persist(project_id)
            reasons = "; ".join(decision.rejected_reasons) or "no task approved"
            log.warning(f"Plano rejeitado pelo Decision Engine: {reasons}")
            await self.planning_agent.notify(f"Plan rejected for {project_id}: {reasons}", credentials)
            return False

        if not self.orchestrator.coding_agent.is_configured(credentials):
            self.project_manager.mark_failed(project_id)
            await self.project_manager.persist(project_id)
            log.error("Plano recebido, mas a chave de API do coding agent está ausente")
            await self.planning_agent.notify(
                f"Plan received for {project_id}, but the coding agent API key is missing. "
                "Add credentials.coding_api_key or set CODING_AGENT_API_KEY.",
                credentials,
            )
            return False

        if not self.project_manager.update_project_with_tasks(project_id, decision.approved_tasks):
            log.info(f"Plano ignorado: projeto já está em {state.status.value}")
            return False
        for postponed in decision.postponed_tasks:
            await self.memory_store.write(project_id, MemoryRecordType.TRADEOFF, {"tradeoff": f"Postponed: {postponed.title}"})

        first_task = state.current_task()
        try:
            agent_id = await self.orchestrator.dispatch(state, first_task.prompt)
        except Exception as e:
            self.project_manager.mark_failed(project_id)
            await self.project_manager.persist(project_id)
            log.error(f"Plano recebido, mas o coding agent falhou ao iniciar: {str(e)}")
            await self.planning_agent.notify(
                f"Plan received for {project_id}, but the coding agent failed to launch: {str(e)}", credentials
            )
            return False

        log.info(f"Plano aplicado ({len(decision.approved_tasks)} tarefas), agente {agent_id}")
        await self.planning_agent.notify(f"Plan received. Coding agent launched for {project_id}.", credentials)
        return True

    async def handle_fix(self, project_id: str, fix_prompt: str) -> bool:
        """Aplica uma instrução de correção; aceita apenas em pending_fix"""
        state = self.project_manager.require_project(project_id)
        log = project_logger(project_id)
        if state.status != ProjectStatus.PENDING_FIX:
            log.info(f"Correção ignorada: projeto em {state.status.value}")
            return False

        credentials = state.credentials_override
        if not self.orchestrator.coding_agent.is_configured(credentials):
            self.project_manager.mark_failed(project_id)
            await self.project_manager.persist(project_id)
            log.error("Correção recebida, mas a chave de API do coding agent está ausente")
            await self.planning_agent.notify(
                f"Fix prompt received for {project_id}, but the coding agent API key is missing.", credentials
            )
            return False

        self.project_manager.set_project_running(project_id)
        try:
            agent_id = await self.orchestrator.dispatch(state, fix_prompt)
        except Exception as e:
            self.project_manager.set_pending_fix(project_id)
            await self.project_manager.persist(project_id)
            log.error(f"Correção recebida, mas o coding agent falhou ao iniciar: {str(e)}")
            await self.planning_agent.notify(
                f"Fix prompt received for {project_id}, but the coding agent failed: {str(e)}", credentials
            )
            return False

        log.info(f"Correção despachada, agente {agent_id}")
        await self.planning_agent.notify(f"Fix prompt received. Coding agent launched for {project_id}.", credentials)
        return True

    # === Aprovação ===

    async def approve(self, project_id: str, raise_on_invalid: bool = True) -> bool:
        """
        Executa o release e conclui o projeto.

        Returns:
            True se o release foi bem-sucedido e o projeto concluído; em falha o status não muda

        Raises:
            ProjectNotFoundError: projeto desconhecido
            InvalidTransitionError: projeto fora de awaiting_approval (se raise_on_invalid)
        """
        state = self.project_manager.require_project(project_id)
        log = project_logger(project_id)
        credentials = state.credentials_override
        if state.status != ProjectStatus.AWAITING_APPROVAL:
            if raise_on_invalid:
                raise InvalidTransitionError(project_id, state.status, ProjectStatus.AWAITING_APPROVAL)
            log.info(f"Aprovação ignorada: projeto em {state.status.value}")
            return False

        if not await self.release_service.execute(project_id):
            await self.planning_agent.notify(f"App Store upload failed ({project_id})", credentials)
            return False

        self.project_manager.mark_completed(project_id)
        await self.project_manager.persist(project_id)
        log.info("Projeto concluído e enviado à loja")
        await self.planning_agent.notify(f"Project {project_id} uploaded to App Store.", credentials)
        return True
