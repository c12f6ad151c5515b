"""
Fluxo de orquestração: da ideia ao primeiro despacho para o coding agent (ou ao pedido de plano)
"""

import json
import logging
from typing import Optional

from pydantic import BaseModel, Field

from agents.base_agent import MissingCredentialError
from agents.coding_agent import CodingAgentClient, build_agent_prompt
from agents.planning_agent import PlanningAgentClient
from config.logging_config import project_logger
from guardrails.decision_engine import evaluate_decision
from models.decision_model import DecisionOutcome, DecisionResult
from models.memory_model import MemoryRecordType, ProjectMemorySummary
from models.request_model import StartRequest, StartResponse, tasks_from_input
from models.task_model import AutonomyMode, ProjectState, ProjectStatus, RepositoryRef, Task
from services.project_manager import ProjectManager
from shared_context.memory_store import MemoryStore, format_memory_context

from .mode_router import is_suggestion_only
from .outcome_generator import OutcomeResult, generate_outcome

logger = logging.getLogger("AgentBridge")

ASSIST_MESSAGE = "Suggestions only. Switch to builder or autopilot to execute."
DEFAULT_TASK_FEATURES = 3


class OrchestrationPlan(BaseModel):
    outcome: OutcomeResult
    decision: DecisionResult
    approved_tasks: list[Task] = Field(default_factory=list)
    postponed_tasks: list[Task] = Field(default_factory=list)
    should_proceed: bool


def default_task(idea: str, outcome: Optional[OutcomeResult] = None) -> Task:
    """Tarefa inicial usada quando nenhuma tarefa é proposta"""
    prompt = f"Create a complete Expo/React Native app for: {idea}."
    if outcome is not None and outcome.mvp_features:
        prompt += f" MVP features: {', '.join(outcome.mvp_features[:DEFAULT_TASK_FEATURES])}."
    prompt += " Follow Apple HIG for design."
    return Task(
        id="task_1",
        title="Initial implementation",
        description=f"Implement app based on: {idea}",
        prompt=prompt,
    )


def run_orchestrator_flow(
    idea: str,
    proposed_tasks: Optional[list[Task]] = None,
    mode: AutonomyMode = AutonomyMode.BUILDER,
    project_memory: Optional[ProjectMemorySummary] = None,
) -> OrchestrationPlan:
    """Gera o outcome da ideia e passa as tarefas propostas (ou a tarefa padrão) pelo Decision Engine"""
    outcome = generate_outcome(idea)
    tasks = proposed_tasks or [default_task(idea, outcome)]
    decision = evaluate_decision(idea, tasks, project_memory, mode)

    logger.info(
        f"Decisão do orquestrador: {decision.outcome.value} ({len(decision.approved_tasks)} aprovadas, "
        f"{len(decision.postponed_tasks)} adiadas, {len(decision.reasoning_log)} registros de raciocínio)"
    )

    return OrchestrationPlan(
        outcome=outcome,
        decision=decision,
        approved_tasks=decision.approved_tasks,
        postponed_tasks=decision.postponed_tasks,
        should_proceed=decision.outcome != DecisionOutcome.REJECT and bool(decision.approved_tasks),
    )


class ProjectOrchestrator:
    def __init__(
        self,
        project_manager: ProjectManager,
        memory_store: MemoryStore,
        coding_agent: CodingAgentClient,
        planning_agent: PlanningAgentClient,
    ):
        self.project_manager = project_manager
        self.memory_store = memory_store
        self.coding_agent = coding_agent
        self.planning_agent = planning_agent

    async def start_project(self, request: StartRequest) -> StartResponse:
        """
        Cria o projeto e dispara o primeiro passo.

        No modo assist devolve apenas sugestões, sem criar projeto. Com planning agent configurado o
        projeto nasce em pending_plan e o plano é pedido; senão nasce em running e a primeira tarefa
        vai direto ao coding agent.

        Raises:
            MissingCredentialError: nenhum dos dois agentes está configurado
        """
        credentials = request.credentials.to_credentials() if request.credentials else None
        proposed = tasks_from_input(request.tasks, request.idea)
        plan = run_orchestrator_flow(request.idea, proposed or None, request.autonomy_mode)

        outcome = plan.outcome.model_dump(mode="json")
        decision = plan.decision.model_dump(mode="json")

        if is_suggestion_only(request.autonomy_mode):
            return StartResponse(status="assist", message=ASSIST_MESSAGE, outcome=outcome, decision=decision)

        use_planning = self.planning_agent.is_configured(credentials)
        if not use_planning and not self.coding_agent.is_configured(credentials):
            raise MissingCredentialError(
                "Coding agent não configurado: informe credentials.coding_api_key ou CODING_AGENT_API_KEY"
            )

        tasks = plan.approved_tasks or [default_task(request.idea, plan.outcome)]
        state = self.project_manager.create_project(
            idea=request.idea,
            repository=RepositoryRef(url=request.repository, branch=request.branch),
            tasks=tasks,
            status=ProjectStatus.PENDING_PLAN if use_planning else ProjectStatus.RUNNING,
            autonomy_mode=request.autonomy_mode,
            credentials=credentials,
            outcome=outcome,
            decision=decision,
        )
        log = project_logger(state.project_id)

        await self.memory_store.write(
            state.project_id,
            MemoryRecordType.ARCHITECTURAL_DECISION,
            {
                "decision": "Outcome generated",
                "rationale": json.dumps(plan.outcome.recommended_architecture),
                "impact": "Initial project setup",
            },
        )
        for postponed in plan.postponed_tasks:
            await self.memory_store.write(
                state.project_id, MemoryRecordType.TRADEOFF, {"tradeoff": f"Postponed: {postponed.title}"}
            )
        await self.project_manager.persist(state.project_id)

        if use_planning:
            try:
                await self.planning_agent.request_plan(request.idea, state.project_id, credentials)
            except Exception as e:
                log.error(f"Falha ao pedir plano ao planning agent: {str(e)}")
                self.project_manager.mark_failed(state.project_id)
                await self.project_manager.persist(state.project_id)
                raise
            log.info("Projeto criado, aguardando plano do planning agent")
            return StartResponse(
                project_id=state.project_id,
                status=ProjectStatus.PENDING_PLAN.value,
                message=(
                    "Planning agent will research and send the plan. Reply via POST /webhooks/planning-agent "
                    "with { projectId, type: 'plan', tasks: [...] }"
                ),
            )

        first_task = state.current_task()
        try:
            agent_id = await self.dispatch(state, first_task.prompt)
        except Exception as e:
            log.error(f"Falha ao iniciar o coding agent: {str(e)}")
            self.project_manager.mark_failed(state.project_id)
            await self.project_manager.persist(state.project_id)
            raise

        log.info(f"Projeto iniciado: agente {agent_id}, {len(state.tasks)} tarefas")
        return StartResponse(
            project_id=state.project_id,
            status=ProjectStatus.RUNNING.value,
            agent_id=agent_id,
            message="First agent launched. Webhook will be triggered on completion.",
        )

    async def dispatch(self, state: ProjectState, prompt: str) -> str:
        """
        Envia um prompt ao coding agent e registra o novo agente em execução no projeto.

        O contexto da memória do projeto é prefixado ao prompt.
        """
        summary = await self.memory_store.get_project_summary(state.project_id)
        full_prompt = build_agent_prompt(prompt, format_memory_context(summary))

        agent_id = await self.coding_agent.launch(
            full_prompt,
            state.repository.url,
            state.repository.branch,
            state.credentials_override,
        )
        self.project_manager.set_current_agent_id(state.project_id, agent_id)
        await self.memory_store.write(state.project_id, MemoryRecordType.PROMPT, {"prompt_text": prompt})
        await self.project_manager.persist(state.project_id)
        return agent_id
