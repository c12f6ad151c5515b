"""
Decision Engine - triagem heurística das tarefas propostas antes da execução autônoma.

Função pura: sem I/O. Três gates sequenciais (escopo, MVP primeiro, complexidade), cada um
registrando uma entrada no log de raciocínio.
"""

import logging
from typing import Optional

from config.constants import COMPLEXITY_THRESHOLD, SCOPE_STRICTNESS
from models.decision_model import DecisionOutcome, DecisionResult, ReasoningEntry
from models.memory_model import ProjectMemorySummary
from models.task_model import AutonomyMode, Task

from .complexity_scorer import score_complexity
from .mvp_evaluator import evaluate_mvp_first
from .reasoning_logger import create_reasoning_entry
from .scope_gate import evaluate_scope

logger = logging.getLogger("AgentBridge")


def evaluate_decision(
    idea: str,
    proposed_tasks: list[Task],
    project_memory: Optional[ProjectMemorySummary] = None,
    mode: AutonomyMode = AutonomyMode.BUILDER,
) -> DecisionResult:
    """
    Avalia e limita a lista de tarefas proposta.

    Args:
        idea: Ideia do produto
        proposed_tasks: Tarefas propostas, na ordem de execução
        project_memory: Resumo da memória do projeto (registrado no log, não altera o resultado)
        mode: Modo de autonomia; define o rigor do gate de complexidade

    Returns:
        DecisionResult; outcome é reject se nenhuma tarefa sobreviver aos gates
    """
    reasoning_log: list[ReasoningEntry] = []
    rejected_reasons: list[str] = []
    strictness = SCOPE_STRICTNESS[AutonomyMode(mode).value]

    if not (idea or "").strip():
        reasoning_log.append(create_reasoning_entry("idea_check", {"idea_length": 0}, "Ideia vazia", 1.0))
        rejected_reasons.append("Ideia vazia")

    if project_memory is not None and not project_memory.is_empty():
        reasoning_log.append(
            create_reasoning_entry(
                "project_memory",
                {
                    "architecture_decisions": len(project_memory.architecture_decisions),
                    "failed_fix_patterns": len(project_memory.failed_fix_patterns),
                    "tradeoffs": len(project_memory.tradeoffs),
                },
                "Memória do projeto considerada como contexto",
                0.5,
            )
        )

    scope = evaluate_scope(proposed_tasks, reasoning_log)
    approved = scope.approved
    postponed = list(scope.postponed)
    rejected_reasons.extend(scope.reasons)

    mvp = evaluate_mvp_first(approved, reasoning_log)
    approved = mvp.approved
    postponed.extend(mvp.postponed)

    complexity_score, _ = score_complexity(approved, reasoning_log)
    if approved and complexity_score > COMPLEXITY_THRESHOLD * strictness:
        postponed.append(approved.pop())
        rejected_reasons.append(f"Complexidade muito alta ({complexity_score:.2f}), última tarefa adiada")

    # Sem ideia não há produto a construir
    if not (idea or "").strip():
        postponed.extend(approved)
        approved = []

    outcome = DecisionOutcome.APPROVE if approved else DecisionOutcome.REJECT
    scope_score = 1 - len(approved) / max(len(proposed_tasks), 1)

    logger.info(
        f"Decisão: {outcome.value} ({len(approved)} aprovadas, {len(postponed)} adiadas, "
        f"complexidade {complexity_score:.2f}, modo {AutonomyMode(mode).value})"
    )

    return DecisionResult(
        outcome=outcome,
        approved_tasks=approved,
        postponed_tasks=postponed,
        rejected_reasons=rejected_reasons,
        reasoning_log=reasoning_log,
        scope_score=scope_score,
        complexity_score=complexity_score,
    )
