"""
Scope gate - limita a quantidade de tarefas e o tamanho de cada prompt
"""

import logging

from config.constants import MAX_MVP_TASKS, MAX_TASK_PROMPT_LENGTH
from models.decision_model import GateResult, ReasoningEntry
from models.task_model import Task

from .reasoning_logger import create_reasoning_entry

logger = logging.getLogger("AgentBridge")


def evaluate_scope(
    tasks: list[Task],
    reasoning_log: list[ReasoningEntry],
    max_tasks: int = MAX_MVP_TASKS,
    max_prompt_length: int = MAX_TASK_PROMPT_LENGTH,
) -> GateResult:
    """
    Aplica o teto de tarefas e o teto de tamanho de prompt.

    Tarefas além do teto são adiadas na ordem em que foram propostas. As sobreviventes
    passam pela checagem individual de prompt (vazio ou acima do limite).

    Args:
        tasks: Tarefas propostas, na ordem de execução
        reasoning_log: Log de raciocínio, recebe uma entrada por regra disparada
        max_tasks: Quantidade máxima de tarefas do MVP
        max_prompt_length: Tamanho máximo do prompt de uma tarefa

    Returns:
        GateResult com tarefas aprovadas, adiadas e motivos
    """
    result = GateResult()
    candidates = list(tasks)

    if len(candidates) > max_tasks:
        reasoning_log.append(
            create_reasoning_entry(
                "scope_gate_max_tasks",
                {"count": len(candidates), "max": max_tasks},
                f"Rejeitado: {len(candidates)} tarefas excedem o limite do MVP ({max_tasks})",
                1.0,
            )
        )
        result.reasons.append(f"Explosão de escopo: {len(candidates)} tarefas excedem o limite do MVP ({max_tasks})")
        result.postponed.extend(candidates[max_tasks:])
        candidates = candidates[:max_tasks]

    for task in candidates:
        prompt_length = len(task.prompt or "")
        if not task.prompt.strip():
            reasoning_log.append(
                create_reasoning_entry(
                    "scope_gate_prompt_length",
                    {"task_id": task.id, "length": prompt_length},
                    f"Tarefa {task.id} sem prompt",
                    0.9,
                )
            )
            result.postponed.append(task)
            result.reasons.append(f'Tarefa "{task.title}" sem prompt')
        elif prompt_length > max_prompt_length:
            reasoning_log.append(
                create_reasoning_entry(
                    "scope_gate_prompt_length",
                    {"task_id": task.id, "length": prompt_length},
                    f"Prompt da tarefa {task.id} muito longo ({prompt_length} caracteres)",
                    0.9,
                )
            )
            result.postponed.append(task)
            result.reasons.append(f'Tarefa "{task.title}" com prompt acima do limite')
        else:
            result.approved.append(task)

    if result.postponed:
        logger.debug(f"Scope gate: {len(result.approved)} aprovadas, {len(result.postponed)} adiadas")
    return result
