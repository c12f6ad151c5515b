from config.constants import MVP_CORE_KEYWORDS, MVP_DEFER_KEYWORDS
from models.decision_model import GateResult, ReasoningEntry
from models.task_model import Task

from .reasoning_logger import create_reasoning_entry


def evaluate_mvp_first(tasks: list[Task], reasoning_log: list[ReasoningEntry]) -> GateResult:
    """Classifica cada tarefa como núcleo do MVP, adiada ou neutra pelo título e descrição"""
    result = GateResult()

    for task in tasks:
        text = f"{task.title} {task.description}".lower()
        is_core = any(keyword in text for keyword in MVP_CORE_KEYWORDS)
        is_deferred = any(keyword in text for keyword in MVP_DEFER_KEYWORDS)

        if is_deferred:
            result.postponed.append(task)
            result.reasons.append(f'"{task.title}" adiada (fora do MVP)')
        else:
            result.approved.append(task)
            if is_core:
                result.reasons.append(f'"{task.title}" identificada como núcleo do MVP')

    reasoning_log.append(
        create_reasoning_entry(
            "mvp_evaluator",
            {"total": len(tasks), "mvp": len(result.approved), "deferred": len(result.postponed)},
            f"MVP primeiro: {len(result.approved)} aprovadas, {len(result.postponed)} adiadas",
            0.8,
        )
    )
    return result
