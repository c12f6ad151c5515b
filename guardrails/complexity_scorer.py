from config.constants import (
    COMPLEXITY_BASELINE,
    COMPLEXITY_RISK_KEYWORDS,
    COMPLEXITY_VALUE_KEYWORDS,
    RISK_KEYWORD_WEIGHT,
    VALUE_KEYWORD_WEIGHT,
)
from models.decision_model import ReasoningEntry
from models.task_model import Task

from .reasoning_logger import create_reasoning_entry


def score_task(task: Task) -> float:
    text = f"{task.title} {task.description} {task.prompt}".lower()
    complexity = sum(RISK_KEYWORD_WEIGHT for keyword in COMPLEXITY_RISK_KEYWORDS if keyword in text)
    value = sum(VALUE_KEYWORD_WEIGHT for keyword in COMPLEXITY_VALUE_KEYWORDS if keyword in text)
    return min(1.0, max(0.0, complexity - value * 0.5 + COMPLEXITY_BASELINE))


def score_complexity(tasks: list[Task], reasoning_log: list[ReasoningEntry]) -> tuple[float, dict[str, float]]:
    """
    Calcula a complexidade média das tarefas.

    Returns:
        Tupla (média, pontuação por id de tarefa)
    """
    scores = [score_task(task) for task in tasks]
    breakdown = {task.id: round(score, 4) for task, score in zip(tasks, scores)}
    average = sum(scores) / len(scores) if scores else 0.0

    reasoning_log.append(
        create_reasoning_entry(
            "complexity_scorer",
            {"task_count": len(tasks), "breakdown": breakdown},
            f"Complexidade média: {average:.2f}",
            0.85,
        )
    )
    return average, breakdown
