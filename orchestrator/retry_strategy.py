"""
Estratégia de retry: decide entre repetir no coding agent, escalar ao planning agent ou abortar
"""

import logging
from typing import Optional

from config.constants import MAX_ATTEMPTS_BY_CATEGORY
from models.task_model import FailureAnalysis, FailureCategory, RetryAction, RetryStrategy

from .failure_classifier import classify_failure

logger = logging.getLogger("AgentBridge")

ROOT_CAUSE_HINTS = {
    FailureCategory.DEPENDENCY: "Missing or incompatible package. Try: bun install or npm install, check package.json.",
    FailureCategory.SYNTAX: "Code syntax or type error. Check file and line number in error.",
    FailureCategory.ARCHITECTURE: "Structural issue: circular import, wrong export, or hook usage.",
    FailureCategory.ENVIRONMENT: "Environment or config issue: paths, permissions, or Expo config.",
    FailureCategory.UNKNOWN: "Unclassified error. Manual review recommended.",
}

# Categorias com instrução de correção própria; as demais usam o FixPromptGenerator
PROMPT_TEMPLATES = {
    FailureCategory.DEPENDENCY: (
        "Fix dependency error. Run: bun install (or npm install). Then fix any import errors. Error: {errors}"
    ),
    FailureCategory.SYNTAX: "Fix the TypeScript/syntax error. Check the exact file and line. Error: {errors}",
}


def max_attempts_for(category: FailureCategory) -> int:
    return MAX_ATTEMPTS_BY_CATEGORY[category.value]


def analyze_failure(
    errors: list[str],
    stderr: Optional[str],
    task_prompt: str,
    attempt_number: int,
) -> FailureAnalysis:
    """
    Analisa uma falha de verificação.

    Args:
        errors: Linhas de erro extraídas pela verificação
        stderr: Saída de erro bruta, se houver
        task_prompt: Prompt da tarefa que falhou
        attempt_number: Quantidade de falhas consecutivas da tarefa atual

    Returns:
        FailureAnalysis com categoria, dica de causa e ação (retry, escalate ou abort)
    """
    category = classify_failure(errors, stderr)
    max_attempts = max_attempts_for(category)
    should_escalate = attempt_number >= max_attempts

    if not should_escalate:
        action = RetryAction.RETRY
    elif category == FailureCategory.ENVIRONMENT:
        action = RetryAction.ABORT
    else:
        action = RetryAction.ESCALATE

    suggested_prompt = None
    if action == RetryAction.RETRY and category in PROMPT_TEMPLATES:
        suggested_prompt = PROMPT_TEMPLATES[category].format(errors=" ".join(errors[:2]))

    logger.debug(
        f"Falha classificada como {category.value} (tentativa {attempt_number}/{max_attempts}) -> {action.value}"
    )

    return FailureAnalysis(
        category=category,
        root_cause_hint=ROOT_CAUSE_HINTS[category],
        retry_strategy=RetryStrategy(
            action=action,
            max_attempts=max_attempts,
            attempt_number=attempt_number,
            modified_prompt=suggested_prompt,
        ),
        suggested_prompt=suggested_prompt,
        should_escalate=should_escalate,
    )
