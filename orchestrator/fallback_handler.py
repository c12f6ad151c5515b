"""
FixPromptGenerator - gera a instrução de correção quando a estratégia de retry não traz uma própria
"""

import logging
from typing import Optional

from models.task_model import FailureAnalysis, FailureCategory

logger = logging.getLogger("AgentBridge")

MAX_PROMPT_ERRORS = 5
STDERR_TAIL_CHARS = 800


class FixPromptGenerator:
    """Gerador determinístico de prompts de correção, por categoria de falha"""

    def __init__(self):
        self.fallback_templates = self._init_fallback_templates()

    def _init_fallback_templates(self) -> dict[FailureCategory, str]:
        """Define a orientação de correção para cada categoria"""
        return {
            FailureCategory.DEPENDENCY: (
                "Install or fix the missing packages (bun install or npm install) and correct the imports that "
                "reference them."
            ),
            FailureCategory.SYNTAX: "Fix the syntax and type errors at the exact files and lines reported.",
            FailureCategory.ARCHITECTURE: (
                "Fix the structural problem: resolve circular imports, wrong exports and invalid hook usage "
                "without changing the feature scope."
            ),
            FailureCategory.ENVIRONMENT: "Fix the project configuration (paths, permissions, app.json/Expo config).",
            FailureCategory.UNKNOWN: "Investigate the errors below and make the lint, test and build steps pass.",
        }

    def generate(
        self,
        errors: list[str],
        task_prompt: str,
        analysis: Optional[FailureAnalysis] = None,
        stderr: Optional[str] = None,
        memory_context: Optional[str] = None,
    ) -> str:
        """
        Monta o prompt de correção para o coding agent.

        Usa o prompt sugerido pela análise quando existir; caso contrário combina a tarefa original,
        a orientação da categoria, os primeiros erros e o final do stderr.
        """
        if analysis is not None and analysis.suggested_prompt:
            return analysis.suggested_prompt

        category = analysis.category if analysis is not None else FailureCategory.UNKNOWN
        sections = [f"The previous implementation of this task failed verification.\n\nTask:\n{task_prompt}"]
        sections.append(f"Guidance: {self.fallback_templates[category]}")
        if analysis is not None:
            sections.append(f"Likely root cause: {analysis.root_cause_hint}")

        if errors:
            listed = "\n".join(f"- {error}" for error in errors[:MAX_PROMPT_ERRORS])
            sections.append(f"Errors:\n{listed}")
        if stderr and stderr.strip():
            sections.append(f"stderr (tail):\n{stderr.strip()[-STDERR_TAIL_CHARS:]}")
        if memory_context:
            sections.append(f"Fixes already attempted:\n{memory_context}")

        sections.append("Fix only what is needed so that install, lint and tests pass.")
        logger.debug(f"Prompt de correção gerado por template ({category.value})")
        return "\n\n".join(sections)
