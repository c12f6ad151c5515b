"""
Módulo Orchestrator - Fluxo de orquestração, classificação de falhas e estratégia de retry
"""

from .failure_classifier import classify_failure
from .fallback_handler import FixPromptGenerator
from .retry_strategy import analyze_failure
from .workflow import ProjectOrchestrator, run_orchestrator_flow

__all__ = ["FixPromptGenerator", "ProjectOrchestrator", "analyze_failure", "classify_failure", "run_orchestrator_flow"]
