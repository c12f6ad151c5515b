"""
Módulo Guardrails - Decision Engine que limita o que é entregue ao coding agent
"""

from .decision_engine import evaluate_decision

__all__ = ["evaluate_decision"]
