"""
Registro de raciocínio das regras do Decision Engine, para auditoria das decisões
"""

from typing import Any

from models.decision_model import ReasoningEntry
from models.task_model import utc_now


def create_reasoning_entry(rule: str, input: Any, output: str, confidence: float) -> ReasoningEntry:
    return ReasoningEntry(
        timestamp=utc_now().isoformat(),
        rule=rule,
        input=input,
        output=output,
        confidence=confidence,
    )
