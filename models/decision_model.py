"""
Modelos do Decision Engine
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .task_model import Task


class DecisionOutcome(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ReasoningEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    rule: str
    input: Any = None
    output: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class DecisionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: DecisionOutcome
    approved_tasks: list[Task] = Field(default_factory=list)
    postponed_tasks: list[Task] = Field(default_factory=list)
    rejected_reasons: list[str] = Field(default_factory=list)
    reasoning_log: list[ReasoningEntry] = Field(default_factory=list)
    scope_score: float = 0.0
    complexity_score: float = 0.0


class GateResult(BaseModel):
    """Resultado intermediário de um gate: tarefas aprovadas, adiadas e motivos"""

    approved: list[Task] = Field(default_factory=list)
    postponed: list[Task] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)
