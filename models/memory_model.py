from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .task_model import utc_now


class MemoryRecordType(str, Enum):
    ARCHITECTURAL_DECISION = "architectural_decision"
    FAILED_FIX = "failed_fix"
    IMPLEMENTATION = "implementation"
    PROMPT = "prompt"
    TRADEOFF = "tradeoff"


class MemoryRecord(BaseModel):
    project_id: str
    type: MemoryRecordType
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)


class ProjectMemorySummary(BaseModel):
    project_id: str
    architecture_decisions: list[str] = Field(default_factory=list)
    failed_fix_patterns: list[str] = Field(default_factory=list)
    last_prompts: list[str] = Field(default_factory=list)
    tradeoffs: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.architecture_decisions or self.failed_fix_patterns or self.last_prompts or self.tradeoffs)
