"""
Comportamento de cada modo de autonomia
"""

from pydantic import BaseModel, ConfigDict

from models.task_model import AutonomyMode


class ModeBehavior(BaseModel):
    model_config = ConfigDict(frozen=True)

    planning: str
    coding: str
    deployment: str
    decision_strictness: str


MODE_BEHAVIORS = {
    AutonomyMode.ASSIST: ModeBehavior(
        planning="suggest", coding="suggest", deployment="suggest", decision_strictness="lenient"
    ),
    AutonomyMode.BUILDER: ModeBehavior(
        planning="execute", coding="execute_approval", deployment="approval_required", decision_strictness="moderate"
    ),
    AutonomyMode.AUTOPILOT: ModeBehavior(
        planning="execute", coding="execute", deployment="auto", decision_strictness="strict"
    ),
}

_APPROVAL_VALUES = ("execute_approval", "approval_required")


def get_mode_behavior(mode: AutonomyMode) -> ModeBehavior:
    return MODE_BEHAVIORS[AutonomyMode(mode)]


def is_suggestion_only(mode: AutonomyMode) -> bool:
    """No modo assist nada é executado: o chamador recebe apenas as sugestões"""
    return get_mode_behavior(mode).coding == "suggest"


def requires_approval(mode: AutonomyMode, phase: str) -> bool:
    behavior = get_mode_behavior(mode)
    return getattr(behavior, phase) in _APPROVAL_VALUES
