"""
Sinais de entrada dos agentes externos, modelados como união discriminada por `type`/`event`.

Cada variante tem um parser dedicado que falha de forma fechada: formato desconhecido gera
SignalParseError (HTTP 400), nunca uma exceção não tratada.
"""

import json
import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from config.constants import APPROVAL_KEYWORDS

from .task_model import Task

TERMINAL_AGENT_STATUSES = ("FINISHED", "ERROR")
_PROJECT_ID_PATTERN = re.compile(r"proj_[a-z0-9_]+", re.IGNORECASE)
_TASK_ARRAY_PATTERN = re.compile(r'\[[\s\S]*?\{[\s\S]*?"(?:id|prompt|title)"[\s\S]*?\}[\s\S]*?\]')
_FIX_PROMPT_PATTERN = re.compile(r'\{\s*"fixPrompt"\s*:\s*"((?:[^"\\]|\\.)*)"\s*\}')
_FIX_PROMPT_BLOCK_PATTERN = re.compile(r'```(?:json)?\s*(\{[^`]*"fixPrompt"[^`]*\})\s*```', re.DOTALL)


class SignalParseError(ValueError):
    pass


class CodingAgentSignal(BaseModel):
    """Sinal de término de execução do coding agent"""

    model_config = ConfigDict(frozen=True)

    event: Optional[str] = None
    agent_id: str
    status: Optional[str] = None
    summary: Optional[str] = None
    result_branch: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.event == "statusChange" and self.status in TERMINAL_AGENT_STATUSES


class PlanSignal(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["plan"]
    project_id: Optional[str] = Field(None, alias="projectId")
    tasks: list[dict[str, Any]] = Field(..., min_length=1)
    message: str = ""


class FixSignal(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["fix"]
    project_id: Optional[str] = Field(None, alias="projectId")
    fix_prompt: str = Field(..., alias="fixPrompt", min_length=1)
    message: str = ""


class ApprovalSignal(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["approval"]
    project_id: Optional[str] = Field(None, alias="projectId")
    message: str = ""


class MessageSignal(BaseModel):
    """Mensagem livre sem `type`; interpretada conforme o status do projeto"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["message"] = "message"
    project_id: Optional[str] = Field(None, alias="projectId")
    message: str = ""
    fix_prompt: Optional[str] = Field(None, alias="fixPrompt")


PlanningSignal = Annotated[Union[PlanSignal, FixSignal, ApprovalSignal, MessageSignal], Field(discriminator="type")]
_planning_adapter = TypeAdapter(PlanningSignal)


def parse_coding_agent_signal(body: Any) -> CodingAgentSignal:
    if not isinstance(body, dict):
        raise SignalParseError("Corpo do webhook deve ser um objeto JSON")

    agent_id = body.get("id") or body.get("agentId")
    if not isinstance(agent_id, str) or not agent_id.strip():
        raise SignalParseError("Sinal do coding agent sem identificador de agente")

    target = body.get("target") if isinstance(body.get("target"), dict) else {}
    try:
        return CodingAgentSignal(
            event=body.get("event"),
            agent_id=agent_id.strip(),
            status=body.get("status"),
            summary=body.get("summary"),
            result_branch=target.get("branchName"),
        )
    except ValidationError as e:
        raise SignalParseError(f"Sinal do coding agent inválido: {e.error_count()} erro(s)") from e


def parse_planning_signal(body: Any) -> Union[PlanSignal, FixSignal, ApprovalSignal, MessageSignal]:
    if not isinstance(body, dict):
        raise SignalParseError("Corpo do webhook deve ser um objeto JSON")

    payload = dict(body)
    payload.setdefault("type", "message")
    if isinstance(payload.get("message"), str):
        payload["message"] = payload["message"].strip()
    try:
        signal = _planning_adapter.validate_python(payload)
    except ValidationError as e:
        raise SignalParseError(f"Sinal do planning agent inválido: {e.error_count()} erro(s)") from e

    if not signal.project_id:
        project_id = extract_project_id(signal.message)
        if not project_id:
            raise SignalParseError("projectId ou mensagem contendo projectId é obrigatório")
        signal = signal.model_copy(update={"project_id": project_id})
    return signal


def extract_project_id(message: str) -> Optional[str]:
    match = _PROJECT_ID_PATTERN.search(message or "")
    return match.group(0) if match else None


def tasks_from_payload(raw_tasks: list[Any]) -> list[Task]:
    tasks = []
    for index, raw in enumerate(raw_tasks):
        if not isinstance(raw, dict):
            raise SignalParseError(f"Tarefa {index + 1} do plano não é um objeto")
        title = raw.get("title") if isinstance(raw.get("title"), str) else None
        prompt = raw.get("prompt") if isinstance(raw.get("prompt"), str) else None
        description = raw.get("description") if isinstance(raw.get("description"), str) else ""
        tasks.append(
            Task(
                id=str(raw.get("id") or f"task_{index + 1}"),
                title=title or "Task",
                description=description,
                prompt=prompt or title or "",
            )
        )
    return tasks


def parse_tasks_from_message(message: str) -> Optional[list[Task]]:
    match = _TASK_ARRAY_PATTERN.search(message or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list) or not parsed:
        return None
    try:
        return tasks_from_payload(parsed)
    except SignalParseError:
        return None


def parse_fix_prompt_from_message(message: str) -> Optional[str]:
    match = _FIX_PROMPT_PATTERN.search(message or "")
    if match:
        try:
            fix_prompt = json.loads(f'"{match.group(1)}"')
        except json.JSONDecodeError:
            return None
        return fix_prompt or None

    block = _FIX_PROMPT_BLOCK_PATTERN.search(message or "")
    if block:
        try:
            obj = json.loads(block.group(1).strip())
        except json.JSONDecodeError:
            return None
        fix_prompt = obj.get("fixPrompt") if isinstance(obj, dict) else None
        return fix_prompt if isinstance(fix_prompt, str) and fix_prompt else None
    return None


def is_approval_message(message: str) -> bool:
    lower = (message or "").lower().strip()
    return any(keyword in lower for keyword in APPROVAL_KEYWORDS)
