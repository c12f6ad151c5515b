"""
Memória do projeto: decisões de arquitetura, correções que falharam, prompts enviados e tradeoffs
"""

import logging
from datetime import datetime
from typing import Any, Optional

from config.constants import (
    MAX_SUMMARY_DECISIONS,
    MAX_SUMMARY_FAILED_FIXES,
    MAX_SUMMARY_PROMPTS,
    MAX_SUMMARY_TRADEOFFS,
    MEMORY_QUERY_LIMIT,
    MEMORY_SUMMARY_LIMIT,
)
from models.memory_model import MemoryRecord, MemoryRecordType, ProjectMemorySummary

logger = logging.getLogger("AgentBridge")

FAILED_FIX_PATTERN_LENGTH = 200
PROMPT_PREVIEW_LENGTH = 150


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class MemoryStore:
    """
    Memória em processo, espelhada no PostgreSQL quando há um repositório configurado.

    Falhas do repositório são registradas como aviso e nunca interrompem o fluxo.
    """

    def __init__(self, repository=None):
        self.repository = repository
        self._records: dict[str, list[MemoryRecord]] = {}
        self._loaded: set[str] = set()

    async def write(self, project_id: str, type: MemoryRecordType, payload: dict[str, Any]) -> MemoryRecord:
        record = MemoryRecord(project_id=project_id, type=MemoryRecordType(type), payload=payload)
        self._records.setdefault(project_id, []).append(record)

        if self.repository is not None:
            try:
                await self.repository.insert(record)
            except Exception as e:
                logger.warning(f"Falha ao gravar memória do projeto {project_id}: {str(e)}")

        logger.debug(f"Memória registrada: {project_id} ({record.type.value})")
        return record

    async def _ensure_loaded(self, project_id: str) -> None:
        if self.repository is None or project_id in self._loaded:
            return
        self._loaded.add(project_id)
        try:
            stored = await self.repository.list_for_project(project_id, MEMORY_SUMMARY_LIMIT)
        except Exception as e:
            logger.warning(f"Falha ao carregar memória do projeto {project_id}: {str(e)}")
            return
        current = self._records.get(project_id, [])
        known = {(r.type, r.created_at) for r in current}
        merged = [r for r in stored if (r.type, r.created_at) not in known] + current
        self._records[project_id] = sorted(merged, key=lambda r: r.created_at)

    async def query(
        self,
        project_id: str,
        types: Optional[list[MemoryRecordType]] = None,
        since: Optional[datetime] = None,
        limit: int = MEMORY_QUERY_LIMIT,
    ) -> list[MemoryRecord]:
        """Registros do projeto do mais recente para o mais antigo"""
        await self._ensure_loaded(project_id)
        records = reversed(self._records.get(project_id, []))
        selected = []
        for record in records:
            if types and record.type not in types:
                continue
            if since is not None and record.created_at < since:
                continue
            selected.append(record)
            if len(selected) >= limit:
                break
        return selected

    async def get_project_summary(self, project_id: str) -> ProjectMemorySummary:
        records = await self.query(project_id, limit=MEMORY_SUMMARY_LIMIT)

        decisions: list[str] = []
        failed_fixes: list[str] = []
        prompts: list[str] = []
        tradeoffs: list[str] = []

        for record in records:
            payload = record.payload
            if record.type == MemoryRecordType.ARCHITECTURAL_DECISION and isinstance(payload.get("decision"), str):
                decisions.append(payload["decision"])
            elif record.type == MemoryRecordType.FAILED_FIX and isinstance(payload.get("error_output"), str):
                failed_fixes.append(payload["error_output"][:FAILED_FIX_PATTERN_LENGTH])
            elif record.type == MemoryRecordType.PROMPT and isinstance(payload.get("prompt_text"), str):
                prompts.append(payload["prompt_text"][:PROMPT_PREVIEW_LENGTH])
            elif record.type == MemoryRecordType.TRADEOFF and isinstance(payload.get("tradeoff"), str):
                tradeoffs.append(payload["tradeoff"])

        return ProjectMemorySummary(
            project_id=project_id,
            architecture_decisions=_unique(decisions)[:MAX_SUMMARY_DECISIONS],
            failed_fix_patterns=_unique(failed_fixes)[:MAX_SUMMARY_FAILED_FIXES],
            last_prompts=prompts[:MAX_SUMMARY_PROMPTS],
            tradeoffs=_unique(tradeoffs)[:MAX_SUMMARY_TRADEOFFS],
        )

    def forget(self, project_id: str) -> None:
        self._records.pop(project_id, None)
        self._loaded.discard(project_id)


def format_memory_context(summary: ProjectMemorySummary) -> str:
    """Texto de contexto prefixado aos prompts do coding agent; vazio se não houver memória"""
    if summary.is_empty():
        return ""
    lines = []
    if summary.architecture_decisions:
        lines.append("Architecture decisions: " + "; ".join(summary.architecture_decisions[:5]))
    if summary.failed_fix_patterns:
        lines.append("Previously failed fixes (avoid repeating): " + "; ".join(summary.failed_fix_patterns[:3]))
    if summary.tradeoffs:
        lines.append("Tradeoffs: " + "; ".join(summary.tradeoffs[:3]))
    if not lines:
        return ""
    return "Project context:\n" + "\n".join(f"- {line}" for line in lines)
