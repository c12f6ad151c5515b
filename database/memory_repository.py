import json
import logging

from database.connection import DatabaseConnection
from models.memory_model import MemoryRecord

logger = logging.getLogger("AgentBridge")


class MemoryRepository:
    @staticmethod
    async def insert(record: MemoryRecord):
        pool = await DatabaseConnection.get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO memory_records (project_id, type, payload, created_at)
                VALUES ($1, $2, $3::jsonb, $4)
                """,
                record.project_id,
                record.type.value,
                json.dumps(record.payload),
                record.created_at,
            )

    @staticmethod
    async def list_for_project(project_id: str, limit: int) -> list[MemoryRecord]:
        """Registros do projeto em ordem cronológica (os `limit` mais recentes)"""
        pool = await DatabaseConnection.get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT project_id, type, payload, created_at
                FROM memory_records
                WHERE project_id = $1
                ORDER BY created_at DESC
                LIMIT $2
                """,
                project_id,
                limit,
            )

        records = []
        for row in reversed(rows):
            payload = row["payload"]
            if isinstance(payload, str):
                payload = json.loads(payload)
            records.append(
                MemoryRecord(
                    project_id=row["project_id"], type=row["type"], payload=payload, created_at=row["created_at"]
                )
            )
        return records
