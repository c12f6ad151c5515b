import logging
import re
from pathlib import Path

import asyncpg

logger = logging.getLogger("AgentBridge")

DEFAULT_MIGRATIONS_DIR = Path(__file__).parent / "migrations"
_MIGRATION_FILE_PATTERN = re.compile(r"^(\d+)_.+\.sql$")


class MigrationManager:
    """Aplica os arquivos NNN_descricao.sql pendentes; cada versão aplicada fica em schema_version"""

    def __init__(self, migrations_dir: Path = DEFAULT_MIGRATIONS_DIR):
        self.migrations_dir = migrations_dir

    def pending_files(self, applied: set[str]) -> list[tuple[str, Path]]:
        migrations = []
        for file_path in self.migrations_dir.glob("*.sql"):
            match = _MIGRATION_FILE_PATTERN.match(file_path.name)
            if match is None:
                logger.warning(f"Arquivo de migração com nome inválido ignorado: {file_path.name}")
                continue
            if match.group(1) not in applied:
                migrations.append((match.group(1), file_path))
        return sorted(migrations, key=lambda item: int(item[0]))

    async def run_migrations(self, pool: asyncpg.Pool) -> list[str]:
        """
        Aplica as migrações pendentes em ordem numérica, cada uma na sua transação.

        Returns:
            Versões aplicadas nesta execução
        """
        async with pool.acquire() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version VARCHAR(50) PRIMARY KEY,
                    applied_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            rows = await conn.fetch("SELECT version FROM schema_version")
            pending = self.pending_files({row["version"] for row in rows})

            if not pending:
                logger.info("Nenhuma migração pendente")
                return []

            executed = []
            for version, file_path in pending:
                try:
                    async with conn.transaction():
                        await conn.execute(file_path.read_text(encoding="utf-8"))
                        await conn.execute("INSERT INTO schema_version (version) VALUES ($1)", version)
                except Exception as e:
                    logger.error(f"Erro ao aplicar migração {file_path.name}: {str(e)}")
                    raise
                logger.info(f"Migração {file_path.name} aplicada")
                executed.append(version)
            return executed
