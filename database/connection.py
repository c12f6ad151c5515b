import logging
import os

import asyncpg

logger = logging.getLogger("AgentBridge")


def connection_kwargs(config: dict | None = None) -> dict:
    """
    Parâmetros do pool a partir da seção persistence (ou de DATABASE_URL / POSTGRES_*).

    A senha nunca vem do arquivo de configuração.
    """
    section = (config or {}).get("persistence", {})
    pool_sizes = {"min_size": section.get("min_pool_size", 1), "max_size": section.get("max_pool_size", 5)}

    dsn = section.get("dsn") or os.getenv("DATABASE_URL")
    if dsn:
        return {"dsn": dsn, **pool_sizes}
    return {
        "host": section.get("host") or os.getenv("POSTGRES_HOST", "localhost"),
        "port": int(section.get("port") or os.getenv("POSTGRES_PORT", "5432")),
        "database": section.get("database") or os.getenv("POSTGRES_DB", "agent_bridge"),
        "user": section.get("user") or os.getenv("POSTGRES_USER", "agent_bridge"),
        "password": os.getenv("POSTGRES_PASSWORD"),
        **pool_sizes,
    }


class DatabaseConnection:
    _pool: asyncpg.Pool | None = None

    @classmethod
    async def get_pool(cls) -> asyncpg.Pool:
        if cls._pool is None:
            await cls.initialize()
        return cls._pool

    @classmethod
    async def initialize(cls, config: dict | None = None):
        if cls._pool is not None:
            return
        try:
            cls._pool = await asyncpg.create_pool(**connection_kwargs(config))
            logger.info("Pool de conexões PostgreSQL criado")
        except Exception as e:
            logger.error(f"Erro ao criar pool de conexões PostgreSQL: {str(e)}")
            raise

    @classmethod
    async def close(cls):
        if cls._pool:
            await cls._pool.close()
            cls._pool = None
            logger.info("Pool de conexões PostgreSQL fechado")
