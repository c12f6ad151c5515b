"""
Retry com backoff exponencial para chamadas aos agentes externos
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import aiohttp

from config.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_BASE_DELAY,
    MAX_RETRY_DELAY,
)

logger = logging.getLogger("AgentBridge")

T = TypeVar("T")


def is_transient(error: BaseException) -> bool:
    """Erros de rede, timeout e respostas 5xx/429 são transitórios"""
    if isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError)):
        return True
    return bool(getattr(error, "retryable", False))


def backoff_delay(attempt: int, base_delay: float = DEFAULT_RETRY_BASE_DELAY) -> float:
    return min(base_delay * DEFAULT_RETRY_BACKOFF_FACTOR ** (attempt - 1), MAX_RETRY_DELAY)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_RETRY_BASE_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Executa `fn` repetindo falhas transitórias.

    Args:
        fn: Fábrica da corrotina a executar (chamada a cada tentativa)
        max_attempts: Número máximo de tentativas
        base_delay: Atraso base em segundos, dobrado a cada tentativa
        sleep: Função de espera (substituível em testes)

    Returns:
        Resultado da primeira tentativa bem-sucedida

    Raises:
        O último erro, ou imediatamente um erro não transitório
    """
    attempt = 1
    while True:
        try:
            return await fn()
        except Exception as e:
            if not is_transient(e) or attempt >= max_attempts:
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.warning(f"Tentativa {attempt}/{max_attempts} falhou ({str(e)}), nova tentativa em {delay:.1f}s")
            await sleep(delay)
            attempt += 1
