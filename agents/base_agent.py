"""
Base dos clientes HTTP dos agentes externos (coding agent e planning agent)
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from config.constants import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_BASE_DELAY, HTTP_REQUEST_TIMEOUT
from utils.retry import with_retry
from utils.security_utils import redact_credentials

logger = logging.getLogger("AgentBridge")

ERROR_BODY_PREVIEW = 300


class MissingCredentialError(RuntimeError):
    """Credencial obrigatória ausente: erro de configuração, sem retry"""


class AgentAPIError(Exception):
    def __init__(self, agent: str, status: int, message: str):
        super().__init__(f"Erro da API {agent} {status}: {message}")
        self.agent = agent
        self.status = status
        self.retryable = status >= 500 or status == 429


class BaseAgentClient:
    """
    Cliente base: uma sessão aiohttp por chamada, retry com backoff exponencial nas falhas transitórias.
    """

    agent_name = "agent"

    def __init__(
        self,
        simulation: bool = False,
        max_attempts: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        request_timeout: float = HTTP_REQUEST_TIMEOUT,
    ):
        self.simulation = simulation
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.request_timeout = request_timeout

    async def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        payload: Optional[dict[str, Any]] = None,
    ) -> Any:
        async def _call():
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, headers=headers, json=payload) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        raise AgentAPIError(
                            self.agent_name, response.status, redact_credentials(error_text[:ERROR_BODY_PREVIEW])
                        )
                    if response.content_type == "application/json":
                        return await response.json()
                    return await response.text()

        try:
            return await with_retry(_call, max_attempts=self.max_attempts, base_delay=self.base_delay)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Falha de comunicação com {self.agent_name} ({method} {redact_credentials(url)}): {str(e)}")
            raise
