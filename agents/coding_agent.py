"""
Cliente do coding agent: dispara execuções de tarefas contra o repositório e consulta status
"""

import base64
import logging
import time
import uuid
from typing import Optional

from config.constants import DEFAULT_CODING_AGENT_API_BASE
from models.task_model import AgentCredentials

from .base_agent import AgentAPIError, BaseAgentClient, MissingCredentialError

logger = logging.getLogger("AgentBridge")

WEBHOOK_PATH = "/webhooks/coding-agent"


def build_agent_prompt(prompt: str, memory_context: Optional[str] = None) -> str:
    """Prefixa o contexto da memória do projeto, quando houver, ao prompt da tarefa"""
    if not memory_context:
        return prompt
    return f"{memory_context}\n\n---\n\n{prompt}"


def repository_source_url(repository: str) -> str:
    repository = repository.strip()
    if repository.endswith(".git"):
        repository = repository[:-4]
    if repository.startswith("http"):
        return repository
    return f"https://github.com/{repository}"


class CodingAgentClient(BaseAgentClient):
    agent_name = "coding-agent"

    def __init__(
        self,
        api_base: str = DEFAULT_CODING_AGENT_API_BASE,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        orchestration_url: str = "http://localhost:8181",
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.api_base = api_base.rstrip("/")
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.orchestration_url = orchestration_url.rstrip("/")

    @classmethod
    def from_config(cls, config: dict) -> "CodingAgentClient":
        section = config.get("coding_agent", {})
        retry = config.get("retry", {})
        return cls(
            api_base=section.get("api_base") or DEFAULT_CODING_AGENT_API_BASE,
            api_key=section.get("api_key"),
            webhook_secret=section.get("webhook_secret"),
            orchestration_url=section.get("orchestration_url") or "http://localhost:8181",
            simulation=bool(config.get("simulation", False)),
            max_attempts=retry.get("max_attempts", 3),
            base_delay=retry.get("base_delay", 1.0),
        )

    def _api_key(self, credentials: Optional[AgentCredentials]) -> Optional[str]:
        if credentials is not None and credentials.coding_api_key is not None:
            return credentials.coding_api_key.get_secret_value()
        return self.api_key

    def _webhook_secret(self, credentials: Optional[AgentCredentials]) -> Optional[str]:
        if credentials is not None and credentials.coding_webhook_secret is not None:
            return credentials.coding_webhook_secret.get_secret_value()
        return self.webhook_secret

    def is_configured(self, credentials: Optional[AgentCredentials] = None) -> bool:
        return self.simulation or bool(self._api_key(credentials))

    def _auth_header(self, credentials: Optional[AgentCredentials]) -> str:
        key = self._api_key(credentials)
        if not key:
            raise MissingCredentialError(
                "Chave de API do coding agent obrigatória: informe credentials.coding_api_key ou CODING_AGENT_API_KEY"
            )
        encoded = base64.b64encode(f"{key}:".encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"

    async def launch(
        self,
        prompt: str,
        repository: str,
        branch: str = "main",
        credentials: Optional[AgentCredentials] = None,
    ) -> str:
        """
        Dispara uma execução do coding agent.

        Returns:
            Identificador do agente em execução

        Raises:
            MissingCredentialError: sem chave de API configurada
            AgentAPIError: resposta de erro da API após os retries
        """
        if self.simulation:
            agent_id = f"sim_agent_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"
            logger.info(f"Simulação: agente {agent_id} criado")
            return agent_id

        headers = {"Authorization": self._auth_header(credentials), "Content-Type": "application/json"}
        webhook = {"url": f"{self.orchestration_url}{WEBHOOK_PATH}"}
        secret = self._webhook_secret(credentials)
        if secret:
            webhook["secret"] = secret

        body = {
            "prompt": {"text": prompt},
            "source": {"repository": repository_source_url(repository), "ref": branch},
            "webhook": webhook,
        }
        response = await self._request("POST", f"{self.api_base}/agents", headers, body)
        agent_id = response.get("id") if isinstance(response, dict) else None
        if not agent_id:
            raise AgentAPIError(self.agent_name, 502, "resposta sem identificador de agente")

        logger.info(f"Coding agent iniciado: {agent_id} ({repository_source_url(repository)}@{branch})")
        return agent_id

    async def get_status(self, agent_id: str, credentials: Optional[AgentCredentials] = None) -> str:
        if self.simulation:
            return "FINISHED"
        headers = {"Authorization": self._auth_header(credentials)}
        response = await self._request("GET", f"{self.api_base}/agents/{agent_id}", headers)
        if not isinstance(response, dict):
            raise AgentAPIError(self.agent_name, 502, "resposta de status inválida")
        return str(response.get("status", "UNKNOWN"))
