"""
Cliente do planning agent: mensagens "dispara e esquece" pelo gateway de hooks.

As respostas chegam depois pelo webhook /webhooks/planning-agent, correlacionadas apenas pelo project_id.
"""

import logging
from typing import Optional

from config.constants import (
    DEFAULT_PLANNING_AGENT_ID,
    DEFAULT_PLANNING_GATEWAY_URL,
    PLAN_REQUEST_TIMEOUT_SECONDS,
    PLANNING_MESSAGE_SENDER,
)
from models.task_model import AgentCredentials
from utils.security_utils import is_valid_gateway_url

from .base_agent import BaseAgentClient

logger = logging.getLogger("AgentBridge")

HOOKS_PATH = "/hooks/agent"
MAX_FIX_ERRORS = 10

PLAN_PROMPT = """Research this app idea, plan it in detail and produce a task list in JSON format.
For each task: { "id": "task_1", "title": "Title", "description": "Description", "prompt": "Instruction for the coding agent" }.
The prompt field is used while building the Expo/React Native app and must be clear and actionable.
Reply with {{ "projectId": "{project_id}", "type": "plan", "tasks": [...] }} or return only the JSON array."""

FIX_PROMPT = """Verification failed for project {project_id}. Research a fix for the errors below.
Reply via webhook with {{ "projectId": "{project_id}", "type": "fix", "fixPrompt": "..." }}."""


class InvalidGatewayError(ValueError):
    pass


class PlanningAgentClient(BaseAgentClient):
    agent_name = "planning-agent"

    def __init__(
        self,
        gateway_url: str = DEFAULT_PLANNING_GATEWAY_URL,
        token: Optional[str] = None,
        agent_id: str = DEFAULT_PLANNING_AGENT_ID,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.gateway_url = gateway_url
        self.token = token
        self.agent_id = agent_id

    @classmethod
    def from_config(cls, config: dict) -> "PlanningAgentClient":
        section = config.get("planning_agent", {})
        retry = config.get("retry", {})
        return cls(
            gateway_url=section.get("gateway_url") or DEFAULT_PLANNING_GATEWAY_URL,
            token=section.get("token"),
            agent_id=section.get("agent_id") or DEFAULT_PLANNING_AGENT_ID,
            simulation=bool(config.get("simulation", False)),
            max_attempts=retry.get("max_attempts", 3),
            base_delay=retry.get("base_delay", 1.0),
        )

    def _token(self, credentials: Optional[AgentCredentials]) -> Optional[str]:
        if credentials is not None and credentials.planning_token is not None:
            return credentials.planning_token.get_secret_value()
        return self.token

    def _gateway(self, credentials: Optional[AgentCredentials]) -> str:
        gateway = self.gateway_url
        if credentials is not None and credentials.planning_gateway_url:
            gateway = credentials.planning_gateway_url
        if gateway.startswith("ws"):
            gateway = "http" + gateway[2:]
        return gateway.rstrip("/")

    def is_configured(self, credentials: Optional[AgentCredentials] = None) -> bool:
        return bool(self._token(credentials))

    async def send(
        self,
        message: str,
        credentials: Optional[AgentCredentials] = None,
        timeout_seconds: Optional[int] = None,
    ) -> bool:
        """
        Envia uma mensagem ao planning agent.

        Returns:
            True se a mensagem foi entregue ao gateway; False em simulação ou sem token

        Raises:
            InvalidGatewayError: URL do gateway fora das regras (http(s), sem faixas privadas)
            AgentAPIError: resposta de erro do gateway após os retries
        """
        if self.simulation:
            logger.info(f"Simulação: mensagem ao planning agent ignorada ({len(message)} caracteres)")
            return False

        token = self._token(credentials)
        if not token:
            logger.info("Planning agent sem token configurado, mensagem ignorada")
            return False

        gateway = self._gateway(credentials)
        if not is_valid_gateway_url(gateway):
            logger.warning(f"URL do gateway do planning agent bloqueada: {gateway[:50]}")
            raise InvalidGatewayError("URL do gateway inválida. Use http(s)://host:porta; IPs internos são bloqueados")

        body = {
            "message": message,
            "name": PLANNING_MESSAGE_SENDER,
            "agentId": self.agent_id,
            "wakeMode": "now",
            "deliver": True,
        }
        if timeout_seconds:
            body["timeoutSeconds"] = timeout_seconds

        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        await self._request("POST", f"{gateway}{HOOKS_PATH}", headers, body)
        logger.info(f"Mensagem enviada ao planning agent ({len(message)} caracteres)")
        return True

    async def request_plan(self, idea: str, project_id: str, credentials: Optional[AgentCredentials] = None) -> bool:
        message = f"{PLAN_PROMPT.format(project_id=project_id)}\n\nIdea: {idea}\nProject: {project_id}"
        return await self.send(message, credentials, timeout_seconds=PLAN_REQUEST_TIMEOUT_SECONDS)

    async def request_fix(
        self,
        project_id: str,
        errors: list[str],
        task_prompt: str,
        stderr: Optional[str] = None,
        credentials: Optional[AgentCredentials] = None,
    ) -> bool:
        sections = [FIX_PROMPT.format(project_id=project_id), f"Task:\n{task_prompt}"]
        if errors:
            sections.append("Errors:\n" + "\n".join(f"- {error}" for error in errors[:MAX_FIX_ERRORS]))
        if stderr and stderr.strip():
            sections.append(f"stderr (tail):\n{stderr.strip()[-1000:]}")
        return await self.send("\n\n".join(sections), credentials, timeout_seconds=PLAN_REQUEST_TIMEOUT_SECONDS)

    async def notify(self, message: str, credentials: Optional[AgentCredentials] = None) -> bool:
        """Notificação de melhor esforço: falhas são registradas e nunca propagadas"""
        try:
            return await self.send(message, credentials)
        except Exception as e:
            logger.warning(f"Falha ao notificar o planning agent: {str(e)}")
            return False
