"""
Módulo Agents - Clientes HTTP dos agentes externos
"""

from .base_agent import AgentAPIError, MissingCredentialError
from .coding_agent import CodingAgentClient, build_agent_prompt
from .planning_agent import InvalidGatewayError, PlanningAgentClient

__all__ = [
    "AgentAPIError",
    "CodingAgentClient",
    "InvalidGatewayError",
    "MissingCredentialError",
    "PlanningAgentClient",
    "build_agent_prompt",
]
