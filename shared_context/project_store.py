"""
Registro em memória dos projetos, injetado pelo composition root em cada componente que precisa dele
"""

import logging
from typing import Optional

from models.task_model import ProjectState

logger = logging.getLogger("AgentBridge")


class ProjectStore:
    """
    Mapa project_id -> ProjectState, com índice secundário pelo agente em execução.

    Único dono do estado dos projetos; a persistência mantém apenas uma cópia sombra.
    """

    def __init__(self):
        self._projects: dict[str, ProjectState] = {}
        self._agent_index: dict[str, str] = {}

    def get(self, project_id: str) -> Optional[ProjectState]:
        return self._projects.get(project_id)

    def set(self, state: ProjectState) -> None:
        previous = self._projects.get(state.project_id)
        if previous is not None and previous is not state and previous.current_agent_id:
            self._agent_index.pop(previous.current_agent_id, None)
        self._projects[state.project_id] = state
        self.index_agent(state)

    def delete(self, project_id: str) -> bool:
        state = self._projects.pop(project_id, None)
        if state is None:
            return False
        if state.current_agent_id:
            self._agent_index.pop(state.current_agent_id, None)
        return True

    def list(self) -> list[ProjectState]:
        return list(self._projects.values())

    def __contains__(self, project_id: str) -> bool:
        return project_id in self._projects

    def __len__(self) -> int:
        return len(self._projects)

    def index_agent(self, state: ProjectState, previous_agent_id: Optional[str] = None) -> None:
        """Atualiza o índice de agentes após troca do current_agent_id"""
        if previous_agent_id and self._agent_index.get(previous_agent_id) == state.project_id:
            del self._agent_index[previous_agent_id]
        if state.current_agent_id:
            self._agent_index[state.current_agent_id] = state.project_id

    def find_by_agent_id(self, agent_id: str) -> Optional[ProjectState]:
        """
        Localiza o projeto dono de um agente em execução.

        O índice é só um atalho: o resultado vale apenas se o current_agent_id do projeto ainda
        for o agente informado.
        """
        project_id = self._agent_index.get(agent_id)
        if project_id is not None:
            state = self._projects.get(project_id)
            if state is not None and state.current_agent_id == agent_id:
                return state
            self._agent_index.pop(agent_id, None)
        return None
