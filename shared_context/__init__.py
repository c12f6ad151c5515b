"""
Módulo Shared Context - Registro de projetos e memória compartilhada entre os componentes
"""

from .memory_store import MemoryStore
from .project_store import ProjectStore

__all__ = ["MemoryStore", "ProjectStore"]
