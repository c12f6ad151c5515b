import asyncio
import logging
from typing import Any, Optional

from agents.coding_agent import CodingAgentClient
from agents.planning_agent import PlanningAgentClient
from config.logging_config import setup_logging
from config.system_config import load_configuration
from database.connection import DatabaseConnection
from database.memory_repository import MemoryRepository
from database.migration_manager import MigrationManager
from database.project_repository import ProjectRepository
from orchestrator.fallback_handler import FixPromptGenerator
from orchestrator.workflow import ProjectOrchestrator
from services.completion_handler import CompletionHandler
from services.git_service import GitService
from services.project_manager import ProjectManager
from services.release_service import ReleaseService
from services.verification_engine import VerificationEngine
from shared_context.memory_store import MemoryStore
from shared_context.project_store import ProjectStore

logger = logging.getLogger("AgentBridge")


class AgentBridgeSystem:
    """Raiz de composição: cria os componentes uma vez e os injeta uns nos outros"""

    def __init__(
        self,
        config_path: str | None = None,
        config: dict | None = None,
        coding_agent: Optional[CodingAgentClient] = None,
        planning_agent: Optional[PlanningAgentClient] = None,
        verification_engine: Optional[VerificationEngine] = None,
        git_service: Optional[GitService] = None,
        release_service: Optional[ReleaseService] = None,
    ):
        self.config = config if config is not None else load_configuration(config_path)
        self.work_dir = self.config.get("work_dir", "/tmp/orchestrator")
        self.simulation = bool(self.config.get("simulation", False))
        self.persistence_enabled = bool(self.config["persistence"].get("enabled", False))

        self.project_repository = ProjectRepository() if self.persistence_enabled else None
        self.memory_repository = MemoryRepository() if self.persistence_enabled else None

        self.project_store = ProjectStore()
        self.memory_store = MemoryStore(self.memory_repository)
        self.project_manager = ProjectManager(
            self.project_store,
            self.project_repository,
            self.config["orchestrator"]["max_iterations"],
        )

        self.coding_agent = coding_agent or CodingAgentClient.from_config(self.config)
        self.planning_agent = planning_agent or PlanningAgentClient.from_config(self.config)
        self.verification_engine = verification_engine or VerificationEngine.from_config(self.config)
        self.git_service = git_service or GitService(self.config.get("github", {}).get("token"))
        self.release_service = release_service or ReleaseService(self.work_dir, simulation=self.simulation)

        self.orchestrator = ProjectOrchestrator(
            self.project_manager, self.memory_store, self.coding_agent, self.planning_agent
        )
        self.completion_handler = CompletionHandler(
            project_manager=self.project_manager,
            orchestrator=self.orchestrator,
            verification_engine=self.verification_engine,
            git_service=self.git_service,
            planning_agent=self.planning_agent,
            memory_store=self.memory_store,
            release_service=self.release_service,
            work_dir=self.work_dir,
            fix_prompt_generator=FixPromptGenerator(),
        )
        self.is_initialized = False

    async def initialize(self):
        """Inicializa persistência (quando habilitada) e reidrata o registro de projetos"""
        if self.is_initialized:
            return
        logger.info("Inicializando Agent Bridge...")
        if self.persistence_enabled:
            try:
                await DatabaseConnection.initialize(self.config)
                pool = await DatabaseConnection.get_pool()
                await MigrationManager().run_migrations(pool)
                await self.rehydrate()
            except Exception as e:
                logger.error(f"Falha na inicialização da persistência: {str(e)}", exc_info=True)
                raise
        self.is_initialized = True
        logger.info(
            f"Agent Bridge pronto (simulação: {self.simulation}, persistência: {self.persistence_enabled})"
        )

    async def rehydrate(self) -> int:
        if self.project_repository is None:
            return 0
        states = await self.project_repository.load_all()
        for state in states:
            self.project_manager.hydrate(state)
        logger.info(f"{len(states)} projeto(s) reidratado(s) da persistência")
        return len(states)

    async def shutdown(self):
        if self.persistence_enabled:
            await DatabaseConnection.close()
        self.is_initialized = False

    def get_system_status(self) -> dict[str, Any]:
        return {
            "status": "operational" if self.is_initialized else "initializing",
            "coding_agent_configured": self.coding_agent.is_configured(),
            "planning_agent_configured": self.planning_agent.is_configured(),
            "simulation": self.simulation,
            "persistence": self.persistence_enabled,
            "projects": len(self.project_store),
        }


async def main():
    """Função principal de inicialização do sistema"""
    import uvicorn

    from api.server import create_app

    setup_logging(logging.INFO)
    system = AgentBridgeSystem()
    port = int(system.config.get("port", 8181))
    logger.info(f"Iniciando servidor API na porta {port}...")
    config = uvicorn.Config(create_app(system), host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(config)
    await server.serve()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
