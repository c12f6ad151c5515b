"""
ReleaseService - build e envio para a loja (EAS) no checkout do projeto aprovado
"""

import logging
from pathlib import Path
from typing import Optional

from config.constants import RELEASE_COMMAND, RELEASE_TIMEOUT
from utils.git_utils import project_work_dir

from .verification_engine import CommandRunner, run_command

logger = logging.getLogger("AgentBridge")

STDERR_TAIL_CHARS = 500


class ReleaseService:
    def __init__(
        self,
        work_dir: str,
        simulation: bool = False,
        command_runner: Optional[CommandRunner] = None,
        timeout: float = RELEASE_TIMEOUT,
    ):
        self.work_dir = work_dir
        self.simulation = simulation
        self.command_runner = command_runner or run_command
        self.timeout = timeout

    async def execute(self, project_id: str) -> bool:
        if self.simulation:
            logger.info(f"Simulação: release do projeto {project_id} ignorado")
            return True

        repo_path = project_work_dir(self.work_dir, project_id)
        if not Path(repo_path).is_dir():
            logger.error(f"Release do projeto {project_id} abortado: checkout não encontrado em {repo_path}")
            return False

        logger.info(f"Iniciando build e envio EAS do projeto {project_id}")
        result = await self.command_runner(list(RELEASE_COMMAND), repo_path, self.timeout)
        if result.code != 0:
            logger.error(
                f"Build EAS do projeto {project_id} falhou (código {result.code}): {result.stderr[-STDERR_TAIL_CHARS:]}"
            )
            return False

        logger.info(f"Build e envio EAS do projeto {project_id} concluídos")
        return True
