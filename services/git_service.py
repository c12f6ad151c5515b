import asyncio
import logging
import os
import shutil
from pathlib import Path

from git import Git, Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from config.constants import GIT_CLONE_TIMEOUT, GIT_PULL_TIMEOUT
from utils.git_utils import build_clone_url
from utils.security_utils import redact_credentials

logger = logging.getLogger("AgentBridge")

AUTH_ERROR_MARKERS = (
    "authentication failed",
    "invalid username or token",
    "password authentication is not supported",
    "could not read username",
)


class AuthenticationError(Exception):
    pass


class RepositoryError(Exception):
    """Falha ao obter o repositório (mensagem já sem credenciais)"""


class GitService:
    def __init__(self, default_token: str | None = None):
        self.default_token = default_token

    def _configure_git_no_prompt(self):
        os.environ["GIT_TERMINAL_PROMPT"] = "0"

    def _pull(self, target: Path, branch: str) -> bool:
        try:
            repo = Repo(str(target))
            repo.git.pull("origin", branch, kill_after_timeout=GIT_PULL_TIMEOUT)
            return True
        except (GitCommandError, InvalidGitRepositoryError, NoSuchPathError) as e:
            logger.warning(f"git pull falhou em {target}, tentando clone novo: {redact_credentials(str(e))}")
            return False

    async def clone_or_pull(self, repository: str, branch: str, target_dir: str, token: str | None = None) -> str:
        """
        Garante um checkout atualizado do repositório em target_dir.

        Tenta `git pull` num checkout existente; se falhar, remove o diretório e faz um clone
        raso (depth 1) da branch.

        Raises:
            AuthenticationError: credenciais recusadas pelo servidor git
            RepositoryError: demais falhas do clone
        """
        token = token or self.default_token

        def _clone_or_pull() -> str:
            self._configure_git_no_prompt()
            target = Path(target_dir)

            if target.exists():
                if (target / ".git").exists() and self._pull(target, branch):
                    logger.info(f"Repositório atualizado: {target_dir} ({branch})")
                    return str(target)
                shutil.rmtree(target)

            target.parent.mkdir(parents=True, exist_ok=True)
            Git(str(target.parent)).clone(
                build_clone_url(repository, token),
                str(target),
                depth=1,
                branch=branch,
                kill_after_timeout=GIT_CLONE_TIMEOUT,
            )
            logger.info(f"Repositório clonado com sucesso: {target_dir} ({branch})")
            return str(target)

        try:
            return await asyncio.to_thread(_clone_or_pull)
        except GitCommandError as e:
            message = redact_credentials(str(e), [token])
            if e.status == 128 and any(marker in str(e).lower() for marker in AUTH_ERROR_MARKERS):
                logger.error(f"Erro de autenticação ao clonar repositório: {message}")
                raise AuthenticationError(f"Token de autenticação inválido: {message}") from None
            logger.error(f"Erro ao clonar repositório: {message}")
            raise RepositoryError(message) from None
        except OSError as e:
            message = redact_credentials(str(e), [token])
            logger.error(f"Erro de sistema de arquivos ao preparar o checkout: {message}")
            raise RepositoryError(message) from None
