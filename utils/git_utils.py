import os
import re
from pathlib import Path

from .security_utils import is_safe_directory_path

GITHUB_BASE_URL = "https://github.com"


def sanitize_path(path: str) -> str:
    path = re.sub(r"[^\w\-_./\\]", "", path)
    path = os.path.normpath(path)
    if path.startswith(".."):
        raise ValueError("Caminho não pode conter '..'")
    return path


def ensure_directory(base_path: str) -> Path:
    base = Path(base_path)
    base.mkdir(parents=True, exist_ok=True)
    return base


def project_work_dir(work_dir: str, project_id: str) -> str:
    """Diretório de checkout de um projeto dentro do diretório de trabalho"""
    name = sanitize_path(project_id)
    if not is_safe_directory_path(name, work_dir):
        raise ValueError(f"Identificador de projeto inválido para diretório: {project_id}")
    return os.path.join(work_dir, name)


def normalize_repository_url(repository: str) -> str:
    """owner/name vira https://github.com/owner/name; URLs com esquema (https, ssh, file) perdem o sufixo .git"""
    repository = repository.strip()
    if repository.endswith(".git"):
        repository = repository[:-4]
    if "://" in repository:
        return repository.rstrip("/")
    return f"{GITHUB_BASE_URL}/{repository.strip('/')}"


def build_clone_url(repository: str, token: str | None = None) -> str:
    url = f"{normalize_repository_url(repository)}.git"
    if token and url.startswith("https://"):
        url = url.replace("https://", f"https://{token}@", 1)
    return url
