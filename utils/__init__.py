"""
Módulo Utils - Utilitários e funções auxiliares do Agent Bridge
"""

from . import security_utils
from .git_utils import build_clone_url, normalize_repository_url, project_work_dir, sanitize_path
from .retry import with_retry

__all__ = [
    "build_clone_url",
    "normalize_repository_url",
    "project_work_dir",
    "sanitize_path",
    "security_utils",
    "with_retry",
]
