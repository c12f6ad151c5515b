"""
Classificador de falhas de verificação.

Tabela de padrões avaliada em ordem de prioridade: o primeiro grupo com casamento define a categoria.
"""

import re
from typing import Optional

from models.task_model import FailureCategory

FAILURE_PATTERNS: list[tuple[FailureCategory, list[re.Pattern]]] = [
    (
        FailureCategory.DEPENDENCY,
        [
            re.compile(r"cannot find module", re.IGNORECASE),
            re.compile(r"module not found", re.IGNORECASE),
            re.compile(r"npm err", re.IGNORECASE),
            re.compile(r"package\.json", re.IGNORECASE),
            re.compile(r"install", re.IGNORECASE),
            re.compile(r"dependency", re.IGNORECASE),
            re.compile(r"peer dep", re.IGNORECASE),
            re.compile(r"E404", re.IGNORECASE),
        ],
    ),
    (
        FailureCategory.SYNTAX,
        [
            re.compile(r"unexpected token", re.IGNORECASE),
            re.compile(r"syntax error", re.IGNORECASE),
            re.compile(r"parsing error", re.IGNORECASE),
            re.compile(r"expected", re.IGNORECASE),
            re.compile(r"TS\d{4}", re.IGNORECASE),
            re.compile(r"TypeError", re.IGNORECASE),
            re.compile(r"ReferenceError", re.IGNORECASE),
        ],
    ),
    (
        FailureCategory.ARCHITECTURE,
        [
            re.compile(r"circular", re.IGNORECASE),
            re.compile(r"import.*from", re.IGNORECASE),
            re.compile(r"export", re.IGNORECASE),
            re.compile(r"component.*not found", re.IGNORECASE),
            re.compile(r"hook.*rules", re.IGNORECASE),
            re.compile(r"invalid hook", re.IGNORECASE),
        ],
    ),
    (
        FailureCategory.ENVIRONMENT,
        [
            re.compile(r"ENOENT", re.IGNORECASE),
            re.compile(r"EACCES", re.IGNORECASE),
            re.compile(r"permission denied", re.IGNORECASE),
            re.compile(r"port.*in use", re.IGNORECASE),
            re.compile(r"timeout", re.IGNORECASE),
            re.compile(r"network", re.IGNORECASE),
            re.compile(r"expo.*config", re.IGNORECASE),
            re.compile(r"app\.json", re.IGNORECASE),
        ],
    ),
]


def classify_failure(errors: list[str], stderr: Optional[str] = None) -> FailureCategory:
    combined = "\n".join([*errors, stderr or ""])
    for category, patterns in FAILURE_PATTERNS:
        if any(pattern.search(combined) for pattern in patterns):
            return category
    return FailureCategory.UNKNOWN
