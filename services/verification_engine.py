"""
Verification Engine - executa install, lint, testes e doctor no checkout do projeto.

O código de saída de cada subprocesso é o oráculo; timeouts contam como falha do passo e
nunca interrompem o pipeline.
"""

import asyncio
import logging
import re
import subprocess
from pathlib import Path
from typing import Awaitable, Callable, NamedTuple, Optional

from config.constants import (
    APP_MANIFEST,
    DEFAULT_VERIFICATION_TIMEOUT,
    DOCTOR_TIMEOUT_CAP,
    FALLBACK_ERROR_LINES,
    LINT_TIMEOUT_CAP,
    MAX_DOCTOR_ERRORS,
    MAX_ERROR_LINE_LENGTH,
    MAX_EXTRACTED_ERRORS,
    PROJECT_MANIFEST,
)
from models.task_model import VerificationResult

logger = logging.getLogger("AgentBridge")

ERROR_MARKERS = ("error", "Error", "ERR!", "failed", "Failed")
_LOCATION_PATTERN = re.compile(r"^[\w./\\-]+\.[jt]sx?\(\d+,\d+\):")

TIMEOUT_EXIT_CODE = -1
MISSING_TOOL_EXIT_CODE = 127

PIPELINE_COMMANDS = {
    "bun": {
        "install": ["bun", "install"],
        "lint": ["bun", "run", "lint"],
        "test": ["bun", "test"],
    },
    "npm": {
        "install": ["npm", "install"],
        "lint": ["npx", "eslint", "."],
        "test": ["npm", "test"],
    },
}
DOCTOR_COMMAND = ["npx", "expo-doctor"]


class CommandResult(NamedTuple):
    stdout: str
    stderr: str
    code: int


CommandRunner = Callable[[list[str], str, float], Awaitable[CommandResult]]


async def run_command(command: list[str], cwd: str, timeout: float) -> CommandResult:
    """Executa um comando fora do event loop; timeout devolve código -1 e ferramenta ausente 127"""

    def _run() -> CommandResult:
        try:
            completed = subprocess.run(command, cwd=cwd, capture_output=True, text=True, timeout=timeout)
            return CommandResult(completed.stdout or "", completed.stderr or "", completed.returncode)
        except subprocess.TimeoutExpired as e:
            stdout = e.stdout.decode(errors="replace") if isinstance(e.stdout, bytes) else (e.stdout or "")
            return CommandResult(stdout, f"Command timed out after {timeout}s: {' '.join(command)}", TIMEOUT_EXIT_CODE)
        except FileNotFoundError:
            return CommandResult("", f"Command not found: {command[0]}", MISSING_TOOL_EXIT_CODE)

    return await asyncio.to_thread(_run)


def extract_errors(stdout: str, stderr: str) -> list[str]:
    """
    Extrai linhas de erro da saída combinada.

    Sem linha marcada, usa as últimas linhas não vazias como superfície de erro. O resultado é
    deduplicado preservando a ordem e limitado a MAX_EXTRACTED_ERRORS.
    """
    lines = f"{stdout}\n{stderr}".split("\n")
    errors = []

    for line in lines:
        trimmed = line.strip()
        if not trimmed or len(trimmed) >= MAX_ERROR_LINE_LENGTH:
            continue
        if any(marker in trimmed for marker in ERROR_MARKERS) or _LOCATION_PATTERN.match(trimmed):
            errors.append(trimmed)

    if not errors and (stdout or stderr):
        non_empty = [line.strip() for line in lines if line.strip()]
        errors = non_empty[-FALLBACK_ERROR_LINES:]

    return list(dict.fromkeys(errors))[:MAX_EXTRACTED_ERRORS]


class VerificationEngine:
    def __init__(
        self,
        timeout: float = DEFAULT_VERIFICATION_TIMEOUT,
        package_manager: str = "bun",
        command_runner: Optional[CommandRunner] = None,
    ):
        if package_manager not in PIPELINE_COMMANDS:
            raise ValueError(f"package_manager inválido: {package_manager}")
        self.timeout = timeout
        self.package_manager = package_manager
        self.command_runner = command_runner or run_command

    @classmethod
    def from_config(cls, config: dict, command_runner: Optional[CommandRunner] = None) -> "VerificationEngine":
        verification = config.get("verification", {})
        return cls(
            timeout=verification.get("timeout", DEFAULT_VERIFICATION_TIMEOUT),
            package_manager=verification.get("package_manager", "bun"),
            command_runner=command_runner,
        )

    async def verify(self, repo_path: str) -> VerificationResult:
        repo = Path(repo_path)
        if not (repo / PROJECT_MANIFEST).is_file():
            logger.warning(f"Verificação abortada: {PROJECT_MANIFEST} não encontrado em {repo_path}")
            return VerificationResult(success=False, errors=[f"{PROJECT_MANIFEST} not found or not accessible"])

        commands = PIPELINE_COMMANDS[self.package_manager]
        errors: list[str] = []
        stdout_parts: list[str] = []
        stderr_parts: list[str] = []

        steps = [
            ("install", commands["install"], self.timeout),
            ("lint", commands["lint"], min(self.timeout, LINT_TIMEOUT_CAP)),
            ("test", commands["test"], self.timeout),
        ]
        for name, command, timeout in steps:
            step_errors = await self._run_step(name, command, str(repo), timeout, stdout_parts, stderr_parts)
            errors.extend(step_errors)

        if (repo / APP_MANIFEST).is_file():
            doctor_errors = await self._run_step(
                "doctor", DOCTOR_COMMAND, str(repo), min(self.timeout, DOCTOR_TIMEOUT_CAP), stdout_parts, stderr_parts
            )
            errors.extend(doctor_errors[:MAX_DOCTOR_ERRORS])

        success = not errors
        logger.info(f"Verificação concluída em {repo_path}: success={success}, {len(errors)} erro(s)")
        if errors:
            logger.debug(f"Primeiros erros: {errors[:5]}")

        return VerificationResult(
            success=success,
            errors=errors,
            stdout="".join(stdout_parts) or None,
            stderr="".join(stderr_parts) or None,
        )

    async def _run_step(
        self,
        name: str,
        command: list[str],
        cwd: str,
        timeout: float,
        stdout_parts: list[str],
        stderr_parts: list[str],
    ) -> list[str]:
        logger.info(f"Executando {name}: {' '.join(command)}")
        result = await self.command_runner(command, cwd, timeout)
        stdout_parts.append(result.stdout)
        stderr_parts.append(result.stderr)
        if result.code == 0:
            return []
        if result.code == TIMEOUT_EXIT_CODE:
            logger.warning(f"Passo {name} excedeu o timeout de {timeout}s")
        step_errors = extract_errors(result.stdout, result.stderr)
        if not step_errors:
            step_errors = [f"{name} failed with exit code {result.code}"]
        return step_errors
