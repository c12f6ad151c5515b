import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

_CONFIG_DIR = Path(__file__).parent
_DEFAULT_CONFIG_PATH = _CONFIG_DIR / "profiles" / "default.yaml"

logger = logging.getLogger("AgentBridge")

# variável de ambiente -> (caminho na configuração, conversor)
_ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Any]] = {
    "CODING_AGENT_API_KEY": (("coding_agent", "api_key"), str),
    "CODING_AGENT_WEBHOOK_SECRET": (("coding_agent", "webhook_secret"), str),
    "CODING_AGENT_API_BASE": (("coding_agent", "api_base"), str),
    "ORCHESTRATION_URL": (("coding_agent", "orchestration_url"), str),
    "PLANNING_AGENT_TOKEN": (("planning_agent", "token"), str),
    "PLANNING_AGENT_GATEWAY_URL": (("planning_agent", "gateway_url"), str),
    "PLANNING_AGENT_ID": (("planning_agent", "agent_id"), str),
    "GITHUB_TOKEN": (("github", "token"), str),
    "MAX_ITERATIONS": (("orchestrator", "max_iterations"), int),
    "VERIFICATION_TIMEOUT": (("verification", "timeout"), float),
    "WORK_DIR": (("work_dir",), str),
    "PORT": (("port",), int),
    "ORCHESTRATION_SIMULATION": (("simulation",), lambda v: v.strip().lower() in ("1", "true", "yes")),
    "PERSISTENCE_ENABLED": (("persistence", "enabled"), lambda v: v.strip().lower() in ("1", "true", "yes")),
}


def _validate_config(config: dict) -> None:
    """
    Valida se a configuração contém todos os campos obrigatórios.

    Raises:
        ValueError: Se campos obrigatórios estiverem faltando ou inválidos.
    """
    required_fields = ["orchestrator", "verification", "coding_agent", "planning_agent", "persistence"]

    missing_fields = [field for field in required_fields if field not in config]
    if missing_fields:
        raise ValueError(f"Campos obrigatórios faltando na configuração: {', '.join(missing_fields)}")

    for section in required_fields:
        if not isinstance(config.get(section), dict):
            raise ValueError(f"'{section}' deve ser um dicionário")

    max_iterations = config["orchestrator"].get("max_iterations")
    if not isinstance(max_iterations, int) or max_iterations < 1:
        raise ValueError(f"max_iterations inválido: {max_iterations} (deve ser >= 1)")

    timeout = config["verification"].get("timeout")
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError(f"Timeout de verificação inválido: {timeout} (deve ser > 0)")

    package_manager = config["verification"].get("package_manager", "bun")
    if package_manager not in ("bun", "npm"):
        raise ValueError(f"package_manager inválido: {package_manager} (use 'bun' ou 'npm')")


def _env_overrides(environ: dict[str, str]) -> dict:
    overrides: dict = {}
    for env_name, (path, convert) in _ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            value = convert(raw)
        except ValueError as e:
            raise ValueError(f"Valor inválido para {env_name}: {raw}") from e
        target = overrides
        for key in path[:-1]:
            target = target.setdefault(key, {})
        target[path[-1]] = value
    return overrides


def load_configuration(config_path: str | None = None, environ: dict[str, str] | None = None) -> dict:
    """
    Carrega a configuração do sistema a partir de arquivo YAML e variáveis de ambiente.

    Se config_path não for fornecido, usa config/profiles/default.yaml como padrão.
    Se o arquivo especificado não existir, usa default.yaml como fallback.

    Args:
        config_path: Caminho para o arquivo de configuração (YAML ou JSON)
        environ: Variáveis de ambiente (os.environ por padrão)

    Returns:
        Dicionário com a configuração carregada

    Raises:
        FileNotFoundError: Se nem o arquivo especificado nem default.yaml existirem
        ValueError: Se o formato for inválido ou campos obrigatórios estiverem faltando
    """
    if not config_path:
        config_file = _DEFAULT_CONFIG_PATH
    else:
        config_file = Path(config_path)
        if not config_file.is_absolute():
            current_dir_file = Path.cwd() / config_path
            if current_dir_file.exists():
                config_file = current_dir_file
            else:
                config_file = _CONFIG_DIR.parent / config_path

    original_config_file = config_file

    if not config_file.exists():
        if config_path and config_file != _DEFAULT_CONFIG_PATH:
            logger.warning(
                f"Arquivo de configuração não encontrado: {config_file}. Usando fallback: {_DEFAULT_CONFIG_PATH}"
            )
            config_file = _DEFAULT_CONFIG_PATH

        if not config_file.exists():
            raise FileNotFoundError(
                f"Arquivo de configuração não encontrado: {original_config_file}. "
                f"Fallback default.yaml também não encontrado: {_DEFAULT_CONFIG_PATH}."
            )

    with open(config_file, encoding="utf-8") as f:
        config_path_str = str(config_file)
        if config_path_str.endswith(".yaml") or config_path_str.endswith(".yml"):
            config = yaml.safe_load(f)
        elif config_path_str.endswith(".json"):
            config = json.load(f)
        else:
            raise ValueError(
                f"Formato de configuração não suportado: {config_path_str}. Use YAML (.yaml, .yml) ou JSON (.json)."
            )

    if config is None:
        raise ValueError(f"Arquivo de configuração vazio ou inválido: {config_file}")

    config = merge_dicts(config, _env_overrides(dict(os.environ) if environ is None else environ))

    _validate_config(config)

    return config


def merge_dicts(dict1, dict2):
    """Mescla dois dicionários de forma recursiva."""
    result = dict1.copy()
    for key, value in dict2.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result
