import logging
import logging.handlers
from pathlib import Path

LOGGER_NAME = "AgentBridge"
LOG_FILE = Path("agent_bridge.log")
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5


class _ProjectIdFilter(logging.Filter):
    """Garante o campo project_id para registros emitidos fora do ProjectAdapter"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "project_id"):
            record.project_id = "system"
        return True


def setup_logging(level: int = logging.INFO, log_file: Path | None = LOG_FILE) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(project_id)s] - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
    project_filter = _ProjectIdFilter()

    if log_file is not None:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(project_filter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(project_id)s] - %(message)s", datefmt="%H:%M:%S"
    )
    console_handler.setFormatter(console_formatter)
    console_handler.addFilter(project_filter)
    logger.addHandler(console_handler)

    return logger


class ProjectAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        project_id = self.extra.get("project_id", "system")
        kwargs["extra"] = {"project_id": project_id}
        return msg, kwargs


def project_logger(project_id: str) -> ProjectAdapter:
    return ProjectAdapter(logging.getLogger(LOGGER_NAME), {"project_id": project_id})
