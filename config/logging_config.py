"""
Logging for the purity core.

Module loggers hang under the 'pure_translation' logger, which owns the
console handler and a rotating file in settings.logs_dir.
"""
import logging
import logging.handlers
from typing import Optional

from .constants import LOG_LEVEL, LOG_FORMAT, LOG_MAX_SIZE_MB, LOG_BACKUP_COUNT
from .settings import Settings, get_settings

ROOT_LOGGER_NAME = "pure_translation"


def setup_logger(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Configure the package logger from settings.

    Usage:
        from config.logging_config import setup_logger
        setup_logger(Settings(logs_dir=Path("/var/log/purity")))

    Calling it again replaces the handlers, so the log file follows the
    most recent settings.

    Args:
        settings: Source of logs_dir. If None, uses get_settings().

    Returns:
        The configured 'pure_translation' logger.
    """
    settings = settings or get_settings()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, LOG_LEVEL))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_path = settings.log_file()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=LOG_MAX_SIZE_MB * 1024 * 1024,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Logger for a module, configured on first use.

    Usage:
        from config.logging_config import get_logger
        logger = get_logger(__name__)
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        setup_logger()
    return root.getChild(name) if name else root


# Usage: from config.logging_config import logger
logger = get_logger()
