import logging
import sys
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler

from .config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'

# One logger per area of the backend; modules fetch these by name
COMPONENT_LOGGERS = ("auth", "user", "project", "ai", "collab", "db")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging():
    """Attach file and stdout handlers to the root logger.

    Safe to call more than once: handlers are only added on the first call.
    """
    level = _resolve_level(settings.LOG_LEVEL)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not getattr(root_logger, "_intellicode_configured", False):
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        formatter = logging.Formatter(LOG_FORMAT)

        # Daily file name; rotates within the day at 10MB
        log_file = log_dir / f"intellicode_{datetime.now().strftime('%Y-%m-%d')}.log"
        file_handler = RotatingFileHandler(log_file, maxBytes=10*1024*1024, backupCount=5)
        file_handler.setFormatter(formatter)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)

        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)
        root_logger._intellicode_configured = True

    loggers = {name: logging.getLogger(name) for name in COMPONENT_LOGGERS}
    for logger in loggers.values():
        logger.setLevel(level)

    return loggers
