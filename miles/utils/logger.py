# miles/utils/logger.py
"""
Logging setup shared by the API, the scripts and the tests.
Console always; a rotating miles.log under LOG_DIR unless LOG_DIR is empty.
Configured secrets are masked before any handler formats a record.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from miles.config import settings

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
MASK = "***"

# Third-party loggers that would repeat the request timing line or print signed image URLs
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

_configured = False


class SecretMaskFilter(logging.Filter):
    """Replaces the shared secret, header value and admin token in log messages."""

    def _secrets(self) -> list[str]:
        values = (settings.SHARED_SECRET, settings.WEBHOOK_EXPECTED_HEADER_VALUE, settings.ADMIN_TOKEN)
        return [value for value in values if value]

    def filter(self, record: logging.LogRecord) -> bool:
        secrets = self._secrets()
        if not secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in secrets:
            masked = masked.replace(secret, MASK)
        if masked != message:
            record.msg, record.args = masked, None
        return True


def log_dir() -> str:
    if not settings.LOG_DIR:
        return ""
    if os.path.isabs(settings.LOG_DIR):
        return settings.LOG_DIR
    return os.path.join(PROJECT_ROOT, settings.LOG_DIR)


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    level = settings.LOG_LEVEL.upper()
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers = [logging.StreamHandler()]

    directory = log_dir()
    if directory:
        os.makedirs(directory, exist_ok=True)
        # 10 files × 5MB
        handlers.append(RotatingFileHandler(
            filename=os.path.join(directory, "miles.log"),
            maxBytes=5 * 1024 * 1024,
            backupCount=10,
            encoding="utf-8",
        ))

    root = logging.getLogger()
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(fmt)
        handler.addFilter(SecretMaskFilter())
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)
