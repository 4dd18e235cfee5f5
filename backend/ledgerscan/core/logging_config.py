"""
Centralized logging configuration for the ledgerscan backend.

Every record carries the id of the HTTP request it was emitted under ("-"
outside any request), set by RequestIDMiddleware. A batch started by an
upload keeps the id of that upload request.
Level, file output and log directory come from environment variables.
"""
import logging
import os
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Optional

DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Log directory (only created when file logging is enabled)
LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() == "true"

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - [%(request_id)s] %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - [%(request_id)s] %(message)s"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "hpack", "supabase", "postgrest")

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Copies the current request id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def _handler(handler: logging.Handler, level: int, fmt: str, datefmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
    handler.addFilter(RequestIdFilter())
    return handler


def setup_logging(
    log_level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[str] = None,
    enable_file_logging: bool = LOG_TO_FILE
) -> None:
    """
    Configure the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: Log file path (defaults to LOG_DIR/ledgerscan.log)
        enable_file_logging: Also write DEBUG and above to the log file
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level, CONSOLE_FORMAT, "%H:%M:%S"))

    if enable_file_logging:
        log_path = Path(log_file) if log_file else LOG_DIR / "ledgerscan.log"
        log_path.parent.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(
            _handler(logging.FileHandler(log_path, encoding="utf-8"), logging.DEBUG, FILE_FORMAT, "%Y-%m-%d %H:%M:%S")
        )

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(logging.INFO)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass __name__."""
    return logging.getLogger(name)
