"""
Logging configuration for kconfig

Standard output of kconfig-util is evaluated by the calling shell, so every
handler configured here writes to standard error or to a log file.

Features:
- Structured logging with structlog
- Optional file rotation with size limits
- Audit entry for each command
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import structlog


LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size_mb: int = 10,
    backup_count: int = 3,
    enable_colors: bool = True,
) -> None:
    """Configure logging for kconfig

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (None = stderr only)
        max_size_mb: Max log file size in MB before rotation
        backup_count: Number of backup files to keep
        enable_colors: Enable colored console output
    """
    log_level = LEVEL_MAP.get(str(level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if enable_colors and sys.stderr.isatty():
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)


def setup_logging_from_config(config, debug: bool = False) -> None:
    """Setup logging from the ``logging`` section of the configuration

    Args:
        config: Loaded kconfig Config
        debug: Force DEBUG level regardless of configuration
    """
    if not config.get("logging.enabled", True) and not debug:
        logging.disable(logging.CRITICAL)
        return

    logging.disable(logging.NOTSET)
    configure_logging(
        level="DEBUG" if debug else config.get("logging.level", "INFO"),
        log_file=config.get("logging.file"),
        max_size_mb=config.get("logging.max_size_mb", 10),
        backup_count=config.get("logging.backup_count", 3),
    )


def log_command_execution(
    command: str,
    args: Dict[str, Any],
    logger: Optional[structlog.stdlib.BoundLogger] = None,
) -> None:
    """Log command execution for audit trail

    Args:
        command: Command name (kset, koff, complete)
        args: Command arguments
    """
    log = logger or get_logger("audit")

    log.debug(
        "Invoking command",
        command=command,
        args={k: v for k, v in args.items() if v is not None},
        user=os.getenv("USER", "unknown"),
    )


# Initialize logging with defaults
# This will be reconfigured when config is loaded
configure_logging()
