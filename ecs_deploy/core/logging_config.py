"""Logging configuration for ECS deploy with console output and an optional log file."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import BoundLogger, LoggerFactory, ProcessorFormatter

# Third-party loggers that are chatty at DEBUG
NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


def setup_logging(
    log_level: str | None = None,
    log_file: Path | str | None = None,
    max_file_size_mb: int = 10,
) -> None:
    """Setup structlog on top of stdlib logging.

    Console output is rendered for humans when attached to a terminal and as
    JSON otherwise (CI runners). When ``log_file`` is given, the same events
    are also written there as JSON with automatic truncation.

    Args:
        log_level: Log level (defaults to LOG_LEVEL env var or INFO)
        log_file: Optional path of a JSON log file
        max_file_size_mb: Max file size before truncation (no backup files kept)
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    log_level_num = getattr(logging, log_level.upper(), logging.INFO)

    # Clear any existing handlers to prevent duplicates
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level_num)

    json_processors = [
        ProcessorFormatter.remove_processors_meta,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]
    console_processors = (
        [ProcessorFormatter.remove_processors_meta, structlog.dev.ConsoleRenderer()]
        if sys.stderr.isatty()
        else json_processors
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level_num)
    console_handler.setFormatter(ProcessorFormatter(processors=console_processors))
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=0,  # Don't keep old files, just truncate
            encoding="utf-8",
        )
        file_handler.setLevel(log_level_num)
        file_handler.setFormatter(ProcessorFormatter(processors=json_processors))
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level_num, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )

    get_logger().debug(
        "Logging system initialized",
        log_level=log_level,
        log_file=str(log_file) if log_file else None,
        max_file_size_mb=max_file_size_mb,
    )


def get_logger() -> Any:
    """Get the logger for pipeline operations."""
    return structlog.get_logger("ecs_deploy")
