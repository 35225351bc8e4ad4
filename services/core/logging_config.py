"""
Centralized Logging Configuration for the Goal Schema Service

structlog renders every record, including the ones emitted through the
standard library (uvicorn, SQLAlchemy), so all output shares one format.
Request-scoped values (request id, acting user) are carried in contextvars
and merged into each event.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from config import LOG_LEVEL, LOG_FILE, LOG_JSON

# Processors shared by structlog loggers and foreign (stdlib) records
SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False
) -> None:
    """
    Configure structlog and route the root logger through it.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path, receives the same rendered lines
        json_logs: JSON lines for production, key=value console otherwise
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(log_level)


def get_logger(name: str | None = None) -> Any:
    """
    Get a logger instance.

    Usage:
        from logging_config import get_logger

        logger = get_logger(__name__)
        logger.info("goal_type_created", goal_type_id=str(goal_type.id), level_number=goal_type.level_number)
    """
    return structlog.get_logger(name)


def bind_request_context(**values: Any) -> None:
    """Attach values (request_id, user_id) to every event of the current request"""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in values.items() if v is not None})


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_error(
    error: BaseException,
    context: dict | None = None,
    level: str = "ERROR"
) -> None:
    """Log error with context and stack trace"""
    logger = get_logger("error_handler")
    log_func = getattr(logger, level.lower(), logger.error)

    log_data = {"error_type": type(error).__name__, "error_message": str(error)}
    if context:
        log_data.update(context)

    log_func("error_occurred", **log_data, exc_info=error)


def http_request_summary(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float
) -> None:
    get_logger("http").info(
        "http_request",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms
    )


# Auto-setup on import
setup_logging(
    level=LOG_LEVEL,
    log_file=LOG_FILE,
    json_logs=LOG_JSON
)
