"""Structured logging for the concurrent checkout tester.

Logs are emitted through structlog. Every log line written while a run is in
progress carries the run's id and target endpoint (bound with run_context),
and every per-request line carries its dispatch index, so interleaved lines
from concurrent requests can be told apart.

Event names used across the package:
- run.started, run.concurrency_capped, run.completed
- request.completed, request.failed, request.crashed
- order.tagged
- cleanup.started, cleanup.partial_failure, cleanup.completed
- admin.permission_denied

Examples:
    Configure logging::

        from concurrent_checkout_tester.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    Output (JSON)::

        {
            "event": "run.completed",
            "run_id": "3f9c1a7e20b4",
            "endpoint": "https://shop.example/checkout/?wc-ajax=checkout",
            "classification": "DUPLICATES_DETECTED",
            "unique_orders": 3,
            "timestamp": "2024-01-01T00:00:00.000000Z",
            "level": "info"
        }
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import IO, Any

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    stream: IO[str] | None = None,
) -> None:
    """Configure structured logging. Call once at startup.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit JSON lines when True, colored console lines otherwise
        stream: Output stream, stdout by default
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    output = stream or sys.stdout
    logging.basicConfig(format="%(message)s", stream=output, level=numeric_level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )


def run_context(run_id: str, endpoint: str) -> AbstractContextManager[Any]:
    """Bind a run's id and endpoint to every log line emitted inside it.

    Tasks created inside the block inherit the binding.
    """
    return structlog.contextvars.bound_contextvars(run_id=run_id, endpoint=endpoint)


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module)
    """
    return structlog.get_logger(name)
