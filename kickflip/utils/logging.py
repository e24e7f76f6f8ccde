"""structlog configuration for the API process and the operator CLI.

Every log line goes through one processor chain and ends in one of two
renderers: a coloured console view while developing, or one JSON object
per line in production and in the CLI (where the output is shipped to a
log collector).  Stdlib ``logging`` records from uvicorn, httpx, aiosqlite
and the search client are routed through the same chain so the stream
stays uniform.

Request-scoped keys (request id, path) live in structlog's contextvars
store; see :func:`bind_request_context`.
"""

import logging
import os
import sys

import structlog

# Libraries that log every HTTP round-trip at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "duckduckgo_search", "primp", "anthropic", "openai")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _use_json(json_output: bool | None) -> bool:
    if json_output is not None:
        return json_output
    return os.environ.get("APP_ENV", "development") == "production"


def configure_logging(log_level: str = "INFO", json_output: bool | None = None) -> None:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        json_output: ``True`` forces JSON lines, ``False`` forces the console
            renderer, ``None`` picks JSON only when ``APP_ENV=production``.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors = _shared_processors()
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if _use_json(json_output)
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Named logger; configures defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)


def bind_request_context(**values: object) -> None:
    """Replace the request-scoped bindings with *values*.

    The store is a contextvar, so bindings follow the current asyncio task
    and never leak between concurrent requests.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
