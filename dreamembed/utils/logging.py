"""structlog configuration for the worker, the reaper and the CLI.

One processor chain serves both structlog loggers and the stdlib ``logging``
root, so lines from aiosqlite, httpx and openai look like the pipeline's own.
Rendering is JSON when ``APP_ENV=production`` (or ``json_output`` is set) and
a console renderer otherwise.

Every line logged while a job runs carries ``job_id``, ``document_id`` and
``worker_id``: the worker binds them with
``structlog.contextvars.bound_contextvars`` and ``merge_contextvars`` heads
the chain.
"""

import logging
import os
import sys
from typing import TextIO

import structlog

# Request-level chatter from these libraries drowns the job events at INFO.
_NOISY_LOGGERS = ("aiosqlite", "httpx", "httpcore", "openai")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _renderer(use_json: bool, out: TextIO) -> structlog.types.Processor:
    if use_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=out.isatty())


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: Force JSON lines. Otherwise JSON is used only when
            ``APP_ENV`` is ``"production"``.
        stream: Where log lines go (default stdout). The CLI passes stderr
            so its JSON results on stdout stay parseable.
    """
    out = stream or sys.stdout
    level = log_level.upper()
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    processors = _shared_processors()
    renderer = _renderer(use_json, out)

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Third-party loggers only surface at WARNING unless we are debugging.
    if level != "DEBUG":
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Named logger; configures defaults on first use if nothing else has."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
