"""Diagnostic logging for the guardrails.

Modules log through plain ``logging.getLogger(__name__)``; this module
routes those records through structlog so that agent and service ids bound
for the current decision show up on every line.
"""

import logging
import os
import sys

import structlog

ENV_VAR = "ACTIONGATE_ENV"


def _wants_json(json_output: bool | None) -> bool:
    if json_output is not None:
        return json_output
    return os.environ.get(ENV_VAR, "dev") == "prod"


def configure_logging(level: str = "INFO", json_output: bool | None = None) -> None:
    """Install one stderr handler on the root logger.

    *level* is a level name; anything unrecognised means INFO.  Output is
    one JSON object per line when *json_output* is true, or when it is None
    and ``ACTIONGATE_ENV=prod``; otherwise structlog's console format.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor
    if _wants_json(json_output):
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain covers records from stdlib loggers, which is all of ours
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def bind_context(**kwargs: object) -> None:
    """Attach ids (agent_id, service, ...) to log lines until cleared."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
