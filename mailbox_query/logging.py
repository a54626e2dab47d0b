"""structlog wiring for the command line.

Query results own stdout, so every log line goes to stderr. Events are
quiet by default (``WARNING``); ``--verbose`` opens up the ``DEBUG``
session trace and ``--log-json`` switches to one JSON object per line.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def _renderer(json: bool) -> structlog.types.Processor:
    if json:
        return structlog.processors.JSONRenderer()
    # stderr is often a pipe or a CI log; no ANSI codes.
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(
    *,
    json: bool = False,
    level: str = "WARNING",
    stream: TextIO | None = None,
) -> None:
    """Route structlog events through one stdlib handler on *stream*.

    Replaces any handlers already on the root logger, so calling it again
    (one process, several invocations under a test runner) reconfigures
    rather than duplicates output. *stream* defaults to ``sys.stderr``.
    """
    structlog.configure(
        processors=[*_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())
