"""Route jewelctl's log output through structlog.

structlog loggers and plain ``logging`` loggers (persistence and catalog
code use the latter) share one stderr handler, rendered either for a
terminal or as JSON lines when ``--log-json`` is given.
"""

from __future__ import annotations

import logging
import sys

import structlog

PACKAGE_LOGGER = "jewelctl"

_SHARED: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _formatter(log_json: bool) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.types.Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install the stderr handler; repeat calls replace it.

    Only ``jewelctl.*`` loggers drop to DEBUG with *verbose*; everything
    else stays at WARNING.
    """
    structlog.configure(
        processors=[*_SHARED, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_formatter(log_json))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.WARNING)
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
