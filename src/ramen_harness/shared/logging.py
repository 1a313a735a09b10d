"""Logging configuration for ramen-harness.

structlog on top of standard logging. Records go to stderr, human-readable,
unless a log file is given, in which case JSON lines are written so a CI job
keeps a trace of which daemons each scenario started and stopped.

While a scenario is active its workspace is bound to every record (see
bind_scenario).
"""

import logging
import sys
from pathlib import Path

import structlog

_SCENARIO_KEYS = ("workspace",)


def _build_processors(json_output: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(
    level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Route harness records to stderr or to a CI log file.

    The CLI and the pytest plugin call this once, with the level and file
    taken from HarnessConfig (log_level, log_file).

    Args:
        level: Name of a logging level; unknown names mean warning
        log_file: Write here instead of stderr, e.g. a CI artifact path
        json_output: Render one JSON object per record instead of console text
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(str(log_file))
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    logging.basicConfig(
        level=log_level,
        handlers=[handler],
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=_build_processors(json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_scenario(workspace: str | Path) -> None:
    """Attach the active scenario's workspace to all subsequent records."""
    structlog.contextvars.bind_contextvars(workspace=str(workspace))


def unbind_scenario() -> None:
    """Stop attaching scenario details to records."""
    structlog.contextvars.unbind_contextvars(*_SCENARIO_KEYS)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for a harness module, usually called with __name__."""
    return structlog.get_logger(name)
