"""Structured logging setup: structlog events rendered through stdlib handlers."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from typing import IO, Any, Final

import structlog

_DEFAULT_LOGGER_NAME: Final[str] = "reql_ast"
_HANDLER_MARKER: Final[str] = "_reql_ast_handler"

_SHARED_PROCESSORS: Final[tuple[Any, ...]] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
)


def configure_logging(
    level: int | str = "WARNING",
    log_format: str = "text",
    *,
    stream: IO[str] | None = None,
    logger_name: str = _DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Route structlog events for ``logger_name`` to ``stream`` (stderr by default).

    ``log_format`` is ``"json"`` for one canonical JSON object per line or
    ``"text"`` for a human-readable console rendering. Calling this again
    replaces the handler installed by the previous call.
    """

    numeric_level = _parse_log_level(level)
    renderer = _renderer_for(log_format)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=list(_SHARED_PROCESSORS),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    setattr(handler, _HANDLER_MARKER, True)

    logger = logging.getLogger(logger_name)
    _remove_installed_handlers(logger)
    logger.addHandler(handler)
    logger.setLevel(numeric_level)
    logger.propagate = False
    return logger


def configure_logging_from_config(
    config: Mapping[str, Any],
    *,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Apply the ``[observability]`` section of a validated config."""

    section = config["observability"]
    return configure_logging(section["log_level"], section["log_format"], stream=stream)


def reset_logging(logger_name: str = _DEFAULT_LOGGER_NAME) -> None:
    """Remove handlers installed by ``configure_logging`` and restore structlog defaults."""

    _remove_installed_handlers(logging.getLogger(logger_name))
    structlog.reset_defaults()


def _renderer_for(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer(serializer=_canonical_dumps)
    if log_format == "text":
        return structlog.dev.ConsoleRenderer(colors=False)
    raise ValueError(f"unsupported log format {log_format!r}; expected 'json' or 'text'")


def _canonical_dumps(value: object, **_: object) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def _parse_log_level(level: int | str) -> int:
    if isinstance(level, bool):
        raise ValueError("log level must be an int or level name")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level {level!r}")
    return resolved


def _remove_installed_handlers(logger: logging.Logger) -> None:
    for existing in list(logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            logger.removeHandler(existing)
            existing.close()


__all__ = ["configure_logging", "configure_logging_from_config", "reset_logging"]
