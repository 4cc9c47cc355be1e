"""Executable CLI entrypoint for ``reql_ast``."""

from __future__ import annotations

import sys
import traceback
from collections.abc import Iterator
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    """Process exit-code contract."""

    SUCCESS = 0
    COERCION_ERROR = 1
    CONFIG_ERROR = 2
    INPUT_ERROR = 3
    INTERNAL_ERROR = 4


_KNOWN_CODES = frozenset(int(code) for code in ExitCode)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m reql_ast`` and the ``reql-ast`` script."""

    from reql_ast.ui.cli import run_cli

    try:
        return _exit_status(run_cli(argv))
    except SystemExit as exc:
        return _exit_status(exc.code)
    except Exception as exc:  # noqa: BLE001 - process boundary.
        code = _classify(exc)
        _report(exc, code)
        return int(code)


def _exit_status(status: object) -> int:
    if status is None:
        return int(ExitCode.SUCCESS)
    if isinstance(status, int) and not isinstance(status, bool) and status in _KNOWN_CODES:
        return int(status)
    if isinstance(status, str) and status.strip():
        sys.stderr.write(f"{status.strip()}\n")
    return int(ExitCode.INTERNAL_ERROR)


def _classify(exc: BaseException) -> ExitCode:
    from reql_ast.config import ConfigLoadError, ConfigValidationError
    from reql_ast.errors import ReqlError

    for item in _causes(exc):
        if isinstance(item, ReqlError):
            return ExitCode.COERCION_ERROR
        if isinstance(item, (ConfigLoadError, ConfigValidationError)):
            return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__


def _report(exc: BaseException, code: ExitCode) -> None:
    if code is ExitCode.INTERNAL_ERROR:
        traceback.print_exception(exc, file=sys.stderr)
        return
    sys.stderr.write(f"{str(exc).strip() or type(exc).__name__}\n")


__all__ = ["ExitCode", "cli_entrypoint"]
