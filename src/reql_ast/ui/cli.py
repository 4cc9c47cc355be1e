"""Command-line interface router for reql-ast."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import structlog
import yaml

from reql_ast.config import (
    ConfigLoadError,
    ConfigValidationError,
    coercer_from_config,
    dump_effective_config,
    load_config,
)
from reql_ast.errors import ReqlError
from reql_ast.observability import configure_logging_from_config

INPUT_FORMATS: Final[tuple[str, ...]] = ("auto", "json", "yaml")
_YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="reql-ast",
        description=(
            "reql-ast: convert JSON/YAML documents into query term trees.\n\n"
            "Common workflows:\n"
            "  reql-ast coerce doc.yaml        Print the wire-form term tree\n"
            "  reql-ast coerce --expr - < x    Require a value expression\n"
            "  reql-ast config                 Show the effective config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to reql_ast TOML config (default: ./reql_ast.toml if present).",
    )
    common.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a config field, e.g. --set coercion.max_depth=50 (repeatable).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # coerce --------------------------------------------------------------
    coerce_parser = subparsers.add_parser(
        "coerce",
        parents=[common],
        help="Coerce a JSON/YAML document into a term tree",
    )
    coerce_parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="Input document path, or '-' for stdin (default).",
    )
    coerce_parser.add_argument(
        "--format",
        dest="input_format",
        choices=INPUT_FORMATS,
        default="auto",
        help="Input format; 'auto' picks YAML for .yaml/.yml paths and JSON otherwise.",
    )
    coerce_parser.add_argument(
        "--expr",
        action="store_true",
        help="Fail unless the document converts to a value expression.",
    )
    coerce_parser.set_defaults(handler=_cmd_coerce)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Print the effective configuration as JSON",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_coerce(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    configure_logging_from_config(config)
    logger = structlog.get_logger(__name__)

    document = _read_document(args.input, args.input_format)
    coercer = coercer_from_config(config)
    try:
        converted = coercer.to_expr(document) if args.expr else coercer.to_ast(document)
    except ReqlError as exc:
        raise CLIError(f"{type(exc).__name__}: {exc}", exit_code=1) from exc

    logger.info("reql_document_coerced", input=args.input, term=type(converted).__name__)
    sys.stdout.write(converted.to_json() + "\n")
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    sys.stdout.write(dump_effective_config(config, indent=2) + "\n")
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    try:
        return load_config(args.config_path, cli_overrides=_parse_overrides(args.overrides))
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _parse_overrides(raw_overrides: Sequence[str]) -> Mapping[str, object]:
    overrides: dict[str, object] = {}
    for raw in raw_overrides:
        key, separator, value = raw.partition("=")
        if not separator or not key.strip():
            raise CLIError(f"invalid --set value {raw!r}; expected KEY=VALUE", exit_code=2)
        overrides[key.strip()] = _parse_override_value(value.strip())
    return overrides


def _parse_override_value(raw: str) -> object:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _read_document(source: str, input_format: str) -> object:
    if source == "-":
        text = sys.stdin.read()
        resolved_format = "json" if input_format == "auto" else input_format
    else:
        path = Path(source)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CLIError(f"unable to read {source}: {exc}", exit_code=3) from exc
        resolved_format = input_format
        if resolved_format == "auto":
            resolved_format = "yaml" if path.suffix.lower() in _YAML_SUFFIXES else "json"

    if resolved_format == "yaml":
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise CLIError(f"invalid YAML in {source}: {exc}", exit_code=3) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise CLIError(f"invalid JSON in {source}: {exc}", exit_code=3) from exc


__all__ = ["CLIError", "build_parser", "run_cli"]
