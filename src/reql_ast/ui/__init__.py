"""Command-line surface for reql-ast."""

from reql_ast.ui.cli import CLIError, build_parser, run_cli

__all__ = ["CLIError", "build_parser", "run_cli"]
