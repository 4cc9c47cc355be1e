"""Module entrypoint for ``python -m reql_ast``."""

from __future__ import annotations

from reql_ast.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
