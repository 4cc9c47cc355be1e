"""Public observability primitives: structured logging configuration."""

from reql_ast.observability.logging import (
    configure_logging,
    configure_logging_from_config,
    reset_logging,
)

__all__ = ["configure_logging", "configure_logging_from_config", "reset_logging"]
