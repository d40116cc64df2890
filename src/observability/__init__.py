"""Observability module for structured logging."""

from src.observability.logging import (
    bind_batch_context,
    clear_batch_context,
    configure_logging,
)


__all__ = [
    "bind_batch_context",
    "clear_batch_context",
    "configure_logging",
]
