"""Observability helpers for protoguard."""

from protoguard.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
    get_log_context,
    log_context,
)

__all__ = [
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_logging",
    "get_log_context",
    "log_context",
]
