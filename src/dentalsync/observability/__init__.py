"""
Observability module for tracing and metrics.

Provides:
- Custom tracing spans around store reads and writes
- Custom metrics for autosave, chart reloads and realtime invalidations
"""

from .metrics import (
    record_autosave,
    record_error,
    record_realtime_event,
    record_rejected_extraction,
    record_reload,
    record_stale_reload,
)
from .tracing import trace_operation

__all__ = [
    # Tracing
    "trace_operation",
    # Metrics
    "record_autosave",
    "record_reload",
    "record_stale_reload",
    "record_realtime_event",
    "record_rejected_extraction",
    "record_error",
]
