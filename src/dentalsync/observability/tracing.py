"""
OpenTelemetry tracing helpers for DentalSync.

Provides custom spans around backing store reads and writes.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.trace import Span


tracer = trace.get_tracer(__name__)


@contextmanager
def trace_operation(operation_name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[Span]:
    """
    Context manager for creating custom tracing spans.

    Args:
        operation_name: Name of the operation being traced
        attributes: Optional dictionary of attributes to add to the span

    Example:
        with trace_operation("chart.reload", {"patient_id": patient_id}):
            snapshot = await repository.find_latest_per_tooth(patient_id)
    """
    with tracer.start_as_current_span(operation_name) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, str(value))
        yield span

