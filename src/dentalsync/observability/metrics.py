"""
Custom metrics for DentalSync using OpenTelemetry.

Counts autosave writes, chart reloads and realtime invalidations so the
reconciliation engine's behaviour is visible without reading logs.
Without an SDK configured the API meter is a no-op.
"""
import logging
from typing import Optional

from opentelemetry import metrics
from opentelemetry.metrics import Counter, Histogram

logger = logging.getLogger(__name__)

meter = metrics.get_meter(__name__)

# Lazily created instruments
_metrics_initialized = False
_autosave_counter: Optional[Counter] = None
_reload_counter: Optional[Counter] = None
_reload_latency_histogram: Optional[Histogram] = None
_stale_reload_counter: Optional[Counter] = None
_realtime_event_counter: Optional[Counter] = None
_rejected_extraction_counter: Optional[Counter] = None
_error_counter: Optional[Counter] = None


def _initialize_metrics() -> None:
    """Initialize custom metrics instruments."""
    global _metrics_initialized, _autosave_counter, _reload_counter
    global _reload_latency_histogram, _stale_reload_counter, _realtime_event_counter
    global _rejected_extraction_counter, _error_counter

    if _metrics_initialized:
        return

    _autosave_counter = meter.create_counter(
        name="dentalsync.autosave.writes",
        description="Debounced section writes by outcome",
        unit="1",
    )
    _reload_counter = meter.create_counter(
        name="dentalsync.chart.reloads",
        description="Latest-per-tooth reloads by trigger and outcome",
        unit="1",
    )
    _reload_latency_histogram = meter.create_histogram(
        name="dentalsync.chart.reload.latency",
        description="Latest-per-tooth read latency in milliseconds",
        unit="ms",
    )
    _stale_reload_counter = meter.create_counter(
        name="dentalsync.chart.reloads.stale",
        description="Reload results discarded because a newer reload already applied",
        unit="1",
    )
    _realtime_event_counter = meter.create_counter(
        name="dentalsync.realtime.events",
        description="Change feed notifications received",
        unit="1",
    )
    _rejected_extraction_counter = meter.create_counter(
        name="dentalsync.voice.rejected",
        description="Voice extraction payloads rejected by the confidence gate",
        unit="1",
    )
    _error_counter = meter.create_counter(
        name="dentalsync.errors",
        description="Recoverable engine errors",
        unit="1",
    )
    _metrics_initialized = True
    logger.debug("Custom metrics initialized")


def record_autosave(section_id: str, outcome: str) -> None:
    """
    Record a debounced section write.

    Args:
        section_id: Section that was written
        outcome: "created", "updated", "failed" or "skipped"
    """
    _initialize_metrics()
    _autosave_counter.add(1, {"section": section_id, "outcome": outcome})


def record_reload(trigger: str, outcome: str, latency_ms: Optional[float] = None) -> None:
    """Record a chart reload ("save" or "realtime" / "applied", "unchanged", "failed")."""
    _initialize_metrics()
    _reload_counter.add(1, {"trigger": trigger, "outcome": outcome})
    if latency_ms is not None:
        _reload_latency_histogram.record(latency_ms, {"trigger": trigger})


def record_stale_reload(trigger: str) -> None:
    _initialize_metrics()
    _stale_reload_counter.add(1, {"trigger": trigger})


def record_realtime_event(table: str, operation: str) -> None:
    _initialize_metrics()
    _realtime_event_counter.add(1, {"table": table, "operation": operation})


def record_rejected_extraction(source: str) -> None:
    _initialize_metrics()
    _rejected_extraction_counter.add(1, {"source": source})


def record_error(error_type: str, component: str) -> None:
    """
    Record a recoverable engine error.

    Args:
        error_type: Exception class name
        component: Engine component that absorbed the error
    """
    _initialize_metrics()
    _error_counter.add(1, {"error_type": error_type, "component": component})
