"""Reconciliation engine: keeps the chart and consultation sections consistent."""

from .aggregation import ChartFindings, apply_findings, build_overviews, collect_findings, normalize_treatment
from .autosave import AutosaveDebouncer
from .realtime_listener import ListenerState, RealtimeInvalidationListener
from .reconciler import ToothOverlay, ToothSnapshot, live_overlays, merge_records, reconcile
from .reload_scheduler import ReloadScheduler, ReloadTrigger
from .section_status import classify, classify_all
from .session import ConsultationSession
from .voice_distribution import (
    ExtractionSource,
    ToothFinding,
    VoiceDistribution,
    VoiceDistributor,
    VoiceExtraction,
)

__all__ = [
    "AutosaveDebouncer",
    "ChartFindings",
    "ConsultationSession",
    "ExtractionSource",
    "ListenerState",
    "RealtimeInvalidationListener",
    "ReloadScheduler",
    "ReloadTrigger",
    "ToothFinding",
    "ToothOverlay",
    "ToothSnapshot",
    "VoiceDistribution",
    "VoiceDistributor",
    "VoiceExtraction",
    "apply_findings",
    "build_overviews",
    "classify",
    "classify_all",
    "collect_findings",
    "live_overlays",
    "merge_records",
    "normalize_treatment",
    "reconcile",
]
