"""
Enumerations shared across the clinical domain.
"""

from .clinical import (
    ConsultationStatus,
    RecordOrigin,
    SectionId,
    SectionStatus,
    ToothStatus,
    TreatmentPriority,
)

__all__ = [
    "ConsultationStatus",
    "RecordOrigin",
    "SectionId",
    "SectionStatus",
    "ToothStatus",
    "TreatmentPriority",
]
