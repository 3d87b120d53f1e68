"""
Clinical enums for tooth charting and consultation sections.
"""

from enum import Enum


class ToothStatus(str, Enum):
    """Charted condition of a single tooth."""
    HEALTHY = "healthy"
    CARIES = "caries"
    FILLED = "filled"
    CROWN = "crown"
    MISSING = "missing"
    ATTENTION = "attention"
    ROOT_CANAL = "root_canal"
    EXTRACTION_NEEDED = "extraction_needed"
    IMPLANT = "implant"


class RecordOrigin(str, Enum):
    """Which source currently governs a tooth record's value."""
    PERSISTED = "persisted"
    REALTIME_REFRESHED = "realtime-refreshed"
    VOICE_PENDING = "voice-pending"
    LOCAL_EDIT = "local-edit"


class TreatmentPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    ROUTINE = "routine"


class ConsultationStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"


class SectionStatus(str, Enum):
    """Derived completion state of a consultation section (never persisted)."""
    EMPTY = "empty"
    PARTIAL = "partial"
    COMPLETE = "complete"


class SectionId(str, Enum):
    """Independently saved divisions of a consultation."""
    CHIEF_COMPLAINT = "chief-complaint"
    HISTORY_OF_PRESENT_ILLNESS = "history-of-present-illness"
    MEDICAL_HISTORY = "medical-history"
    PERSONAL_HISTORY = "personal-history"
    CLINICAL_EXAMINATION = "clinical-examination"
    INVESTIGATIONS = "investigations"
    CLINICAL_DIAGNOSIS = "clinical-diagnosis"
    TREATMENT_PLAN = "treatment-plan"
    PRESCRIPTION = "prescription"
    FOLLOW_UP = "follow-up"

    # Read-only views derived from the tooth chart
    DIAGNOSIS_OVERVIEW = "diagnosis-overview"
    TREATMENT_OVERVIEW = "treatment-overview"
    FOLLOW_UP_OVERVIEW = "follow-up-overview"
