"""
Domain-specific error types for business rule violations.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConsultationNotFoundError(DomainError):
    """Consultation not found."""

    def __init__(self, consultation_id: str) -> None:
        message = f"Consultation with ID '{consultation_id}' not found"
        super().__init__(
            message, "CONSULTATION_NOT_FOUND", {"consultation_id": consultation_id}
        )


class ConsultationAlreadyCompletedError(DomainError):
    """Section writes are refused once a consultation is completed."""

    def __init__(self, consultation_id: str) -> None:
        message = f"Consultation '{consultation_id}' is already completed"
        super().__init__(
            message,
            "CONSULTATION_ALREADY_COMPLETED",
            {"consultation_id": consultation_id},
        )


class InvalidToothNumberError(DomainError):
    """Tooth identifier outside the FDI permanent dentition."""

    def __init__(self, value: Any) -> None:
        message = f"Invalid FDI tooth number: {value!r} (expected quadrant 1-4, position 1-8)"
        super().__init__(message, "INVALID_TOOTH_NUMBER", {"value": str(value)})


class InvalidSectionPayloadError(DomainError):
    """Section payload does not match its schema."""

    def __init__(self, section_id: str, reason: str) -> None:
        message = f"Invalid payload for section '{section_id}': {reason}"
        super().__init__(
            message,
            "INVALID_SECTION_PAYLOAD",
            {"section_id": section_id, "reason": reason},
        )


class ReadOnlySectionError(DomainError):
    """Overview sections are derived from the chart and never written directly."""

    def __init__(self, section_id: str) -> None:
        message = f"Section '{section_id}' is read-only"
        super().__init__(message, "READ_ONLY_SECTION", {"section_id": section_id})


class LowConfidenceExtractionError(DomainError):
    """AI extraction below the confidence threshold; nothing was applied."""

    def __init__(self, confidence: float, threshold: float) -> None:
        message = (
            f"Extraction confidence {confidence:g} is below the required {threshold:g}; "
            "no sections were updated"
        )
        super().__init__(
            message,
            "LOW_CONFIDENCE_EXTRACTION",
            {"confidence": confidence, "threshold": threshold},
        )


class MissingPreconditionError(DomainError):
    """An operation needs an active patient or consultation that is not set."""

    def __init__(self, requirement: str) -> None:
        message = f"Missing precondition: {requirement}"
        super().__init__(message, "MISSING_PRECONDITION", {"requirement": requirement})
