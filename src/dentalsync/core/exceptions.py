"""
Exception handling for the DentalSync application.

This module provides custom exception classes for the infrastructure
layers (configuration, persistence, realtime feed) following Clean
Architecture principles. Business rule violations live in
``dentalsync.domain.errors``.
"""

from typing import Any, Dict, Optional


class DentalSyncException(Exception):
    """Base exception class for the DentalSync application."""

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


class ConfigurationError(DentalSyncException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_ERROR", details)


class DatabaseError(DentalSyncException):
    """Raised when there's a database operation error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "DATABASE_ERROR", details)


class RealtimeSubscriptionError(DentalSyncException):
    """Raised when the change feed subscription cannot be opened."""

    def __init__(self, patient_id: str, message: str) -> None:
        super().__init__(
            f"Realtime subscription for patient '{patient_id}' failed: {message}",
            "REALTIME_SUBSCRIPTION_ERROR",
            {"patient_id": patient_id},
        )
