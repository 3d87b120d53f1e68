"""
Consultation ID value object for type-safe consultation identification.
Format: CONS-<32 hex chars>
"""

import re
import uuid
from dataclasses import dataclass
from typing import Any

_PATTERN = re.compile(r"^CONS-[0-9a-f]{32}$")


@dataclass(frozen=True)
class ConsultationId:
    """Immutable consultation identifier value object."""

    value: str

    def __post_init__(self) -> None:
        """Validate consultation ID format."""
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Consultation ID cannot be empty")

        if not _PATTERN.match(self.value):
            raise ValueError("Consultation ID must follow format: CONS-<32 hex chars>")

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __eq__(self, other: Any) -> bool:
        """Equality comparison."""
        if not isinstance(other, ConsultationId):
            return False
        return self.value == other.value

    def __hash__(self) -> int:
        """Hash for use in sets and dictionaries."""
        return hash(self.value)

    @classmethod
    def generate(cls) -> "ConsultationId":
        """Generate a new consultation ID."""
        return cls(f"CONS-{uuid.uuid4().hex}")
