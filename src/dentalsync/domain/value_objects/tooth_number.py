"""
Tooth number value object using FDI two-digit notation.
First digit is the quadrant (1-4), second the position (1-8).
"""

from dataclasses import dataclass
from typing import Any, Union

from ..errors import InvalidToothNumberError


@dataclass(frozen=True, order=True)
class ToothNumber:
    """Immutable FDI tooth identifier value object."""

    value: int

    def __post_init__(self) -> None:
        """Validate FDI notation."""
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise InvalidToothNumberError(self.value)

        quadrant, position = divmod(self.value, 10)
        if not (1 <= quadrant <= 4 and 1 <= position <= 8):
            raise InvalidToothNumberError(self.value)

    @classmethod
    def parse(cls, raw: Union["ToothNumber", int, str]) -> "ToothNumber":
        """Accept an existing ToothNumber, an int, or a digit string such as "16"."""
        if isinstance(raw, ToothNumber):
            return raw
        if isinstance(raw, str):
            text = raw.strip()
            if len(text) != 2 or not text.isdigit():
                raise InvalidToothNumberError(raw)
            return cls(int(text))
        return cls(raw)

    @property
    def quadrant(self) -> int:
        return self.value // 10

    @property
    def position(self) -> int:
        return self.value % 10

    def __str__(self) -> str:
        """String representation."""
        return str(self.value)

    def __eq__(self, other: Any) -> bool:
        """Equality comparison."""
        if not isinstance(other, ToothNumber):
            return False
        return self.value == other.value

    def __hash__(self) -> int:
        """Hash for use in sets and dictionaries."""
        return hash(self.value)
