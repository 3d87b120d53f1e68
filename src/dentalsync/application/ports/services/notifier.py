"""
User notification interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class Notifier(ABC):
    """Surfaces engine failures to the person editing the record."""

    @abstractmethod
    async def alert(self, title: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Blocking alert, e.g. a section or tooth save failed."""
        pass

    @abstractmethod
    async def warn(self, title: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Non-blocking warning, e.g. a voice extraction was rejected."""
        pass
