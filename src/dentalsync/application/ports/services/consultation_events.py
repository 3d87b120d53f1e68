"""
Consultation lifecycle event interface.

Downstream workflows (follow-up scheduling, treatment linking) subscribe
through this port; they are not part of the reconciliation engine.
"""

from abc import ABC, abstractmethod

from ....domain.entities.consultation import Consultation


class ConsultationEventPublisher(ABC):
    """Abstract publisher for consultation lifecycle events."""

    @abstractmethod
    async def consultation_completed(self, consultation: Consultation) -> None:
        """Called once after a consultation is finalized."""
        pass
