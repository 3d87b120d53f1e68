"""
Notifier and consultation event publisher that write to the log.

Used by the HTTP service, where there is no interactive user to alert;
interactive clients plug in their own Notifier.
"""

from typing import Any, Dict, Optional

from dentalsync.application.ports.services.consultation_events import ConsultationEventPublisher
from dentalsync.application.ports.services.notifier import Notifier
from dentalsync.core.structured_logger import get_logger
from dentalsync.domain.entities.consultation import Consultation

logger = get_logger(__name__)


class LoggingNotifier(Notifier):
    async def alert(self, title: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        logger.error(f"{title}: {message}", **(details or {}))

    async def warn(self, title: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        logger.warning(f"{title}: {message}", **(details or {}))


class LoggingConsultationEventPublisher(ConsultationEventPublisher):
    """Logs completions; follow-up scheduling picks them up from there."""

    async def consultation_completed(self, consultation: Consultation) -> None:
        logger.info(
            "Consultation completed",
            consultation_id=consultation.consultation_id.value,
            patient_id=consultation.patient_id,
            sections=sorted(section_id.value for section_id in consultation.sections),
        )
