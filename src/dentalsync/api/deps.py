"""FastAPI dependency providers."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from ..adapters.db.mongo.database import get_database
from ..adapters.db.mongo.repositories.consultation_repository import MongoConsultationRepository
from ..adapters.db.mongo.repositories.tooth_record_repository import MongoToothRecordRepository
from ..adapters.notifications.logging_notifier import LoggingConsultationEventPublisher, LoggingNotifier
from ..adapters.realtime.mongo_change_feed import MongoChangeFeed
from ..application.ports.repositories.consultation_repo import ConsultationRepository
from ..application.ports.repositories.tooth_record_repo import ToothRecordRepository
from ..application.ports.services.consultation_events import ConsultationEventPublisher
from ..application.reconciliation.session import ConsultationSession
from ..core.config import get_settings


@lru_cache()
def get_consultation_repository() -> ConsultationRepository:
    """Get consultation repository instance."""
    return MongoConsultationRepository()


@lru_cache()
def get_tooth_record_repository() -> ToothRecordRepository:
    """Get tooth record repository instance."""
    return MongoToothRecordRepository()


@lru_cache()
def get_event_publisher() -> ConsultationEventPublisher:
    return LoggingConsultationEventPublisher()


def create_consultation_session(patient_id: str) -> ConsultationSession:
    """Reconciliation session for one patient, wired to MongoDB and its change streams.

    The caller owns the session: ``await session.open()`` before use and
    ``await session.close()`` when the patient is deselected.
    """
    return ConsultationSession.from_settings(
        get_settings(),
        patient_id,
        get_consultation_repository(),
        get_tooth_record_repository(),
        LoggingNotifier(),
        change_feed=MongoChangeFeed(get_database()),
        events=get_event_publisher(),
    )


ConsultationRepositoryDep = Annotated[ConsultationRepository, Depends(get_consultation_repository)]
ToothRecordRepositoryDep = Annotated[ToothRecordRepository, Depends(get_tooth_record_repository)]
EventPublisherDep = Annotated[ConsultationEventPublisher, Depends(get_event_publisher)]
