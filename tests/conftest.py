"""
Shared fixtures: in-memory stores, a hand-driven change feed and a
recording notifier. Timings are shortened so the async tests run fast.
"""

import asyncio
import itertools
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from dentalsync.application.ports.repositories.consultation_repo import (
    ConsultationRepository,
    SectionWriteResult,
    WriteOutcome,
)
from dentalsync.application.ports.repositories.tooth_record_repo import ToothRecordRepository
from dentalsync.application.ports.services.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeHandler,
    ChangeSubscription,
)
from dentalsync.application.ports.services.consultation_events import ConsultationEventPublisher
from dentalsync.application.ports.services.notifier import Notifier
from dentalsync.application.reconciliation.session import ConsultationSession
from dentalsync.core.config import reset_settings
from dentalsync.core.exceptions import DatabaseError, RealtimeSubscriptionError
from dentalsync.core.utils.datetime_utils import get_current_timestamp
from dentalsync.domain.entities.consultation import Consultation
from dentalsync.domain.entities.tooth_record import ToothRecord
from dentalsync.domain.enums.clinical import RecordOrigin
from dentalsync.domain.errors import ConsultationNotFoundError
from dentalsync.domain.sections import SectionModel
from dentalsync.domain.value_objects.consultation_id import ConsultationId

QUIET_PERIOD = 0.02
POST_WRITE_DELAY = 0.02
PATIENT_ID = "PAT-001"


class InMemoryToothRecordRepository(ToothRecordRepository):
    """Tooth rows kept in a list; reads can be delayed or made to fail."""

    def __init__(self) -> None:
        self.rows: List[ToothRecord] = []
        self.read_delays: List[float] = []
        self.fail_reads = 0
        self.fail_writes = 0
        self.reads = 0
        self._ids = itertools.count(1)

    def seed(self, record: ToothRecord) -> ToothRecord:
        stored = record.with_changes(
            record_id=record.record_id or f"TR-{next(self._ids)}",
            updated_at=record.updated_at or get_current_timestamp(),
            origin=RecordOrigin.PERSISTED,
        )
        self.rows.append(stored)
        return stored

    async def save(self, record: ToothRecord) -> ToothRecord:
        if self.fail_writes:
            self.fail_writes -= 1
            raise DatabaseError("tooth_records write failed")
        for index, row in enumerate(self.rows):
            same_id = record.record_id and row.record_id == record.record_id
            same_key = (
                row.patient_id == record.patient_id
                and row.tooth_number == record.tooth_number
                and row.consultation_id == record.consultation_id
            )
            if same_id or same_key:
                stored = record.with_changes(
                    record_id=row.record_id,
                    updated_at=self._next_timestamp(row),
                    origin=RecordOrigin.PERSISTED,
                )
                self.rows[index] = stored
                return stored
        return self.seed(record.with_changes(updated_at=None))

    @staticmethod
    def _next_timestamp(row: ToothRecord):
        now = get_current_timestamp()
        if row.updated_at is not None and now <= row.updated_at:
            return row.updated_at + timedelta(microseconds=1)
        return now

    async def find_latest_per_tooth(self, patient_id: str) -> List[ToothRecord]:
        self.reads += 1
        delay = self.read_delays.pop(0) if self.read_delays else 0
        if delay:
            await asyncio.sleep(delay)
        if self.fail_reads:
            self.fail_reads -= 1
            raise DatabaseError("tooth_records read failed")
        latest: Dict[Any, ToothRecord] = {}
        for row in self.rows:
            if row.patient_id != patient_id:
                continue
            current = latest.get(row.tooth_number)
            if current is None or row.updated_at > current.updated_at:
                latest[row.tooth_number] = row
        return [latest[tooth] for tooth in sorted(latest)]


class InMemoryConsultationRepository(ConsultationRepository):
    """Consultations in a dict; records every write it receives."""

    def __init__(self) -> None:
        self.consultations: Dict[ConsultationId, Consultation] = {}
        self.writes: List[tuple] = []
        self.fail_writes = 0
        self.write_delay = 0.0
        self.fail_draft_lookups = 0
        self.draft_lookups = 0

    async def save_section(
        self,
        patient_id: str,
        payload: SectionModel,
        consultation_id: Optional[ConsultationId] = None,
    ) -> SectionWriteResult:
        self.writes.append((consultation_id, payload.id, payload))
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_writes:
            self.fail_writes -= 1
            raise DatabaseError("consultations write failed")

        if consultation_id is None:
            consultation = Consultation(consultation_id=ConsultationId.generate(), patient_id=patient_id)
            consultation.set_section(payload)
            self.consultations[consultation.consultation_id] = consultation
            return SectionWriteResult(WriteOutcome.CREATED, consultation.consultation_id)

        consultation = self.consultations.get(consultation_id)
        if consultation is None:
            raise ConsultationNotFoundError(consultation_id.value)
        consultation.set_section(payload)
        return SectionWriteResult(WriteOutcome.UPDATED, consultation_id)

    async def find_by_id(self, consultation_id: ConsultationId) -> Optional[Consultation]:
        return self.consultations.get(consultation_id)

    async def find_latest_draft(self, patient_id: str) -> Optional[Consultation]:
        self.draft_lookups += 1
        if self.fail_draft_lookups:
            self.fail_draft_lookups -= 1
            raise DatabaseError("consultations read failed")
        drafts = [
            consultation
            for consultation in self.consultations.values()
            if consultation.patient_id == patient_id and not consultation.is_completed
        ]
        return max(drafts, key=lambda consultation: consultation.updated_at, default=None)

    async def mark_completed(self, consultation_id: ConsultationId) -> Consultation:
        consultation = self.consultations.get(consultation_id)
        if consultation is None:
            raise ConsultationNotFoundError(consultation_id.value)
        consultation.finalize()
        return consultation


class FakeSubscription(ChangeSubscription):
    def __init__(self, feed: "FakeChangeFeed", handler: ChangeHandler) -> None:
        self._feed = feed
        self.handler = handler
        self.closed = False

    async def close(self) -> None:
        self.closed = True
        if self in self._feed.subscriptions:
            self._feed.subscriptions.remove(self)


class FakeChangeFeed(ChangeFeed):
    """Delivers whatever the test emits to every open subscription."""

    def __init__(self) -> None:
        self.subscriptions: List[FakeSubscription] = []
        self.subscribed_tables: List[Sequence[str]] = []
        self.fail_subscribes = 0
        self.subscribe_calls = 0

    async def subscribe(self, patient_id: str, tables: Sequence[str], handler: ChangeHandler) -> ChangeSubscription:
        self.subscribe_calls += 1
        if self.fail_subscribes:
            self.fail_subscribes -= 1
            raise RealtimeSubscriptionError(patient_id, "change streams unavailable")
        subscription = FakeSubscription(self, handler)
        self.subscriptions.append(subscription)
        self.subscribed_tables.append(tuple(tables))
        return subscription

    async def emit(self, table: str = "tooth_records", operation: str = "update", patient_id: str = PATIENT_ID) -> None:
        event = ChangeEvent(table=table, operation=operation, patient_id=patient_id)
        for subscription in list(self.subscriptions):
            await subscription.handler(event)


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.alerts: List[tuple] = []
        self.warnings: List[tuple] = []

    async def alert(self, title: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.alerts.append((title, message, details or {}))

    async def warn(self, title: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.warnings.append((title, message, details or {}))


class RecordingPublisher(ConsultationEventPublisher):
    def __init__(self) -> None:
        self.completed: List[Consultation] = []

    async def consultation_completed(self, consultation: Consultation) -> None:
        self.completed.append(consultation)


@pytest.fixture
def tooth_repo() -> InMemoryToothRecordRepository:
    return InMemoryToothRecordRepository()


@pytest.fixture
def consultation_repo() -> InMemoryConsultationRepository:
    return InMemoryConsultationRepository()


@pytest.fixture
def change_feed() -> FakeChangeFeed:
    return FakeChangeFeed()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def make_session(
    tooth_repo, consultation_repo, change_feed, notifier, publisher
) -> Callable[..., ConsultationSession]:
    def factory(**overrides: Any) -> ConsultationSession:
        options = dict(
            patient_id=PATIENT_ID,
            consultations=consultation_repo,
            tooth_records=tooth_repo,
            notifier=notifier,
            change_feed=change_feed,
            events=publisher,
            quiet_period=QUIET_PERIOD,
            post_write_delay=POST_WRITE_DELAY,
        )
        options.update(overrides)
        return ConsultationSession(**options)

    return factory


@pytest.fixture
def clean_settings(monkeypatch):
    """Fresh settings per test, unaffected by any .env on disk."""
    monkeypatch.setattr("dentalsync.core.config._load_env_file_if_available", lambda: None)
    reset_settings()
    yield
    reset_settings()
