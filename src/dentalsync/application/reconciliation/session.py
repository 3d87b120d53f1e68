"""
Consultation session: the reconciliation engine for one open patient.

Wires the components together:

    section edit -> AutosaveDebouncer -> consultation store
    tooth save   -> tooth store -> ReloadScheduler (delayed) -> reconcile
    change feed  -> RealtimeInvalidationListener -> ReloadScheduler (now)
    new chart    -> aggregation rule -> dependent sections -> autosave

Every failure is local: it is logged, surfaced through the notifier and
the session carries on with its last good state.
"""

import asyncio
import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from ...core.config import Settings
from ...core.utils.datetime_utils import get_current_date, milliseconds_to_seconds
from ...domain.entities.consultation import Consultation
from ...domain.entities.tooth_record import ToothAggregate, ToothRecord
from ...domain.enums.clinical import RecordOrigin, SectionId, SectionStatus
from ...domain.errors import (
    ConsultationAlreadyCompletedError,
    LowConfidenceExtractionError,
    MissingPreconditionError,
    ReadOnlySectionError,
)
from ...domain.sections import SectionModel, get_descriptor, parse_section_payload
from ...domain.value_objects.consultation_id import ConsultationId
from ...domain.value_objects.tooth_number import ToothNumber
from ...observability import record_error, trace_operation
from ..ports.repositories.consultation_repo import ConsultationRepository
from ..ports.repositories.tooth_record_repo import ToothRecordRepository
from ..ports.services.change_feed import ChangeFeed
from ..ports.services.consultation_events import ConsultationEventPublisher
from ..ports.services.notifier import Notifier
from .aggregation import apply_findings, build_overviews, collect_findings
from .autosave import DEFAULT_QUIET_PERIOD, AutosaveDebouncer
from .realtime_listener import DEFAULT_TABLES, RealtimeInvalidationListener
from .reconciler import ToothOverlay
from .reload_scheduler import DEFAULT_POST_WRITE_DELAY, ReloadScheduler, ReloadTrigger
from .section_status import classify, classify_all
from .voice_distribution import (
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_UNSUPPORTED_PENALTY,
    VoiceDistribution,
    VoiceDistributor,
    VoiceExtraction,
)

logger = logging.getLogger(__name__)


class ConsultationSession:
    """Single-editor session over one patient's consultation and chart."""

    def __init__(
        self,
        patient_id: str,
        consultations: ConsultationRepository,
        tooth_records: ToothRecordRepository,
        notifier: Notifier,
        change_feed: Optional[ChangeFeed] = None,
        events: Optional[ConsultationEventPublisher] = None,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        post_write_delay: float = DEFAULT_POST_WRITE_DELAY,
        realtime_tables: Sequence[str] = DEFAULT_TABLES,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        unsupported_penalty: float = DEFAULT_UNSUPPORTED_PENALTY,
    ) -> None:
        if not patient_id:
            raise MissingPreconditionError("an active patient is required to open a session")
        self._patient_id = patient_id
        self._consultations = consultations
        self._tooth_records = tooth_records
        self._notifier = notifier
        self._events = events
        self._quiet_period = quiet_period
        self._sections: Dict[SectionId, SectionModel] = {}
        self._overviews: Dict[SectionId, SectionModel] = {}
        self._completed = False
        self._opened = False

        self._debouncer = AutosaveDebouncer(
            consultations, patient_id, notifier, quiet_period=quiet_period
        )
        self._scheduler = ReloadScheduler(tooth_records, patient_id, post_write_delay=post_write_delay)
        self._scheduler.add_listener(self._on_chart_changed)
        self._listener = (
            RealtimeInvalidationListener(change_feed, self._scheduler, realtime_tables)
            if change_feed is not None
            else None
        )
        self._distributor = VoiceDistributor(min_confidence, unsupported_penalty)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        patient_id: str,
        consultations: ConsultationRepository,
        tooth_records: ToothRecordRepository,
        notifier: Notifier,
        change_feed: Optional[ChangeFeed] = None,
        events: Optional[ConsultationEventPublisher] = None,
    ) -> "ConsultationSession":
        reconciliation = settings.reconciliation
        return cls(
            patient_id,
            consultations,
            tooth_records,
            notifier,
            change_feed=change_feed,
            events=events,
            quiet_period=milliseconds_to_seconds(reconciliation.autosave_quiet_period_ms),
            post_write_delay=milliseconds_to_seconds(reconciliation.post_write_reload_delay_ms),
            realtime_tables=reconciliation.realtime_tables,
            min_confidence=settings.voice.min_confidence,
            unsupported_penalty=settings.suggestion.unsupported_confidence_penalty,
        )

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    @property
    def patient_id(self) -> str:
        return self._patient_id

    @property
    def consultation_id(self) -> Optional[ConsultationId]:
        return self._debouncer.consultation_id

    @property
    def aggregate(self) -> ToothAggregate:
        return self._scheduler.aggregate

    @property
    def pending_overlays(self) -> Sequence[ToothOverlay]:
        return self._scheduler.overlays

    @property
    def realtime_version(self) -> int:
        return self._listener.version if self._listener is not None else 0

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def sections(self) -> Mapping[SectionId, SectionModel]:
        """Editable sections plus the derived overview sections."""
        return MappingProxyType({**self._sections, **self._overviews})

    def section(self, section_id: Union[SectionId, str]) -> Optional[SectionModel]:
        return self.sections.get(SectionId(section_id))

    def section_statuses(self) -> Dict[SectionId, SectionStatus]:
        """Recomputed on every call; statuses are never stored."""
        return classify_all(self.sections)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def open(self, resume_draft: bool = True) -> None:
        """Resume the latest draft, load the chart and start listening.

        A failed step propagates and leaves the session unopened, so
        calling ``open`` again retries from the draft lookup.
        """
        if self._opened:
            return
        self._opened = True

        try:
            if resume_draft:
                draft = await self._consultations.find_latest_draft(self._patient_id)
                if draft is not None:
                    self._resume(draft)

            await self._scheduler.reload_now(ReloadTrigger.INITIAL)
            if not self._overviews:
                self._overviews = build_overviews(self.aggregate, collect_findings(self.aggregate))
            if self._listener is not None:
                await self._listener.start()
        except Exception as e:
            self._opened = False
            logger.warning(f"Opening session for patient {self._patient_id} failed: {e}")
            raise

    def _resume(self, draft: Consultation) -> None:
        logger.info(f"Resuming draft consultation {draft.consultation_id} for patient {self._patient_id}")
        self._sections = {
            section_id: payload
            for section_id, payload in draft.sections.items()
            if not get_descriptor(section_id).is_overview
        }
        self._debouncer = AutosaveDebouncer(
            self._consultations,
            self._patient_id,
            self._notifier,
            consultation_id=draft.consultation_id,
            quiet_period=self._quiet_period,
        )

    async def close(self) -> None:
        """Tear down: pending autosaves and delayed reloads are cancelled."""
        self._debouncer.close()
        self._scheduler.cancel_pending()
        if self._listener is not None:
            await self._listener.stop()

    # ------------------------------------------------------------------
    # sections
    # ------------------------------------------------------------------

    def edit_section(self, section_id: Union[SectionId, str], data: Union[SectionModel, Mapping[str, Any]]) -> SectionStatus:
        """Replace a section locally and queue its autosave."""
        payload = parse_section_payload(data, section_id)
        if get_descriptor(payload.id).is_overview:
            raise ReadOnlySectionError(payload.id.value)
        if self._completed:
            raise ConsultationAlreadyCompletedError(str(self.consultation_id))
        self._sections[payload.id] = payload
        self._debouncer.schedule(payload.id, payload)
        return classify(payload.id, payload)

    # ------------------------------------------------------------------
    # teeth
    # ------------------------------------------------------------------

    async def edit_tooth(self, tooth_number: Union[ToothNumber, int, str], **changes: Any) -> ToothRecord:
        """Hold an unsaved change to one tooth as a local-edit overlay."""
        tooth = ToothNumber.parse(tooth_number)
        base = self.aggregate.get(tooth) or ToothRecord(tooth_number=tooth, patient_id=self._patient_id)
        record = base.with_changes(origin=RecordOrigin.LOCAL_EDIT, **changes)
        await self._scheduler.put_overlay(ToothOverlay(record=record, kind=RecordOrigin.LOCAL_EDIT))
        return self.aggregate[tooth]

    async def save_tooth(self, tooth_number: Union[ToothNumber, int, str]) -> bool:
        """Persist the tooth's governing record and schedule the delayed reload.

        Returns False when there is nothing to save or the write failed.
        """
        tooth = ToothNumber.parse(tooth_number)
        current = self.aggregate.get(tooth)
        if current is None:
            logger.debug(f"Nothing to save for tooth {tooth}")
            return False

        record = current.with_changes(
            consultation_id=current.consultation_id
            or (self.consultation_id.value if self.consultation_id else None),
            examination_date=current.examination_date or get_current_date(),
        )
        try:
            with trace_operation("tooth.save", {"patient_id": self._patient_id, "tooth": str(tooth)}):
                saved = await self._tooth_records.save(record)
        except Exception as exc:
            logger.error(f"Saving tooth {tooth} for patient {self._patient_id} failed: {exc}", exc_info=True)
            record_error(type(exc).__name__, "tooth_save")
            await self._notifier.alert(
                "Save failed",
                f"Could not save tooth {tooth}.",
                {"tooth_number": str(tooth), "error": str(exc)},
            )
            return False

        # Keep the saved value on screen until the delayed reload confirms it.
        await self._scheduler.discard_overlay(tooth, RecordOrigin.VOICE_PENDING)
        await self._scheduler.put_overlay(
            ToothOverlay(record=saved, kind=RecordOrigin.LOCAL_EDIT)
        )
        self._scheduler.schedule_after_write()
        return True

    async def discard_tooth_changes(self, tooth_number: Union[ToothNumber, int, str]) -> ToothAggregate:
        """Drop unsaved and voice-pending values for a tooth."""
        return await self._scheduler.discard_overlay(ToothNumber.parse(tooth_number))

    async def reload(self) -> bool:
        """Force an immediate chart reload."""
        return await self._scheduler.reload_now(ReloadTrigger.REALTIME)

    async def _on_chart_changed(self, aggregate: ToothAggregate, trigger: ReloadTrigger) -> None:
        findings = collect_findings(aggregate)
        self._overviews = build_overviews(aggregate, findings)
        if self._completed:
            return
        updates = apply_findings(
            findings,
            self._sections.get(SectionId.CLINICAL_DIAGNOSIS),
            self._sections.get(SectionId.TREATMENT_PLAN),
        )
        for section_id, payload in updates.items():
            logger.debug(f"Chart change ({trigger.value}) updated {section_id.value}")
            self._sections[section_id] = payload
            self._debouncer.schedule(section_id, payload)

    # ------------------------------------------------------------------
    # voice
    # ------------------------------------------------------------------

    async def apply_extraction(
        self, extraction: Union[VoiceExtraction, Mapping[str, Any]]
    ) -> Optional[VoiceDistribution]:
        """Apply an AI extraction, or nothing at all if it fails the confidence gate."""
        if not isinstance(extraction, VoiceExtraction):
            extraction = VoiceExtraction.model_validate(extraction)
        if self._completed:
            raise ConsultationAlreadyCompletedError(str(self.consultation_id))

        try:
            distribution = self._distributor.distribute(
                extraction,
                self._sections,
                self._patient_id,
                self.consultation_id.value if self.consultation_id else None,
            )
        except LowConfidenceExtractionError as exc:
            await self._notifier.warn("Voice input not applied", exc.message, exc.details)
            return None

        for section_id, payload in distribution.sections.items():
            self._sections[section_id] = payload
            self._debouncer.schedule(section_id, payload)
        for overlay in distribution.overlays:
            await self._scheduler.put_overlay(overlay)
        return distribution

    # ------------------------------------------------------------------
    # finalize
    # ------------------------------------------------------------------

    async def finalize(self) -> Optional[Consultation]:
        """Flush pending edits and mark the consultation completed.

        Returns None when there is no consultation yet or the write failed.
        """
        await self._debouncer.flush()
        consultation_id = self.consultation_id
        if consultation_id is None:
            logger.debug(f"Finalize skipped: no consultation for patient {self._patient_id}")
            return None

        try:
            consultation = await self._consultations.mark_completed(consultation_id)
        except Exception as exc:
            logger.error(f"Finalizing consultation {consultation_id} failed: {exc}", exc_info=True)
            record_error(type(exc).__name__, "finalize")
            await self._notifier.alert(
                "Finalize failed",
                "The consultation could not be completed.",
                {"consultation_id": consultation_id.value, "error": str(exc)},
            )
            return None

        self._completed = True
        self._debouncer.close()
        logger.info(f"Consultation {consultation_id} completed for patient {self._patient_id}")
        if self._events is not None:
            await self._events.consultation_completed(consultation)
        return consultation

    async def wait_idle(self) -> None:
        """Wait until autosaves, reloads and the follow-on writes they cause settle."""
        while True:
            await self._debouncer.wait_idle()
            await self._scheduler.wait_idle()
            if self._listener is not None:
                await self._listener.wait_idle()
            await asyncio.sleep(0)
            if not (self._debouncer.has_pending or self._scheduler.is_busy or self._listener_busy()):
                return

    def _listener_busy(self) -> bool:
        return self._listener is not None and self._listener.is_busy
