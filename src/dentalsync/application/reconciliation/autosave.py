"""
Autosave debouncer for consultation sections.

Each section gets its own quiet-period timer. Rescheduling a section
restarts its timer, so only the last edit inside the window is written.
Writes are serialized so the consultation ID returned by the first
(creating) write is captured before any later write is issued.

A failed write is logged and alerted but never retried: the next edit
re-arms the timer and tries again.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional

from ...core.structured_logger import get_logger
from ...domain.enums.clinical import SectionId
from ...domain.sections import SectionModel, get_descriptor
from ...domain.value_objects.consultation_id import ConsultationId
from ...observability import record_autosave, record_error, trace_operation
from ..ports.repositories.consultation_repo import ConsultationRepository, SectionWriteResult
from ..ports.services.notifier import Notifier

logger = get_logger(__name__)

DEFAULT_QUIET_PERIOD = 0.8


@dataclass
class _PendingWrite:
    payload: SectionModel
    task: "asyncio.Task[None]"
    committed: bool = False


class AutosaveDebouncer:
    """Owns the per-section autosave timers for one consultation scope."""

    def __init__(
        self,
        repository: ConsultationRepository,
        patient_id: Optional[str],
        notifier: Notifier,
        consultation_id: Optional[ConsultationId] = None,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
    ) -> None:
        self._repository = repository
        self._patient_id = patient_id
        self._notifier = notifier
        self._consultation_id = consultation_id
        self._quiet_period = quiet_period
        self._pending: Dict[SectionId, _PendingWrite] = {}
        self._write_lock = asyncio.Lock()
        self._closed = False

    @property
    def consultation_id(self) -> Optional[ConsultationId]:
        """Identity captured from the first successful write."""
        return self._consultation_id

    @property
    def has_pending(self) -> bool:
        return any(not pending.task.done() for pending in self._pending.values())

    def schedule(self, section_id: SectionId, payload: SectionModel) -> bool:
        """(Re)start the quiet-period timer for ``section_id``.

        Returns False, without scheduling anything, when there is no active
        patient or the scope has been closed.
        """
        section_id = SectionId(section_id)
        if self._closed:
            logger.debug("Autosave scope closed; edit ignored", section=section_id.value)
            return False
        if not self._patient_id:
            logger.debug("Autosave skipped: no active patient", section=section_id.value)
            record_autosave(section_id.value, "skipped")
            return False
        if get_descriptor(section_id).is_overview:
            return False

        previous = self._pending.get(section_id)
        if previous is not None and not previous.committed:
            previous.task.cancel()

        task = asyncio.ensure_future(self._run(section_id))
        self._pending[section_id] = _PendingWrite(payload=payload, task=task)
        return True

    async def _run(self, section_id: SectionId) -> None:
        await asyncio.sleep(self._quiet_period)
        pending = self._pending[section_id]
        # Past the quiet period the write can no longer be cancelled.
        pending.committed = True
        await self._write(section_id, pending.payload)

    async def _write(self, section_id: SectionId, payload: SectionModel) -> Optional[SectionWriteResult]:
        async with self._write_lock:
            logger.debug(
                "Autosave write issued",
                section=section_id.value,
                consultation_id=str(self._consultation_id) if self._consultation_id else None,
            )
            try:
                with trace_operation("autosave.write", {"section": section_id.value}):
                    result = await self._repository.save_section(
                        self._patient_id, payload, self._consultation_id
                    )
            except Exception as exc:
                logger.exception(
                    "Autosave write failed",
                    section=section_id.value,
                    error=str(exc),
                )
                record_autosave(section_id.value, "failed")
                record_error(type(exc).__name__, "autosave")
                await self._notifier.alert(
                    "Save failed",
                    f"Could not save {get_descriptor(section_id).label}. Edit the section again to retry.",
                    {"section_id": section_id.value, "error": str(exc)},
                )
                return None

            if result.created:
                self._consultation_id = result.consultation_id
            logger.info(
                f"Autosave {result.outcome.value}",
                section=section_id.value,
                consultation_id=result.consultation_id.value,
            )
            record_autosave(section_id.value, result.outcome.value)

        return result

    def cancel(self) -> None:
        """Drop every timer that has not fired yet.

        Writes already past their quiet period are left to finish.
        """
        for section_id, pending in list(self._pending.items()):
            if not pending.committed and not pending.task.done():
                pending.task.cancel()
                del self._pending[section_id]

    def close(self) -> None:
        """Tear down the scope: cancel timers and refuse further edits."""
        self._closed = True
        self.cancel()

    async def flush(self) -> None:
        """Write every waiting edit now instead of at the end of its window."""
        waiting = [
            (section_id, pending.payload)
            for section_id, pending in self._pending.items()
            if not pending.committed and not pending.task.done()
        ]
        self.cancel()
        await self.wait_idle()
        for section_id, payload in waiting:
            await self._write(section_id, payload)

    async def wait_idle(self) -> None:
        """Wait for every scheduled or in-flight write to settle."""
        while True:
            tasks = [pending.task for pending in self._pending.values() if not pending.task.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)
