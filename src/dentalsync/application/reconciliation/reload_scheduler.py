"""
Post-write reload scheduler.

Owns the tooth aggregate and the pending overlays for one patient. The
aggregate is only ever replaced wholesale with the result of a
reconciliation against a fresh "latest per tooth" read.

Two paths lead to a read:

* ``schedule_after_write`` waits out the store's read-after-write lag
  first (500ms-1s), used after a tooth save is acknowledged;
* ``reload_now`` reads immediately, used by the realtime listener.

Each read takes a start sequence number. A result is applied only if no
later-started read has already been applied; older results that finish
late are discarded.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from ...core.utils.datetime_utils import get_current_timestamp
from ...domain.entities.tooth_record import ToothAggregate
from ...domain.enums.clinical import RecordOrigin
from ...domain.value_objects.tooth_number import ToothNumber
from ...observability import record_error, record_reload, record_stale_reload, trace_operation
from ..ports.repositories.tooth_record_repo import ToothRecordRepository
from .reconciler import ToothOverlay, ToothSnapshot, live_overlays, reconcile

logger = logging.getLogger(__name__)

DEFAULT_POST_WRITE_DELAY = 0.75

_NO_SNAPSHOT = ToothSnapshot(records=(), taken_at=datetime(1970, 1, 1, tzinfo=timezone.utc))


class ReloadTrigger(str, Enum):
    INITIAL = "initial"
    SAVE = "save"
    REALTIME = "realtime"
    OVERLAY = "overlay"


AggregateListener = Callable[[ToothAggregate, ReloadTrigger], Awaitable[None]]


class ReloadScheduler:
    """Serializes chart reloads for one patient and applies their results."""

    def __init__(
        self,
        repository: ToothRecordRepository,
        patient_id: str,
        post_write_delay: float = DEFAULT_POST_WRITE_DELAY,
    ) -> None:
        self._repository = repository
        self._patient_id = patient_id
        self._post_write_delay = post_write_delay
        self._aggregate = ToothAggregate.empty()
        self._overlays: List[ToothOverlay] = []
        self._last_snapshot = _NO_SNAPSHOT
        self._started_seq = 0
        self._applied_seq = 0
        self._listeners: List[AggregateListener] = []
        self._delayed: Set["asyncio.Task[bool]"] = set()
        self._inflight: Set["asyncio.Task[bool]"] = set()

    @property
    def aggregate(self) -> ToothAggregate:
        return self._aggregate

    @property
    def overlays(self) -> Tuple[ToothOverlay, ...]:
        return tuple(self._overlays)

    @property
    def patient_id(self) -> str:
        return self._patient_id

    @property
    def is_busy(self) -> bool:
        """True while a delayed or in-flight reload exists."""
        current = asyncio.current_task()
        return any(task is not current for task in (*self._delayed, *self._inflight))

    def add_listener(self, listener: AggregateListener) -> None:
        """Call ``listener`` after every aggregate replacement."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # reload paths
    # ------------------------------------------------------------------

    def schedule_after_write(self) -> "asyncio.Task[bool]":
        """Reload once the post-write propagation delay has elapsed."""
        task = asyncio.ensure_future(self._delayed_reload())
        self._delayed.add(task)
        task.add_done_callback(self._delayed.discard)
        return task

    async def _delayed_reload(self) -> bool:
        await asyncio.sleep(self._post_write_delay)
        # reading from here on; no longer cancellable by cancel_pending
        self._delayed.discard(asyncio.current_task())
        return await self.reload_now(ReloadTrigger.SAVE)

    async def reload_now(self, trigger: ReloadTrigger = ReloadTrigger.REALTIME, tag: Optional[int] = None) -> bool:
        """Read the latest row per tooth and reconcile it into the aggregate.

        Returns True when the result was applied (even if nothing changed),
        False when the read failed or was superseded.
        """
        task = asyncio.current_task()
        if task is not None:
            self._inflight.add(task)
        try:
            return await self._reload(ReloadTrigger(trigger), tag)
        finally:
            if task is not None:
                self._inflight.discard(task)

    async def _reload(self, trigger: ReloadTrigger, tag: Optional[int]) -> bool:
        self._started_seq += 1
        seq = self._started_seq
        taken_at = get_current_timestamp()
        started = time.perf_counter()
        logger.debug(f"Reload #{seq} started (trigger={trigger.value}, tag={tag}) for patient {self._patient_id}")

        try:
            with trace_operation(
                "chart.reload",
                {"patient_id": self._patient_id, "trigger": trigger.value, "sequence": seq},
            ):
                rows = await self._repository.find_latest_per_tooth(self._patient_id)
        except Exception as exc:
            logger.warning(
                f"Reload #{seq} failed for patient {self._patient_id}; keeping revision "
                f"{self._aggregate.revision}: {exc}"
            )
            record_reload(trigger.value, "failed")
            record_error(type(exc).__name__, "reload_scheduler")
            return False

        latency_ms = (time.perf_counter() - started) * 1000
        if seq < self._applied_seq:
            logger.info(f"Reload #{seq} discarded: reload #{self._applied_seq} already applied")
            record_stale_reload(trigger.value)
            return False

        self._applied_seq = seq
        origin = RecordOrigin.REALTIME_REFRESHED if trigger == ReloadTrigger.REALTIME else RecordOrigin.PERSISTED
        snapshot = ToothSnapshot.from_rows(rows, origin=origin, taken_at=taken_at)
        self._last_snapshot = snapshot
        self._overlays = list(live_overlays(snapshot, self._overlays))
        changed = await self._replace(snapshot, trigger)
        record_reload(trigger.value, "applied" if changed else "unchanged", latency_ms)
        return True

    async def _replace(self, snapshot: ToothSnapshot, trigger: ReloadTrigger) -> bool:
        aggregate = reconcile(self._aggregate, snapshot, self._overlays)
        if aggregate is self._aggregate:
            return False
        self._aggregate = aggregate
        logger.info(
            f"Chart for patient {self._patient_id} at revision {aggregate.revision} "
            f"({len(aggregate)} teeth, trigger={trigger.value})"
        )
        for listener in list(self._listeners):
            try:
                await listener(aggregate, trigger)
            except Exception as exc:
                logger.error(f"Chart listener {listener!r} failed: {exc}", exc_info=True)
                record_error(type(exc).__name__, "chart_listener")
        return True

    # ------------------------------------------------------------------
    # overlays
    # ------------------------------------------------------------------

    async def put_overlay(self, overlay: ToothOverlay) -> ToothAggregate:
        """Add or replace the overlay for (tooth, kind) and re-reconcile."""
        self._overlays = [
            existing
            for existing in self._overlays
            if not (existing.tooth_number == overlay.tooth_number and existing.kind == overlay.kind)
        ]
        self._overlays.append(overlay)
        await self._replace(self._last_snapshot, ReloadTrigger.OVERLAY)
        return self._aggregate

    async def discard_overlay(self, tooth_number: ToothNumber, kind: Optional[RecordOrigin] = None) -> ToothAggregate:
        """Drop overlays for a tooth (optionally only one kind) and re-reconcile."""
        tooth = ToothNumber.parse(tooth_number)
        self._overlays = [
            overlay
            for overlay in self._overlays
            if not (overlay.tooth_number == tooth and (kind is None or overlay.kind == kind))
        ]
        await self._replace(self._last_snapshot, ReloadTrigger.OVERLAY)
        return self._aggregate

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def cancel_pending(self) -> None:
        """Cancel delayed reloads that have not started reading yet."""
        for task in list(self._delayed):
            task.cancel()

    async def wait_idle(self) -> None:
        """Wait for delayed and in-flight reloads to finish."""
        while self._delayed or self._inflight:
            pending = [task for task in (*self._delayed, *self._inflight) if task is not asyncio.current_task()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
