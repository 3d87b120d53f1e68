"""
Record reconciler.

Merges a fresh backing-store snapshot and locally held overlays into a new
tooth aggregate. For every tooth in the union of snapshot and overlays:

1. a local edit created after the snapshot was taken wins;
2. otherwise a voice-pending entry wins if the snapshot has no row for
   the tooth;
3. otherwise the snapshot row wins.

The merge is pure. The result holds exactly one record per tooth, and
reconciling an aggregate against itself returns the same object.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Sequence, Tuple

from ...core.utils.datetime_utils import ensure_aware, get_current_timestamp
from ...domain.entities.tooth_record import ToothAggregate, ToothRecord
from ...domain.enums.clinical import RecordOrigin
from ...domain.value_objects.tooth_number import ToothNumber

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_OVERLAY_KINDS = (RecordOrigin.LOCAL_EDIT, RecordOrigin.VOICE_PENDING)


def _updated(record: ToothRecord) -> datetime:
    return ensure_aware(record.updated_at) or _EPOCH


@dataclass(frozen=True)
class ToothSnapshot:
    """Rows read from the backing store at ``taken_at``."""

    records: Tuple[ToothRecord, ...]
    taken_at: datetime = field(default_factory=get_current_timestamp)

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records))
        object.__setattr__(self, "taken_at", ensure_aware(self.taken_at))

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[ToothRecord],
        origin: RecordOrigin = RecordOrigin.PERSISTED,
        taken_at: Optional[datetime] = None,
    ) -> "ToothSnapshot":
        """Stamp store rows with the origin of the read that produced them."""
        if origin not in (RecordOrigin.PERSISTED, RecordOrigin.REALTIME_REFRESHED):
            raise ValueError(f"Snapshot rows cannot have origin '{origin.value}'")
        return cls(
            records=tuple(row.with_origin(origin) for row in rows),
            taken_at=taken_at or get_current_timestamp(),
        )

    def latest_per_tooth(self) -> Dict[ToothNumber, ToothRecord]:
        """Most recently updated row per tooth; the first row wins a tie."""
        latest: Dict[ToothNumber, ToothRecord] = {}
        for row in self.records:
            current = latest.get(row.tooth_number)
            if current is None or _updated(row) > _updated(current):
                latest[row.tooth_number] = row
        return latest


@dataclass(frozen=True)
class ToothOverlay:
    """A tooth value held locally and not yet confirmed by the store."""

    record: ToothRecord
    kind: RecordOrigin
    created_at: datetime = field(default_factory=get_current_timestamp)

    def __post_init__(self) -> None:
        kind = RecordOrigin(self.kind)
        if kind not in _OVERLAY_KINDS:
            raise ValueError(f"Overlay kind must be local-edit or voice-pending, got '{kind.value}'")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "record", self.record.with_origin(kind))
        object.__setattr__(self, "created_at", ensure_aware(self.created_at))

    @property
    def tooth_number(self) -> ToothNumber:
        return self.record.tooth_number


def _newest_overlays(overlays: Iterable[ToothOverlay], kind: RecordOrigin) -> Dict[ToothNumber, ToothOverlay]:
    newest: Dict[ToothNumber, ToothOverlay] = {}
    for overlay in overlays:
        if overlay.kind != kind:
            continue
        current = newest.get(overlay.tooth_number)
        if current is None or overlay.created_at >= current.created_at:
            newest[overlay.tooth_number] = overlay
    return newest


def merge_records(
    snapshot: ToothSnapshot, overlays: Sequence[ToothOverlay] = ()
) -> Dict[ToothNumber, ToothRecord]:
    """Pick the governing record for every tooth."""
    rows = snapshot.latest_per_tooth()
    local_edits = _newest_overlays(overlays, RecordOrigin.LOCAL_EDIT)
    voice_pending = _newest_overlays(overlays, RecordOrigin.VOICE_PENDING)

    merged: Dict[ToothNumber, ToothRecord] = {}
    for tooth in sorted(set(rows) | set(local_edits) | set(voice_pending)):
        local = local_edits.get(tooth)
        voice = voice_pending.get(tooth)
        row = rows.get(tooth)

        if local is not None and local.created_at > snapshot.taken_at:
            merged[tooth] = local.record
        elif voice is not None and row is None:
            merged[tooth] = voice.record
        elif row is not None:
            merged[tooth] = row
        # a superseded local edit with no row behind it is dropped
    return merged


def reconcile(
    previous: ToothAggregate,
    snapshot: ToothSnapshot,
    overlays: Sequence[ToothOverlay] = (),
) -> ToothAggregate:
    """Produce the aggregate that replaces ``previous``.

    Returns ``previous`` itself when nothing changed, so callers can use an
    identity check to skip downstream work.
    """
    merged = merge_records(snapshot, overlays)
    if dict(previous.records) == merged:
        return previous
    return ToothAggregate(
        records=merged,
        revision=previous.revision + 1,
        reconciled_at=get_current_timestamp(),
    )


def live_overlays(snapshot: ToothSnapshot, overlays: Sequence[ToothOverlay]) -> Tuple[ToothOverlay, ...]:
    """Overlays the snapshot has not yet superseded.

    A local edit is superseded by any snapshot taken after it. A voice-pending
    entry is superseded once the store holds a row for its tooth written at
    or after the entry was created.
    """
    rows = snapshot.latest_per_tooth()
    alive = []
    for overlay in overlays:
        if overlay.kind == RecordOrigin.LOCAL_EDIT:
            if overlay.created_at > snapshot.taken_at:
                alive.append(overlay)
            continue
        row = rows.get(overlay.tooth_number)
        if row is None or _updated(row) < overlay.created_at:
            alive.append(overlay)
    return tuple(alive)
