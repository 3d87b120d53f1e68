"""
Reconciliation precedence tests.
"""

from datetime import datetime, timedelta, timezone

from dentalsync.application.reconciliation.reconciler import (
    ToothOverlay,
    ToothSnapshot,
    live_overlays,
    merge_records,
    reconcile,
)
from dentalsync.domain.entities.tooth_record import ToothAggregate, ToothRecord
from dentalsync.domain.enums.clinical import RecordOrigin, ToothStatus

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
PATIENT = "PAT-001"


def _row(tooth, status="healthy", minutes=0, consultation_id=None):
    return ToothRecord(
        tooth_number=tooth,
        patient_id=PATIENT,
        status=status,
        updated_at=T0 + timedelta(minutes=minutes),
        record_id=f"TR-{tooth}-{minutes}",
        consultation_id=consultation_id,
    )


def _overlay(tooth, kind, status, minutes):
    record = ToothRecord(tooth_number=tooth, patient_id=PATIENT, status=status)
    return ToothOverlay(record=record, kind=kind, created_at=T0 + timedelta(minutes=minutes))


class TestLatestPerTooth:
    def test_keeps_most_recent_row_per_tooth(self):
        snapshot = ToothSnapshot.from_rows(
            [
                _row("16", "caries", minutes=1, consultation_id="A"),
                _row("16", "filled", minutes=5, consultation_id="B"),
                _row("21", "crown", minutes=2),
            ],
            taken_at=T0 + timedelta(minutes=10),
        )
        merged = merge_records(snapshot)
        assert [str(tooth) for tooth in merged] == ["16", "21"]
        assert merged[next(iter(merged))].status == ToothStatus.FILLED

    def test_rows_are_stamped_with_read_origin(self):
        snapshot = ToothSnapshot.from_rows([_row("16")], origin=RecordOrigin.REALTIME_REFRESHED)
        assert snapshot.records[0].origin == RecordOrigin.REALTIME_REFRESHED


class TestPrecedence:
    def test_local_edit_newer_than_snapshot_wins(self):
        snapshot = ToothSnapshot.from_rows([_row("16", "caries")], taken_at=T0 + timedelta(minutes=1))
        local = _overlay("16", RecordOrigin.LOCAL_EDIT, "filled", minutes=2)
        merged = merge_records(snapshot, [local])
        record = list(merged.values())[0]
        assert record.status == ToothStatus.FILLED
        assert record.origin == RecordOrigin.LOCAL_EDIT

    def test_snapshot_newer_than_local_edit_wins(self):
        local = _overlay("16", RecordOrigin.LOCAL_EDIT, "filled", minutes=1)
        snapshot = ToothSnapshot.from_rows([_row("16", "crown")], taken_at=T0 + timedelta(minutes=2))
        record = list(merge_records(snapshot, [local]).values())[0]
        assert record.status == ToothStatus.CROWN
        assert record.origin == RecordOrigin.PERSISTED

    def test_voice_pending_only_fills_teeth_without_rows(self):
        snapshot = ToothSnapshot.from_rows([_row("16", "caries")], taken_at=T0)
        overlays = [
            _overlay("16", RecordOrigin.VOICE_PENDING, "filled", minutes=1),
            _overlay("41", RecordOrigin.VOICE_PENDING, "caries", minutes=1),
        ]
        merged = {str(tooth): record for tooth, record in merge_records(snapshot, overlays).items()}
        assert merged["16"].status == ToothStatus.CARIES
        assert merged["41"].origin == RecordOrigin.VOICE_PENDING

    def test_superseded_local_edit_without_row_is_dropped(self):
        local = _overlay("38", RecordOrigin.LOCAL_EDIT, "missing", minutes=1)
        snapshot = ToothSnapshot.from_rows([], taken_at=T0 + timedelta(minutes=2))
        assert merge_records(snapshot, [local]) == {}

    def test_one_record_per_tooth(self):
        snapshot = ToothSnapshot.from_rows(
            [_row("16", "caries", 1), _row("16", "filled", 2)], taken_at=T0
        )
        overlays = [
            _overlay("16", RecordOrigin.VOICE_PENDING, "crown", 3),
            _overlay("16", RecordOrigin.LOCAL_EDIT, "implant", 4),
        ]
        assert len(merge_records(snapshot, overlays)) == 1


class TestReconcile:
    def test_unchanged_input_returns_same_aggregate(self):
        snapshot = ToothSnapshot.from_rows([_row("16", "caries")], taken_at=T0)
        first = reconcile(ToothAggregate.empty(), snapshot)
        second = reconcile(first, ToothSnapshot.from_rows([_row("16", "caries")], taken_at=T0 + timedelta(seconds=5)))
        assert second is first
        assert first.revision == 1

    def test_change_bumps_revision(self):
        first = reconcile(ToothAggregate.empty(), ToothSnapshot.from_rows([_row("16", "caries")], taken_at=T0))
        second = reconcile(first, ToothSnapshot.from_rows([_row("16", "filled", 1)], taken_at=T0))
        assert second is not first
        assert second.revision == 2
        assert first["16"].status == ToothStatus.CARIES


class TestLiveOverlays:
    def test_local_edit_expires_with_later_snapshot(self):
        local = _overlay("16", RecordOrigin.LOCAL_EDIT, "filled", minutes=1)
        assert live_overlays(ToothSnapshot.from_rows([], taken_at=T0), [local]) == (local,)
        assert live_overlays(ToothSnapshot.from_rows([], taken_at=T0 + timedelta(minutes=2)), [local]) == ()

    def test_voice_pending_expires_when_row_written_after_it(self):
        voice = _overlay("41", RecordOrigin.VOICE_PENDING, "caries", minutes=1)
        older_row = ToothSnapshot.from_rows([_row("41", "healthy", 0)], taken_at=T0 + timedelta(minutes=3))
        newer_row = ToothSnapshot.from_rows([_row("41", "caries", 2)], taken_at=T0 + timedelta(minutes=3))
        assert live_overlays(older_row, [voice]) == (voice,)
        assert live_overlays(newer_row, [voice]) == ()
