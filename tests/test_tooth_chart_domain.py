"""
Tooth number, tooth record, aggregate and status-rule tests.
"""

import pytest

from dentalsync.domain.entities.tooth_record import ToothAggregate, ToothRecord
from dentalsync.domain.enums.clinical import ToothStatus
from dentalsync.domain.errors import InvalidToothNumberError
from dentalsync.domain.tooth_status import (
    final_status_from_treatment,
    initial_status_from_diagnosis,
    requires_attention,
    status_color_code,
)
from dentalsync.domain.value_objects.tooth_number import ToothNumber


class TestToothNumber:
    @pytest.mark.parametrize("raw", [11, "18", "21", 38, "41", 48])
    def test_accepts_permanent_dentition(self, raw):
        assert str(ToothNumber.parse(raw)) == str(raw)

    @pytest.mark.parametrize("raw", [0, 10, 19, 51, 9, "5", "1a", "", None])
    def test_rejects_outside_fdi_range(self, raw):
        with pytest.raises(InvalidToothNumberError):
            ToothNumber.parse(raw)

    def test_quadrant_and_position(self):
        tooth = ToothNumber.parse("36")
        assert tooth.quadrant == 3
        assert tooth.position == 6

    def test_string_and_int_forms_are_equal(self):
        assert ToothNumber.parse("16") == ToothNumber.parse(16)
        assert len({ToothNumber.parse("16"), ToothNumber.parse(16)}) == 1


class TestToothRecord:
    def test_entries_are_cleaned_and_deduplicated(self):
        record = ToothRecord(
            tooth_number="16",
            patient_id="PAT-001",
            diagnoses=[" caries ", "caries", "", "pulpitis"],
        )
        assert record.diagnoses == ("caries", "pulpitis")

    def test_requires_patient(self):
        with pytest.raises(ValueError):
            ToothRecord(tooth_number="16", patient_id="")

    def test_color_code_follows_status(self):
        record = ToothRecord(tooth_number="16", patient_id="PAT-001", status="caries")
        assert record.color_code == status_color_code(ToothStatus.CARIES)
        assert record.requires_attention


class TestToothAggregate:
    def _aggregate(self):
        return ToothAggregate(
            records={
                "21": ToothRecord(tooth_number="21", patient_id="PAT-001", status="filled"),
                "16": ToothRecord(tooth_number="16", patient_id="PAT-001", status="caries"),
                "11": ToothRecord(tooth_number="11", patient_id="PAT-001"),
            }
        )

    def test_iterates_in_fdi_order(self):
        assert [str(tooth) for tooth in self._aggregate()] == ["11", "16", "21"]

    def test_lookup_by_any_tooth_form(self):
        aggregate = self._aggregate()
        assert aggregate["16"].status == ToothStatus.CARIES
        assert aggregate[16] is aggregate[ToothNumber.parse("16")]
        assert "99" not in aggregate

    def test_rejects_record_filed_under_wrong_tooth(self):
        with pytest.raises(ValueError):
            ToothAggregate(records={"11": ToothRecord(tooth_number="12", patient_id="PAT-001")})

    def test_records_are_read_only(self):
        with pytest.raises(TypeError):
            self._aggregate().records["11"] = None

    def test_stats(self):
        stats = self._aggregate().stats()
        assert (stats.healthy, stats.caries, stats.restorations, stats.total) == (1, 1, 1, 3)


class TestStatusRules:
    @pytest.mark.parametrize(
        "diagnosis, expected",
        [
            ("Deep caries", ToothStatus.CARIES),
            ("Irreversible pulpitis", ToothStatus.ATTENTION),
            ("Tooth missing", ToothStatus.MISSING),
            ("Cracked cusp", ToothStatus.ATTENTION),
            ("Looks fine", ToothStatus.HEALTHY),
            (None, ToothStatus.HEALTHY),
        ],
    )
    def test_initial_status(self, diagnosis, expected):
        assert initial_status_from_diagnosis(diagnosis) == expected

    @pytest.mark.parametrize(
        "treatment, expected",
        [
            ("Composite filling", ToothStatus.FILLED),
            ("Root canal therapy", ToothStatus.ROOT_CANAL),
            ("Crown placement", ToothStatus.CROWN),
            ("Surgical extraction", ToothStatus.MISSING),
            ("Implant placement", ToothStatus.IMPLANT),
            ("Treat the deep caries", ToothStatus.ROOT_CANAL),
            ("Manage small cavity", ToothStatus.FILLED),
            ("Review next month", None),
        ],
    )
    def test_final_status(self, treatment, expected):
        assert final_status_from_treatment(treatment) == expected

    def test_attention_statuses(self):
        assert requires_attention(ToothStatus.EXTRACTION_NEEDED)
        assert not requires_attention(ToothStatus.FILLED)

    def test_treatment_complete_statuses(self):
        record = ToothRecord(tooth_number="26", patient_id="PAT-001", status="crown")
        assert record.is_treatment_complete
        assert not record.with_changes(status="caries").is_treatment_complete
