"""
Voice extraction gate and distribution tests.
"""

import pytest

from dentalsync.application.reconciliation.voice_distribution import (
    VoiceDistributor,
    VoiceExtraction,
)
from dentalsync.domain.enums.clinical import RecordOrigin, SectionId, ToothStatus, TreatmentPriority
from dentalsync.domain.errors import LowConfidenceExtractionError
from dentalsync.domain.sections import ChiefComplaintSection, MedicalHistorySection

PATIENT = "PAT-001"


def _extraction(confidence=85, **fields):
    return VoiceExtraction.model_validate({"confidence": confidence, **fields})


class TestConfidenceGate:
    def test_below_threshold_is_rejected_whole(self):
        extraction = _extraction(
            59,
            chief_complaint={"primary_complaint": "Toothache"},
            tooth_findings=[{"tooth_number": "16", "diagnosis": ["Caries"]}],
        )
        with pytest.raises(LowConfidenceExtractionError) as exc_info:
            VoiceDistributor().distribute(extraction, {}, PATIENT)
        assert exc_info.value.details["threshold"] == 60

    def test_threshold_itself_passes(self):
        distribution = VoiceDistributor().distribute(
            _extraction(60, chief_complaint={"primary_complaint": "Toothache"}), {}, PATIENT
        )
        assert distribution.sections[SectionId.CHIEF_COMPLAINT].chief_complaint == "Toothache"

    def test_unsupported_suggestion_is_marked_down(self):
        distributor = VoiceDistributor()
        suggestion = _extraction(65, source="suggestion")
        assert distributor.effective_confidence(suggestion) == 55
        with pytest.raises(LowConfidenceExtractionError):
            distributor.distribute(suggestion, {}, PATIENT)

    def test_suggestion_with_evidence_keeps_its_confidence(self):
        suggestion = _extraction(65, source="suggestion", evidence_sources=["transcript"])
        assert VoiceDistributor().effective_confidence(suggestion) == 65

    def test_penalty_never_goes_below_zero(self):
        assert VoiceDistributor().effective_confidence(_extraction(4, source="suggestion")) == 0


class TestSections:
    def test_only_non_empty_values_overwrite(self):
        current = {
            SectionId.CHIEF_COMPLAINT: ChiefComplaintSection(
                chief_complaint="Sensitivity", pain_location="Upper right"
            )
        }
        extraction = _extraction(chief_complaint={"primary_complaint": "Sharp pain", "location": ""})
        updated = VoiceDistributor().distribute(extraction, current, PATIENT).sections[SectionId.CHIEF_COMPLAINT]

        assert updated.chief_complaint == "Sharp pain"
        assert updated.pain_location == "Upper right"

    def test_named_objects_are_flattened(self):
        extraction = _extraction(
            medical_history={
                "medical_conditions": [{"condition": "Diabetes"}],
                "allergies": ["Penicillin"],
            }
        )
        current = {SectionId.MEDICAL_HISTORY: MedicalHistorySection(current_medications=["Metformin"])}
        updated = VoiceDistributor().distribute(extraction, current, PATIENT).sections[SectionId.MEDICAL_HISTORY]

        assert updated.medical_conditions == ["Diabetes"]
        assert updated.allergies == ["Penicillin"]
        assert updated.current_medications == ["Metformin"]

    def test_percussion_tests_are_routed_separately(self):
        extraction = _extraction(
            investigations={
                "radiographic": {"findings": "Periapical radiolucency", "types": ["IOPA"]},
                "clinical_tests": {"Percussion 16": "tender", "Cold test": "lingering"},
            }
        )
        investigations = VoiceDistributor().distribute(extraction, {}, PATIENT).sections[SectionId.INVESTIGATIONS]

        assert investigations.percussion_tests == "Percussion 16: tender"
        assert investigations.vitality_tests == "Cold test: lingering"
        assert investigations.radiographic_types == ["IOPA"]

    def test_untouched_sections_are_left_out(self):
        distribution = VoiceDistributor().distribute(
            _extraction(treatment_plan={"procedures": ["Filling"], "prognosis": "Good"}), {}, PATIENT
        )
        assert set(distribution.sections) == {SectionId.TREATMENT_PLAN}


class TestToothFindings:
    def test_findings_become_voice_pending_overlays(self):
        extraction = _extraction(
            tooth_findings=[
                {"tooth_number": 41, "diagnosis": "Deep caries", "treatment": ["Filling"], "urgency": "urgent"},
                {"tooth_number": "26", "status": "crown"},
            ]
        )
        overlays = VoiceDistributor().distribute(extraction, {}, PATIENT, consultation_id="CONS-1").overlays

        first, second = overlays
        assert first.kind == RecordOrigin.VOICE_PENDING
        assert first.record.status == ToothStatus.CARIES
        assert first.record.priority == TreatmentPriority.URGENT
        assert first.record.consultation_id == "CONS-1"
        assert second.record.status == ToothStatus.CROWN

    def test_invalid_tooth_number_fails_validation(self):
        with pytest.raises(ValueError):
            _extraction(tooth_findings=[{"tooth_number": "19"}])
