"""
Section schema and status classifier tests.
"""

import pytest

from dentalsync.application.reconciliation.section_status import classify, classify_all
from dentalsync.domain.enums.clinical import SectionId, SectionStatus
from dentalsync.domain.errors import InvalidSectionPayloadError
from dentalsync.domain.sections import (
    ChiefComplaintSection,
    ordered_descriptors,
    parse_section_payload,
)


@pytest.mark.parametrize(
    "section_id, data, expected",
    [
        ("chief-complaint", None, SectionStatus.EMPTY),
        ("chief-complaint", {}, SectionStatus.EMPTY),
        ("chief-complaint", {"chief_complaint": "Pain"}, SectionStatus.PARTIAL),
        (
            "chief-complaint",
            {"chief_complaint": "Pain", "pain_location": "Upper right", "pain_duration": "3 days"},
            SectionStatus.COMPLETE,
        ),
        ("chief-complaint", {"chief_complaint": "   "}, SectionStatus.EMPTY),
        ("history-of-present-illness", {"pain_triggers": ["Cold"]}, SectionStatus.PARTIAL),
        (
            "history-of-present-illness",
            {"pain_character": "Throbbing", "pain_triggers": ["Cold"], "pain_relief": ["Ibuprofen"]},
            SectionStatus.COMPLETE,
        ),
        ("history-of-present-illness", {"onset_details": "Started last week"}, SectionStatus.EMPTY),
        (
            "clinical-diagnosis",
            {"provisional_diagnosis": [], "differential_diagnosis": []},
            SectionStatus.EMPTY,
        ),
        ("clinical-diagnosis", {"provisional_diagnosis": ["Caries 16"]}, SectionStatus.PARTIAL),
        (
            "clinical-diagnosis",
            {"provisional_diagnosis": ["Caries 16"], "differential_diagnosis": ["Reversible pulpitis"]},
            SectionStatus.COMPLETE,
        ),
        ("clinical-diagnosis", {"final_diagnosis": ["Caries 16"]}, SectionStatus.EMPTY),
        ("medical-history", {"allergies": ["Penicillin"]}, SectionStatus.PARTIAL),
        (
            "medical-history",
            {"medical_conditions": ["Diabetes"], "current_medications": ["Metformin"], "allergies": ["None known"]},
            SectionStatus.COMPLETE,
        ),
        ("treatment-plan", {"planned_procedures": ["Dental filling"]}, SectionStatus.PARTIAL),
        (
            "treatment-plan",
            {"planned_procedures": ["Dental filling"], "prognosis": "Good"},
            SectionStatus.COMPLETE,
        ),
        ("prescription", {"medications": []}, SectionStatus.EMPTY),
        ("prescription", {"medications": [{"name": "Amoxicillin"}]}, SectionStatus.COMPLETE),
        ("follow-up", {"general_notes": "Call if pain persists"}, SectionStatus.EMPTY),
        (
            "follow-up",
            {"tooth_specific_follow_ups": {"16": {"monitoring_notes": "Check filling"}}},
            SectionStatus.COMPLETE,
        ),
    ],
)
def test_classify(section_id, data, expected):
    assert classify(section_id, data) == expected


class TestPersonalHistoryPredicate:
    def test_defaults_are_empty(self):
        assert classify("personal-history", {}) == SectionStatus.EMPTY

    def test_never_smoker_default_does_not_count(self):
        assert classify("personal-history", {"smoking": {"status": "never"}}) == SectionStatus.EMPTY

    def test_any_habit_is_complete(self):
        assert classify("personal-history", {"smoking": {"status": "current"}}) == SectionStatus.COMPLETE
        assert classify("personal-history", {"alcohol": {"type": ["wine"]}}) == SectionStatus.COMPLETE
        assert classify("personal-history", {"occupation": "Baker"}) == SectionStatus.COMPLETE


def test_classify_is_pure():
    payload = {"chief_complaint": "Pain", "pain_location": "Lower left"}
    assert classify("chief-complaint", payload) == classify("chief-complaint", dict(payload))


def test_classify_all_covers_every_section():
    statuses = classify_all({SectionId.CHIEF_COMPLAINT: ChiefComplaintSection(chief_complaint="Pain")})
    assert statuses[SectionId.CHIEF_COMPLAINT] == SectionStatus.PARTIAL
    assert set(statuses) == {descriptor.section_id for descriptor in ordered_descriptors()}
    assert statuses[SectionId.FOLLOW_UP_OVERVIEW] == SectionStatus.EMPTY


class TestParsePayload:
    def test_tag_is_filled_from_section_id(self):
        payload = parse_section_payload({"chief_complaint": "Pain"}, "chief-complaint")
        assert isinstance(payload, ChiefComplaintSection)
        assert payload.id == SectionId.CHIEF_COMPLAINT

    def test_tag_mismatch_is_rejected(self):
        with pytest.raises(InvalidSectionPayloadError):
            parse_section_payload({"section_id": "prescription"}, "chief-complaint")

    def test_unknown_section_is_rejected(self):
        with pytest.raises(InvalidSectionPayloadError):
            parse_section_payload({}, "x-rays")

    def test_schema_violation_is_rejected(self):
        with pytest.raises(InvalidSectionPayloadError):
            parse_section_payload({"pain_intensity": 11}, "chief-complaint")

    def test_unknown_fields_are_ignored(self):
        payload = parse_section_payload({"legacy_field": 1}, "investigations")
        assert classify("investigations", payload) == SectionStatus.EMPTY

    def test_descriptors_are_in_display_order(self):
        ids = [descriptor.section_id for descriptor in ordered_descriptors()]
        assert ids[0] == SectionId.CHIEF_COMPLAINT
        assert ids[-1] == SectionId.FOLLOW_UP_OVERVIEW
        assert ids.index(SectionId.DIAGNOSIS_OVERVIEW) < ids.index(SectionId.CLINICAL_DIAGNOSIS)
