"""
HTTP API tests with the Mongo repositories swapped for in-memory ones.
"""

import pytest
from fastapi.testclient import TestClient

from dentalsync.api.deps import (
    get_consultation_repository,
    get_event_publisher,
    get_tooth_record_repository,
)
from dentalsync.app import app
from dentalsync.domain.entities.tooth_record import ToothRecord
from dentalsync.domain.value_objects.consultation_id import ConsultationId

from .conftest import PATIENT_ID


@pytest.fixture
def client(tooth_repo, consultation_repo, publisher):
    app.dependency_overrides[get_tooth_record_repository] = lambda: tooth_repo
    app.dependency_overrides[get_consultation_repository] = lambda: consultation_repo
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    yield TestClient(app)
    app.dependency_overrides.clear()


def _save_section(client, section_id, payload, consultation_id=None):
    body = {"patient_id": PATIENT_ID, "section_id": section_id, "payload": payload}
    if consultation_id:
        body["consultation_id"] = consultation_id
    return client.put("/consultations/sections", json=body)


class TestSections:
    def test_first_write_creates_then_updates(self, client, consultation_repo):
        response = _save_section(client, "chief-complaint", {"chief_complaint": "Pain"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["created"] is True
        assert data["status"] == "partial"

        response = _save_section(
            client, "medical-history", {"allergies": ["Latex"]}, consultation_id=data["consultation_id"]
        )
        assert response.json()["data"]["created"] is False
        assert len(consultation_repo.consultations) == 1

    def test_overview_section_is_rejected(self, client):
        response = _save_section(client, "diagnosis-overview", {})
        assert response.status_code == 422
        assert response.json()["error"] == "READ_ONLY_SECTION"

    def test_schema_violation_is_rejected(self, client):
        response = _save_section(client, "chief-complaint", {"pain_intensity": 42})
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_SECTION_PAYLOAD"

    def test_unknown_section_id_fails_request_validation(self, client):
        response = _save_section(client, "x-rays", {})
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_INPUT"


class TestConsultationLifecycle:
    def test_get_lists_every_section_with_status(self, client):
        created = _save_section(client, "chief-complaint", {"chief_complaint": "Pain"}).json()["data"]
        response = client.get(f"/consultations/{created['consultation_id']}")

        assert response.status_code == 200
        sections = response.json()["data"]["sections"]
        assert len(sections) == 13
        assert sections[0]["section_id"] == "chief-complaint"
        assert sections[0]["status"] == "partial"
        assert sections[1]["payload"] is None

    def test_unknown_consultation_is_404(self, client):
        response = client.get(f"/consultations/{ConsultationId.generate()}")
        assert response.status_code == 404
        assert response.json()["error"] == "CONSULTATION_NOT_FOUND"

    def test_finalize_once_then_writes_are_refused(self, client, publisher):
        consultation_id = _save_section(client, "chief-complaint", {"chief_complaint": "Pain"}).json()["data"][
            "consultation_id"
        ]

        response = client.post(f"/consultations/{consultation_id}/finalize")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"
        assert len(publisher.completed) == 1

        assert client.post(f"/consultations/{consultation_id}/finalize").status_code == 409
        response = _save_section(client, "prescription", {}, consultation_id=consultation_id)
        assert response.status_code == 409


class TestChart:
    def test_chart_shows_latest_row_per_tooth(self, client, tooth_repo):
        older = tooth_repo.seed(ToothRecord(tooth_number="16", patient_id=PATIENT_ID, status="caries"))
        tooth_repo.seed(ToothRecord(tooth_number="11", patient_id=PATIENT_ID))
        tooth_repo.seed(
            ToothRecord(tooth_number="16", patient_id=PATIENT_ID, status="filled", consultation_id="B").with_changes(
                updated_at=older.updated_at.replace(year=older.updated_at.year + 1)
            )
        )

        response = client.get(f"/patients/{PATIENT_ID}/chart")
        assert response.status_code == 200
        chart = response.json()["data"]
        assert [tooth["tooth_number"] for tooth in chart["teeth"]] == ["11", "16"]
        assert chart["teeth"][1]["status"] == "filled"
        assert chart["stats"]["total"] == 2
        assert "diagnosis-overview" in chart["overviews"]

    def test_save_tooth_infers_status_from_diagnosis(self, client, tooth_repo):
        response = client.put(
            f"/patients/{PATIENT_ID}/teeth/36",
            json={"diagnoses": ["Deep caries"], "treatments": ["Composite filling"]},
        )
        assert response.status_code == 200
        tooth = response.json()["data"]
        assert tooth["status"] == "caries"
        assert tooth["record_id"]
        assert tooth["examination_date"] is not None
        assert len(tooth_repo.rows) == 1

    @pytest.mark.parametrize(
        "treatments, expected",
        [(["Root canal treatment"], "root_canal"), (["Porcelain crown"], "crown"), (["Review"], "healthy")],
    )
    def test_completed_treatment_charts_final_status(self, client, treatments, expected):
        response = client.put(
            f"/patients/{PATIENT_ID}/teeth/46",
            json={"diagnoses": ["Irreversible pulpitis"], "treatments": treatments, "treatment_completed": True},
        )
        assert response.status_code == 200
        tooth = response.json()["data"]
        assert tooth["status"] == expected
        assert tooth["treatment_complete"] is (expected != "healthy")

    def test_invalid_tooth_number_is_422(self, client):
        response = client.put(f"/patients/{PATIENT_ID}/teeth/19", json={})
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_TOOTH_NUMBER"


def test_request_id_header_is_echoed(client):
    response = client.get(f"/patients/{PATIENT_ID}/chart", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.json()["request_id"] == "req-123"
