"""API tests - FastAPI TestClient over an in-memory SQLite database."""

import uuid
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from records_timeline.api.routes import get_sources, router
from records_timeline.models.database import get_db
from records_timeline.models.records import AuditLog, ClinicalSession, LabResult
from records_timeline.services import notes as note_service
from records_timeline.services.sources import StaticSource, TimelineSources


class FailingSource:
    def fetch(self, patient_id):
        raise ConnectionError("record store timed out")


@pytest.fixture
def app(engine):
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def seeded(db, patient):
    db.add(
        ClinicalSession(
            patient_id=patient.id,
            scheduled_date=datetime(2025, 4, 10, 9, tzinfo=timezone.utc),
            session_type="video",
            duration_minutes=30,
            status="scheduled",
        )
    )
    db.add(
        LabResult(
            patient_id=patient.id,
            name="Lipid Panel",
            result_date=datetime(2025, 4, 8, tzinfo=timezone.utc),
            status="completed",
        )
    )
    db.commit()
    note_service.add_note(db, patient.id, "Patient reports improved energy.", "Dr. Smith")
    return patient


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_categories(client):
    response = client.get("/api/v1/timeline/categories")
    assert response.status_code == 200
    assert [option["id"] for option in response.json()] == [
        "all", "appointment", "lab", "medication", "form", "note",
    ]


def test_timeline_for_patient(client, seeded, db):
    response = client.get(f"/api/v1/patients/{seeded.id}/timeline")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    # The note was written just now, so it is the most recent item
    assert [item["type"] for item in body["items"]] == ["note", "appointment", "lab"]
    assert body["total"] == 3
    assert body["items"][0]["description"] == "Patient reports improved energy."
    assert body["items"][1]["description"] == "video session (30 min)"
    assert {card["title"]: card["count"] for card in body["summary"]}["Lab Results"] == 1
    assert set(body["sources"].values()) == {"success"}
    assert body["skipped"] == {"invalid": 0, "undated": 0}

    reads = db.query(AuditLog).filter(AuditLog.action == "read").all()
    assert len(reads) == 1


def test_timeline_category_filter(client, seeded):
    response = client.get(f"/api/v1/patients/{seeded.id}/timeline", params={"category": "lab"})
    assert [item["title"] for item in response.json()["items"]] == ["Lipid Panel"]

    response = client.get(f"/api/v1/patients/{seeded.id}/timeline", params={"category": "medication"})
    assert response.json()["items"] == []
    assert response.json()["total"] == 0


def test_timeline_rejects_unknown_category(client, seeded):
    response = client.get(f"/api/v1/patients/{seeded.id}/timeline", params={"category": "invoices"})
    assert response.status_code == 422


def test_timeline_unknown_patient(client):
    response = client.get(f"/api/v1/patients/{uuid.uuid4()}/timeline")
    assert response.status_code == 404


def test_timeline_survives_failing_source(app, client, patient):
    app.dependency_overrides[get_sources] = lambda: TimelineSources(
        sessions=StaticSource([{"id": "s1", "scheduled_date": "2025-04-10", "session_type": "video",
                                "duration_minutes": 30, "status": "scheduled"}]),
        forms=FailingSource(),
        medications=StaticSource(None),
        notes=StaticSource([]),
        lab_results=StaticSource([]),
    )

    response = client.get(f"/api/v1/patients/{patient.id}/timeline")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "partial"
    assert body["sources"]["forms"] == "failed"
    assert [item["id"] for item in body["items"]] == ["s1"]


def test_note_crud(client, patient):
    created = client.post(
        f"/api/v1/patients/{patient.id}/notes",
        json={"content": "  Discussed lab results.  ", "created_by": "Dr. Smith"},
    )
    assert created.status_code == 201
    note = created.json()
    assert note["content"] == "Discussed lab results."

    updated = client.patch(f"/api/v1/notes/{note['id']}", json={"content": "Reviewed lab results."})
    assert updated.status_code == 200
    assert updated.json()["content"] == "Reviewed lab results."

    listed = client.get(f"/api/v1/patients/{patient.id}/notes")
    assert [n["content"] for n in listed.json()] == ["Reviewed lab results."]

    assert client.delete(f"/api/v1/notes/{note['id']}").status_code == 204
    assert client.get(f"/api/v1/patients/{patient.id}/notes").json() == []
    assert client.delete(f"/api/v1/notes/{note['id']}").status_code == 404


def test_empty_note_rejected(client, patient):
    response = client.post(
        f"/api/v1/patients/{patient.id}/notes",
        json={"content": "   ", "created_by": "Dr. Smith"},
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Note cannot be empty"


def test_blank_edit_of_unknown_note_is_not_found(client):
    response = client.patch(f"/api/v1/notes/{uuid.uuid4()}", json={"content": "   "})
    assert response.status_code == 404
    assert response.json()["detail"] == "Note not found"


def test_note_for_unknown_patient(client):
    response = client.post(
        f"/api/v1/patients/{uuid.uuid4()}/notes",
        json={"content": "Hello", "created_by": "Dr. Smith"},
    )
    assert response.status_code == 404
