"""
FastAPI routes: patient timeline, timeline filters and clinical notes.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from records_timeline.config import settings
from records_timeline.etl.dag import TaskStatus
from records_timeline.etl.pipeline import SOURCE_SCHEMAS, run_patient_timeline
from records_timeline.models.database import get_db
from records_timeline.models.records import Patient
from records_timeline.schemas.api import (
    FilterOptionOut,
    HealthResponse,
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    SkippedRecords,
    SummaryCardOut,
    TimelineItemOut,
    TimelineResponse,
)
from records_timeline.services import notes as note_service
from records_timeline.services.audit import log_action
from records_timeline.services.sources import TimelineSources, sql_sources
from records_timeline.timeline.items import FILTER_OPTIONS, TimelineFilter

logger = logging.getLogger(__name__)

router = APIRouter()


def get_sources(db: Session = Depends(get_db)) -> TimelineSources:
    """FastAPI dependency providing the record sources for the timeline."""
    return sql_sources(db)


def _require_patient(db: Session, patient_id: UUID) -> Patient:
    patient = db.get(Patient, patient_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Basic health endpoint - verifies DB connectivity."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "disconnected"
    return HealthResponse(environment=settings.ENVIRONMENT, database=db_status)


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

@router.get("/timeline/categories", response_model=list[FilterOptionOut])
def list_timeline_categories():
    return [FilterOptionOut.model_validate(option) for option in FILTER_OPTIONS]


@router.get("/patients/{patient_id}/timeline", response_model=TimelineResponse)
def get_patient_timeline(
    patient_id: UUID,
    category: TimelineFilter = TimelineFilter.ALL,
    db: Session = Depends(get_db),
    sources: TimelineSources = Depends(get_sources),
):
    """
    Merged medical history for a patient, most recent first.

    Sources that fail to load are reported under `sources` and contribute
    no items; the timeline itself is still returned.
    """
    _require_patient(db, patient_id)

    pipeline, result = run_patient_timeline(sources, patient_id, category)
    filter_task = pipeline.tasks["filter_timeline"]
    if filter_task.status != TaskStatus.SUCCESS:
        logger.error("Timeline for patient %s could not be built: %s", patient_id, result["tasks"])
        raise HTTPException(status_code=500, detail="Timeline could not be built")

    built = pipeline.tasks["build_timeline"].result
    validated = pipeline.tasks["validate_records"].result
    items = filter_task.result["filtered_timeline"]

    log_action(
        db,
        actor="api_user",
        action="read",
        resource_type="PatientTimeline",
        resource_id=patient_id,
        detail={"category": category.value, "items": len(items)},
    )
    db.commit()

    return TimelineResponse(
        patient_id=patient_id,
        category=category,
        status=result["status"],
        total=len(items),
        items=[TimelineItemOut.model_validate(item) for item in items],
        summary=[SummaryCardOut.model_validate(card) for card in built["summary_cards"]],
        sources={key: pipeline.tasks[f"load_{key}"].status.value for key in SOURCE_SCHEMAS},
        skipped=SkippedRecords(
            invalid=validated["invalid_count"],
            undated=built["undated_count"],
        ),
    )


# ---------------------------------------------------------------------------
# Clinical notes
# ---------------------------------------------------------------------------

@router.get("/patients/{patient_id}/notes", response_model=list[NoteResponse])
def list_patient_notes(patient_id: UUID, db: Session = Depends(get_db)):
    _require_patient(db, patient_id)
    return [NoteResponse.model_validate(note) for note in note_service.list_notes(db, patient_id)]


@router.post("/patients/{patient_id}/notes", response_model=NoteResponse, status_code=201)
def create_patient_note(patient_id: UUID, payload: NoteCreate, db: Session = Depends(get_db)):
    _require_patient(db, patient_id)
    try:
        note = note_service.add_note(db, patient_id, payload.content, payload.created_by)
    except note_service.NoteValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return NoteResponse.model_validate(note)


@router.patch("/notes/{note_id}", response_model=NoteResponse)
def update_note(note_id: UUID, payload: NoteUpdate, db: Session = Depends(get_db)):
    try:
        note = note_service.edit_note(db, note_id, payload.content, payload.actor)
    except note_service.NoteValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except note_service.NoteNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Note not found") from exc
    return NoteResponse.model_validate(note)


@router.delete("/notes/{note_id}", status_code=204)
def delete_note(note_id: UUID, actor: str = "api_user", db: Session = Depends(get_db)):
    try:
        note_service.delete_note(db, note_id, actor)
    except note_service.NoteNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Note not found") from exc
    return Response(status_code=204)
