"""
Record sources feeding the patient timeline.

Each source is a small named loader with one method, `fetch(patient_id)`,
returning JSON-like rows (ids and timestamps as strings), most recent first,
or None when nothing was loaded. The timeline pipeline receives them as a
`TimelineSources` bundle, so the aggregation never reaches into the
database by itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from records_timeline.config import settings
from records_timeline.models.records import (
    ClinicalSession,
    FormSubmission,
    LabResult,
    Order,
    PatientNote,
)
from records_timeline.services.encryption import NoteCipher, NoteDecryptionError, note_cipher
from records_timeline.timeline.builder import flatten_order_items

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class SessionSource(Protocol):
    def fetch(self, patient_id: UUID) -> list[Row] | None: ...


class FormSubmissionSource(Protocol):
    def fetch(self, patient_id: UUID) -> list[Row] | None: ...


class MedicationSource(Protocol):
    def fetch(self, patient_id: UUID) -> list[Row] | None: ...


class NoteSource(Protocol):
    def fetch(self, patient_id: UUID) -> list[Row] | None: ...


class LabResultSource(Protocol):
    def fetch(self, patient_id: UUID) -> list[Row] | None: ...


@dataclass(frozen=True)
class TimelineSources:
    sessions: SessionSource
    forms: FormSubmissionSource
    medications: MedicationSource
    notes: NoteSource
    lab_results: LabResultSource


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class StaticSource:
    """Serves a fixed list of rows regardless of patient."""

    def __init__(self, rows: list[Row] | None):
        self.rows = rows

    def fetch(self, patient_id: UUID) -> list[Row] | None:
        if self.rows is None:
            return None
        return list(self.rows)


# ---------------------------------------------------------------------------
# SQLAlchemy-backed sources
# ---------------------------------------------------------------------------


class SqlSessionSource:
    def __init__(self, db: Session, limit: int = settings.SESSION_FETCH_LIMIT):
        self.db = db
        self.limit = limit

    def fetch(self, patient_id: UUID) -> list[Row]:
        stmt = (
            select(ClinicalSession)
            .where(ClinicalSession.patient_id == patient_id)
            .order_by(ClinicalSession.scheduled_date.desc())
            .limit(self.limit)
        )
        return [
            {
                "id": str(s.id),
                "scheduled_date": _iso(s.scheduled_date),
                "session_type": s.session_type,
                "duration_minutes": s.duration_minutes,
                "status": s.status,
            }
            for s in self.db.scalars(stmt)
        ]


class SqlFormSubmissionSource:
    def __init__(self, db: Session, limit: int = settings.FORM_FETCH_LIMIT):
        self.db = db
        self.limit = limit

    def fetch(self, patient_id: UUID) -> list[Row]:
        stmt = (
            select(FormSubmission)
            .where(FormSubmission.patient_id == patient_id)
            .order_by(FormSubmission.created_at.desc())
            .limit(self.limit)
        )
        return [
            {
                "id": str(f.id),
                "created_at": _iso(f.created_at),
                "status": f.status,
                "form_templates": {"title": f.form_template.title} if f.form_template else None,
            }
            for f in self.db.scalars(stmt).unique()
        ]


class SqlMedicationSource:
    """Orders joined to their line items, flattened to one row per item."""

    def __init__(self, db: Session, limit: int = settings.ORDER_FETCH_LIMIT):
        self.db = db
        self.limit = limit

    def fetch(self, patient_id: UUID) -> list[Row]:
        stmt = (
            select(Order)
            .where(Order.patient_id == patient_id)
            .order_by(Order.order_date.desc())
            .limit(self.limit)
        )
        orders = [
            {
                "id": str(o.id),
                "order_date": _iso(o.order_date),
                "status": o.status,
                "items": [
                    {
                        "id": str(item.id),
                        "medication_name": item.medication_name,
                        "quantity": item.quantity,
                    }
                    for item in o.items
                ],
            }
            for o in self.db.scalars(stmt)
        ]
        return flatten_order_items(orders)


class SqlNoteSource:
    def __init__(
        self,
        db: Session,
        limit: int = settings.NOTE_FETCH_LIMIT,
        cipher: NoteCipher = note_cipher,
    ):
        self.db = db
        self.limit = limit
        self.cipher = cipher

    def _content(self, note: PatientNote) -> str | None:
        try:
            return self.cipher.decrypt(note.encrypted_content)
        except NoteDecryptionError:
            logger.warning("Note %s could not be decrypted; showing it without a body", note.id)
            return None

    def fetch(self, patient_id: UUID) -> list[Row]:
        stmt = (
            select(PatientNote)
            .where(PatientNote.patient_id == patient_id)
            .order_by(PatientNote.created_at.desc())
            .limit(self.limit)
        )
        return [
            {
                "id": str(n.id),
                "created_at": _iso(n.created_at),
                "content": self._content(n),
                "created_by": n.created_by,
            }
            for n in self.db.scalars(stmt)
        ]


class SqlLabResultSource:
    def __init__(self, db: Session, limit: int = settings.LAB_FETCH_LIMIT):
        self.db = db
        self.limit = limit

    def fetch(self, patient_id: UUID) -> list[Row]:
        stmt = (
            select(LabResult)
            .where(LabResult.patient_id == patient_id)
            .order_by(LabResult.result_date.desc())
            .limit(self.limit)
        )
        return [
            {
                "id": str(lab.id),
                "date": _iso(lab.result_date),
                "name": lab.name,
                "status": lab.status,
            }
            for lab in self.db.scalars(stmt)
        ]


def sql_sources(db: Session) -> TimelineSources:
    return TimelineSources(
        sessions=SqlSessionSource(db),
        forms=SqlFormSubmissionSource(db),
        medications=SqlMedicationSource(db),
        notes=SqlNoteSource(db),
        lab_results=SqlLabResultSource(db),
    )
