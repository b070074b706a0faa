"""Clinical note management: add, edit, delete and list a patient's notes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from records_timeline.models.records import PatientNote
from records_timeline.services.audit import log_action
from records_timeline.services.encryption import NoteCipher, NoteDecryptionError, note_cipher

logger = logging.getLogger(__name__)


class NoteValidationError(ValueError):
    pass


class NoteNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class NoteView:
    id: UUID
    patient_id: UUID
    content: str
    created_by: str
    created_at: datetime
    updated_at: datetime | None


def _clean_content(content: str) -> str:
    cleaned = (content or "").strip()
    if not cleaned:
        raise NoteValidationError("Note cannot be empty")
    return cleaned


def _view(note: PatientNote, cipher: NoteCipher) -> NoteView:
    try:
        content = cipher.decrypt(note.encrypted_content)
    except NoteDecryptionError:
        logger.warning("Note %s could not be decrypted", note.id)
        content = ""
    return NoteView(
        id=note.id,
        patient_id=note.patient_id,
        content=content,
        created_by=note.created_by,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


def _get_note(db: Session, note_id: UUID) -> PatientNote:
    note = db.get(PatientNote, note_id)
    if note is None:
        raise NoteNotFoundError(f"Note {note_id} not found")
    return note


def list_notes(db: Session, patient_id: UUID, cipher: NoteCipher = note_cipher) -> list[NoteView]:
    stmt = (
        select(PatientNote)
        .where(PatientNote.patient_id == patient_id)
        .order_by(PatientNote.created_at.desc())
    )
    return [_view(note, cipher) for note in db.scalars(stmt)]


def add_note(
    db: Session,
    patient_id: UUID,
    content: str,
    created_by: str,
    cipher: NoteCipher = note_cipher,
) -> NoteView:
    note = PatientNote(
        patient_id=patient_id,
        encrypted_content=cipher.encrypt(_clean_content(content)),
        created_by=created_by,
    )
    db.add(note)
    db.flush()
    log_action(
        db,
        actor=created_by,
        action="create",
        resource_type="PatientNote",
        resource_id=note.id,
        detail={"patient_id": str(patient_id)},
    )
    db.commit()
    return _view(note, cipher)


def edit_note(
    db: Session,
    note_id: UUID,
    content: str,
    actor: str,
    cipher: NoteCipher = note_cipher,
) -> NoteView:
    note = _get_note(db, note_id)
    cleaned = _clean_content(content)
    note.encrypted_content = cipher.encrypt(cleaned)
    db.flush()
    log_action(db, actor=actor, action="update", resource_type="PatientNote", resource_id=note.id)
    db.commit()
    return _view(note, cipher)


def delete_note(db: Session, note_id: UUID, actor: str) -> None:
    note = _get_note(db, note_id)
    db.delete(note)
    log_action(db, actor=actor, action="delete", resource_type="PatientNote", resource_id=note_id)
    db.commit()
