"""
Data models for the patient record sources behind the timeline.

- One table per record source (sessions, form submissions, orders and their
  line items, notes, lab results)
- Note bodies stored encrypted (see services.encryption)
- Audit trail for every timeline read and note change

Column types are portable (Uuid, JSON with a JSONB variant) so the same
models run on PostgreSQL and on SQLite in tests.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from records_timeline.models.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Patient
# ---------------------------------------------------------------------------
class Patient(Base):
    __tablename__ = "patients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    status = Column(String(32), default="active")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Sessions (appointments)
# ---------------------------------------------------------------------------
class ClinicalSession(Base):
    __tablename__ = "sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False)
    provider_id = Column(Uuid, nullable=True)
    scheduled_date = Column(DateTime(timezone=True), nullable=False)
    session_type = Column(String(64), default="video", nullable=False)
    duration_minutes = Column(Integer, default=30, nullable=False)
    status = Column(String(32), default="scheduled", nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_sessions_patient_date", "patient_id", "scheduled_date"),)


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------
class FormTemplate(Base):
    __tablename__ = "form_templates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    fields = Column(JSONType, default=list)
    status = Column(String(32), default="draft")
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class FormSubmission(Base):
    __tablename__ = "form_submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=True)
    form_template_id = Column(Uuid, ForeignKey("form_templates.id"), nullable=True)
    responses = Column(JSONType, default=dict)
    status = Column(String(32), default="pending", nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    form_template = relationship("FormTemplate", lazy="joined")

    __table_args__ = (Index("ix_form_submissions_patient", "patient_id"),)


# ---------------------------------------------------------------------------
# Orders and their medication line items
# ---------------------------------------------------------------------------
class Order(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False)
    order_date = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    status = Column(String(32), default="pending", nullable=False)
    total_amount = Column(Numeric(10, 2), default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    items = relationship("OrderItem", back_populates="order", lazy="selectin")

    __table_args__ = (Index("ix_orders_patient_date", "patient_id", "order_date"),)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False)
    medication_name = Column(String(256), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False, default=0)

    order = relationship("Order", back_populates="items")


# ---------------------------------------------------------------------------
# Clinical notes (content encrypted at rest)
# ---------------------------------------------------------------------------
class PatientNote(Base):
    __tablename__ = "patient_notes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False)
    encrypted_content = Column(Text, nullable=False, comment="Fernet-encrypted note body")
    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("ix_patient_notes_patient", "patient_id"),)


# ---------------------------------------------------------------------------
# Lab results
# ---------------------------------------------------------------------------
class LabResult(Base):
    __tablename__ = "lab_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False)
    name = Column(String(256), nullable=False)
    result_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(32), default="pending")


# ---------------------------------------------------------------------------
# Audit Log
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    actor = Column(String(128), nullable=False, comment="User or service identity")
    action = Column(String(64), nullable=False, comment="create | read | update | delete")
    resource_type = Column(String(64), nullable=False)
    resource_id = Column(Uuid, nullable=False)
    detail = Column(JSONType, comment="Context for the action")
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_timestamp", "timestamp"),)
