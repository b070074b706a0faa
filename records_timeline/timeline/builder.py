"""
Medical timeline builder.

Merges a patient's sessions, form submissions, medication order items,
clinical notes and lab results into one feed, most recent first.

Everything here is a pure function of its inputs: no I/O, no state kept
between calls. A missing collection (None) counts as empty, and a record
without a usable date is left out instead of being sorted arbitrarily.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from records_timeline.schemas.records import (
    ClinicalNoteRecord,
    FormSubmissionRecord,
    LabResultRecord,
    MedicationItemRecord,
    SessionRecord,
)
from records_timeline.timeline.items import (
    CATEGORY_STYLES,
    SummaryCard,
    TimelineCategory,
    TimelineFilter,
    TimelineItem,
)

logger = logging.getLogger(__name__)

NOTE_PREVIEW_LENGTH = 100
TRUNCATION_MARKER = "..."

RecordT = TypeVar("RecordT", bound=BaseModel)
RecordInput = Iterable[BaseModel | Mapping[str, Any]] | None


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------


def coerce_records(model: type[RecordT], rows: RecordInput) -> list[RecordT]:
    """Turn a source collection (records or raw rows) into typed records."""
    records: list[RecordT] = []
    for row in rows or ():
        if isinstance(row, model):
            records.append(row)
            continue
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "Dropping malformed %s row: %d error(s)", model.__name__, exc.error_count()
            )
    return records


def _item(category: TimelineCategory, **fields: Any) -> TimelineItem:
    style = CATEGORY_STYLES[category]
    return TimelineItem(type=category, icon=style.icon, color=style.color, **fields)


# ---------------------------------------------------------------------------
# Normalizers: one record -> zero or one TimelineItem
# ---------------------------------------------------------------------------


def normalize_session(session: SessionRecord) -> TimelineItem | None:
    if session.scheduled_date is None:
        return None
    description = f"{session.session_type} session".strip()
    if session.duration_minutes is not None:
        description = f"{description} ({session.duration_minutes} min)"
    return _item(
        TimelineCategory.APPOINTMENT,
        id=session.id,
        date=session.scheduled_date,
        title="Follow-up Appointment",
        description=description,
        status=session.status,
    )


def normalize_form_submission(submission: FormSubmissionRecord) -> TimelineItem | None:
    if submission.created_at is None:
        return None
    template = submission.form_template
    return _item(
        TimelineCategory.FORM,
        id=submission.id,
        date=submission.created_at,
        title=(template.title if template else None) or "Form Submission",
        description="Form submitted",
        status=submission.status,
    )


def normalize_medication(item: MedicationItemRecord) -> TimelineItem | None:
    if item.order_date is None:
        return None
    quantity = "" if item.quantity is None else str(item.quantity)
    return _item(
        TimelineCategory.MEDICATION,
        id=item.id,
        date=item.order_date,
        title=item.medication_name,
        description=f"Quantity: {quantity}".strip(),
        status=item.status,
    )


def truncate_note(content: str, limit: int = NOTE_PREVIEW_LENGTH) -> str:
    if len(content) > limit:
        return content[:limit] + TRUNCATION_MARKER
    return content


def normalize_note(note: ClinicalNoteRecord) -> TimelineItem | None:
    if note.created_at is None:
        return None
    return _item(
        TimelineCategory.NOTE,
        id=note.id,
        date=note.created_at,
        title="Clinical Note",
        description=truncate_note(note.content),
        created_by=note.created_by,
    )


def normalize_lab_result(result: LabResultRecord) -> TimelineItem | None:
    if result.result_date is None:
        return None
    return _item(
        TimelineCategory.LAB,
        id=result.id,
        date=result.result_date,
        title=result.name,
        description="Test results available",
        status=result.status,
    )


# ---------------------------------------------------------------------------
# Merge / sort / filter
# ---------------------------------------------------------------------------


def normalize_collections(
    sessions: RecordInput = None,
    forms: RecordInput = None,
    medications: RecordInput = None,
    notes: RecordInput = None,
    lab_results: RecordInput = None,
) -> tuple[list[TimelineItem], int]:
    """
    Normalize every source in a fixed order (the tie-break order).

    Returns the items and the number of records left out for lacking a
    usable date.
    """
    candidates = [
        *(normalize_session(r) for r in coerce_records(SessionRecord, sessions)),
        *(normalize_form_submission(r) for r in coerce_records(FormSubmissionRecord, forms)),
        *(normalize_medication(r) for r in coerce_records(MedicationItemRecord, medications)),
        *(normalize_note(r) for r in coerce_records(ClinicalNoteRecord, notes)),
        *(normalize_lab_result(r) for r in coerce_records(LabResultRecord, lab_results)),
    ]
    items = [item for item in candidates if item is not None]
    return items, len(candidates) - len(items)


def sort_timeline(items: Sequence[TimelineItem]) -> list[TimelineItem]:
    """Most recent first; items with equal dates keep their order (sorted() is stable)."""
    return sorted(items, key=lambda item: item.date, reverse=True)


def build_timeline(
    sessions: RecordInput = None,
    forms: RecordInput = None,
    medications: RecordInput = None,
    notes: RecordInput = None,
    lab_results: RecordInput = None,
) -> list[TimelineItem]:
    """
    Build the merged patient timeline, most recent first.

    Returns a new list; the input collections are never modified.
    """
    items, _ = normalize_collections(sessions, forms, medications, notes, lab_results)
    return sort_timeline(items)


def filter_timeline(
    items: Sequence[TimelineItem], selector: TimelineFilter | str = TimelineFilter.ALL
) -> list[TimelineItem]:
    """
    Restrict an already-sorted timeline to one category.

    Raises ValueError for an unknown selector.
    """
    selector = TimelineFilter(selector)
    if selector is TimelineFilter.ALL:
        return list(items)
    category = TimelineCategory(selector.value)
    return [item for item in items if item.type is category]


# ---------------------------------------------------------------------------
# Supporting transforms
# ---------------------------------------------------------------------------


def flatten_order_items(orders: Iterable[Mapping[str, Any]] | None) -> list[dict[str, Any]]:
    """
    Flatten orders with nested line items into medication item rows.

    Every line item inherits its parent order's `order_date` and `status`.
    """
    rows: list[dict[str, Any]] = []
    for order in orders or ():
        for line in order.get("items") or ():
            rows.append(
                {
                    "id": line.get("id"),
                    "order_id": order.get("id"),
                    "order_date": order.get("order_date"),
                    "medication_name": line.get("medication_name"),
                    "quantity": line.get("quantity"),
                    "status": order.get("status"),
                }
            )
    return rows


def summarize_records(
    sessions: Sequence[Any] | None = None,
    forms: Sequence[Any] | None = None,
    medications: Sequence[Any] | None = None,
    lab_results: Sequence[Any] | None = None,
) -> list[SummaryCard]:
    """Record count cards shown above the timeline."""
    return [
        SummaryCard("Appointments", len(sessions or ()), "calendar", "border-blue-500"),
        SummaryCard("Forms", len(forms or ()), "file-text", "border-orange-500"),
        SummaryCard("Medications", len(medications or ()), "pill", "border-red-500"),
        SummaryCard("Lab Results", len(lab_results or ()), "flask-conical", "border-green-500"),
    ]
