"""
Typed source records feeding the patient timeline.

Each record type mirrors one row shape returned by the record store.
Required vs. optional fields are explicit here so that the normalizer never
has to guess:

- text fields are always strings (a missing value becomes "")
- optional labels and counts are a usable value or None
- date fields are an aware datetime or None (missing or unparseable)

Only the date can make a record unusable; every other field falls back.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a record timestamp into an aware datetime.

    Accepts datetime/date objects and ISO-8601 strings (date-only included).
    Naive values are taken as UTC. Anything else returns None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def text_or_empty(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def optional_text(value: Any) -> str | None:
    """Scalars become strings; None and containers become None."""
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return None
    return str(value)


def optional_count(value: Any) -> int | float | None:
    """Numbers and numeric strings pass through; anything else becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        for cast in (int, float):
            try:
                return cast(value.strip())
            except ValueError:
                continue
    return None


class SourceRecord(BaseModel):
    """Common base: rows are read-only snapshots of the store."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        return text_or_empty(value)

    @field_validator("status", "created_by", mode="before", check_fields=False)
    @classmethod
    def coerce_optional_text(cls, value: Any) -> str | None:
        return optional_text(value)


class SessionRecord(SourceRecord):
    scheduled_date: datetime | None = None
    session_type: str = ""
    duration_minutes: int | float | None = None
    status: str | None = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def parse_scheduled_date(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("session_type", mode="before")
    @classmethod
    def coerce_session_type(cls, value: Any) -> str:
        return text_or_empty(value)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def coerce_duration(cls, value: Any) -> int | float | None:
        return optional_count(value)


class FormTemplateRef(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, value: Any) -> str | None:
        return optional_text(value)


class FormSubmissionRecord(SourceRecord):
    created_at: datetime | None = None
    status: str | None = None
    # The store embeds the joined template under "form_templates"
    form_template: FormTemplateRef | None = Field(
        default=None,
        validation_alias=AliasChoices("form_template", "form_templates"),
    )

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("form_template", mode="before")
    @classmethod
    def drop_unusable_template(cls, value: Any) -> Any:
        if isinstance(value, (Mapping, FormTemplateRef)):
            return value
        return None


class MedicationItemRecord(SourceRecord):
    """One order line item, already carrying its parent order's date and status."""

    order_date: datetime | None = None
    medication_name: str = ""
    quantity: int | float | None = None
    status: str | None = None

    @field_validator("order_date", mode="before")
    @classmethod
    def parse_order_date(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("medication_name", mode="before")
    @classmethod
    def coerce_medication_name(cls, value: Any) -> str:
        return text_or_empty(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, value: Any) -> int | float | None:
        return optional_count(value)


class ClinicalNoteRecord(SourceRecord):
    created_at: datetime | None = None
    content: str = ""
    created_by: str | None = None

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, value: Any) -> str:
        return text_or_empty(value)


class LabResultRecord(SourceRecord):
    result_date: datetime | None = Field(
        default=None, validation_alias=AliasChoices("date", "result_date")
    )
    name: str = ""
    status: str | None = None

    @field_validator("result_date", mode="before")
    @classmethod
    def parse_result_date(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, value: Any) -> str:
        return text_or_empty(value)
