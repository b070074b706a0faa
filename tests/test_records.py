"""Tests for source record parsing."""

from datetime import date, datetime, timedelta, timezone

from records_timeline.schemas.records import (
    FormSubmissionRecord,
    LabResultRecord,
    MedicationItemRecord,
    SessionRecord,
    optional_count,
    optional_text,
    parse_timestamp,
)


def test_parse_iso_strings():
    assert parse_timestamp("2025-04-10T09:30:00+00:00") == datetime(2025, 4, 10, 9, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2025-04-10T09:30:00Z") == datetime(2025, 4, 10, 9, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2025-04-10") == datetime(2025, 4, 10, tzinfo=timezone.utc)


def test_naive_values_are_read_as_utc():
    assert parse_timestamp(datetime(2025, 1, 1, 8)).tzinfo == timezone.utc
    assert parse_timestamp(date(2025, 1, 1)) == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_offset_is_preserved():
    parsed = parse_timestamp("2025-04-10T09:30:00-05:00")
    assert parsed.utcoffset() == timedelta(hours=-5)


def test_unusable_values_become_none():
    for value in (None, "", "not a date", "2025-13-45", 1712736000, True, {"at": "2025"}):
        assert parse_timestamp(value) is None


def test_form_template_accepts_store_join_key():
    record = FormSubmissionRecord.model_validate(
        {"id": 7, "created_at": "2025-01-01", "form_templates": {"title": "Intake"}}
    )
    assert record.id == "7"
    assert record.form_template.title == "Intake"


def test_missing_fields_use_fallbacks():
    item = MedicationItemRecord.model_validate({"id": "m1", "medication_name": None})
    assert item.medication_name == ""
    assert item.order_date is None
    assert item.quantity is None

    lab = LabResultRecord.model_validate({"id": "l1", "date": "garbage"})
    assert lab.result_date is None
    assert lab.name == ""


def test_optional_count_keeps_numbers_and_numeric_strings():
    assert optional_count(30) == 30
    assert optional_count(2.5) == 2.5
    assert optional_count("30") == 30
    assert optional_count(" 2.5 ") == 2.5
    for value in (None, True, "long", [30], {"min": 15}):
        assert optional_count(value) is None


def test_optional_text_stringifies_scalars_only():
    assert optional_text("shipped") == "shipped"
    assert optional_text(1) == "1"
    assert optional_text(None) is None
    assert optional_text(["a"]) is None


def test_wrongly_typed_fields_fall_back_instead_of_failing():
    item = MedicationItemRecord.model_validate({"id": "m1", "quantity": 2.5, "status": 3})
    assert item.quantity == 2.5
    assert item.status == "3"

    session = SessionRecord.model_validate({"id": None, "duration_minutes": "30", "status": ["x"]})
    assert session.id == ""
    assert session.duration_minutes == 30
    assert session.status is None

    form = FormSubmissionRecord.model_validate({"id": "f1", "form_templates": "Intake", "status": 0})
    assert form.form_template is None
    assert form.status == "0"

    templated = FormSubmissionRecord.model_validate({"id": "f2", "form_templates": {"title": 12}})
    assert templated.form_template.title == "12"
