"""
JSON Schema validation for fetched source rows.

All errors for a row are collected rather than stopping at the first one,
and a bad row never stops the rest of the batch. Only a row that is not an
object is rejected; a bad field is cleared so its fallback applies.
"""

from typing import Any

import jsonschema


def validate_against_schema(data: Any, schema: dict[str, Any]) -> list[str]:
    """
    Validate a value against a JSON schema.
    Returns a list of error messages (empty list = valid).
    """
    validator = jsonschema.Draft7Validator(schema)
    return [error.message for error in validator.iter_errors(data)]


def partition_rows(
    rows: list[Any] | None, schema: dict[str, Any]
) -> tuple[list[dict[str, Any]], list[dict[str, Any]], list[dict[str, Any]]]:
    """
    Split rows into (usable, invalid, repaired).

    usable rows include repaired ones, whose offending top-level fields are
    set to None. invalid and repaired entries carry their error messages.
    """
    validator = jsonschema.Draft7Validator(schema)
    usable, invalid, repaired = [], [], []
    for row in rows or []:
        errors = list(validator.iter_errors(row))
        if not errors:
            usable.append(row)
            continue

        messages = [error.message for error in errors]
        if not isinstance(row, dict) or any(not error.path for error in errors):
            row_id = row.get("id") if isinstance(row, dict) else None
            invalid.append({"id": row_id, "errors": messages})
            continue

        fields = sorted({str(error.path[0]) for error in errors})
        usable.append({**row, **{name: None for name in fields}})
        repaired.append({"id": row.get("id"), "fields": fields, "errors": messages})
    return usable, invalid, repaired
