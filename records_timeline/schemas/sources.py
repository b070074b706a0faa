"""
JSON schemas for rows fetched from the record store.

These are deliberately permissive: a missing field is not an error (the
timeline substitutes a fallback for it), and neither is a number where text
is expected. A row that is not an object is rejected outright; a field with
an unusable value (a list where a count belongs, a negative quantity) is
cleared so the fallback applies to it.
"""

_ID = {"type": ["string", "integer", "null"]}
_TEXT = {"type": ["string", "number", "boolean", "null"]}
_TIMESTAMP = {
    "type": ["string", "null"],
    "description": "ISO 8601 timestamp; unparseable values are dropped later.",
}
_COUNT = {"type": ["number", "string", "null"], "minimum": 0}
_TEMPLATE_REF = {"type": ["object", "null"], "properties": {"title": _TEXT}}


SESSION_ROW_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Session row",
    "type": "object",
    "properties": {
        "id": _ID,
        "scheduled_date": _TIMESTAMP,
        "session_type": _TEXT,
        "duration_minutes": _COUNT,
        "status": _TEXT,
    },
}


FORM_SUBMISSION_ROW_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Form submission row",
    "type": "object",
    "properties": {
        "id": _ID,
        "created_at": _TIMESTAMP,
        "status": _TEXT,
        "form_templates": _TEMPLATE_REF,
        "form_template": _TEMPLATE_REF,
    },
}


MEDICATION_ITEM_ROW_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Medication order item row",
    "description": "Order line item flattened with its parent order's date and status.",
    "type": "object",
    "properties": {
        "id": _ID,
        "order_id": _ID,
        "order_date": _TIMESTAMP,
        "medication_name": _TEXT,
        "quantity": _COUNT,
        "status": _TEXT,
    },
}


NOTE_ROW_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Clinical note row",
    "type": "object",
    "properties": {
        "id": _ID,
        "created_at": _TIMESTAMP,
        "content": _TEXT,
        "created_by": _TEXT,
    },
}


LAB_RESULT_ROW_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Lab result row",
    "type": "object",
    "properties": {
        "id": _ID,
        "date": _TIMESTAMP,
        "name": _TEXT,
        "status": _TEXT,
    },
}
