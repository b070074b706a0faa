"""
Patient timeline pipeline.

Five independent source fetches feed one aggregation:

    load_sessions, load_forms, load_medications, load_notes, load_lab_results
        -> validate_records -> build_timeline -> filter_timeline

validate_records runs with the ALL_DONE trigger rule: a failed fetch leaves
its collection absent, which the timeline treats as empty.
"""

from __future__ import annotations

import logging
from typing import Any

from records_timeline.etl.dag import DAG, TriggerRule
from records_timeline.schemas.sources import (
    FORM_SUBMISSION_ROW_SCHEMA,
    LAB_RESULT_ROW_SCHEMA,
    MEDICATION_ITEM_ROW_SCHEMA,
    NOTE_ROW_SCHEMA,
    SESSION_ROW_SCHEMA,
)
from records_timeline.services.sources import TimelineSources
from records_timeline.services.validation import partition_rows
from records_timeline.timeline.builder import (
    filter_timeline,
    normalize_collections,
    sort_timeline,
    summarize_records,
)
from records_timeline.timeline.items import TimelineFilter

logger = logging.getLogger(__name__)

# context key -> row schema, in timeline tie-break order
SOURCE_SCHEMAS: dict[str, dict] = {
    "sessions": SESSION_ROW_SCHEMA,
    "forms": FORM_SUBMISSION_ROW_SCHEMA,
    "medications": MEDICATION_ITEM_ROW_SCHEMA,
    "notes": NOTE_ROW_SCHEMA,
    "lab_results": LAB_RESULT_ROW_SCHEMA,
}


# ---------------------------------------------------------------------------
# Pipeline steps (each receives and returns a context dict)
# ---------------------------------------------------------------------------


def _make_loader(key: str, sources: TimelineSources):
    source = getattr(sources, key)

    def load(context: dict[str, Any]) -> dict[str, Any]:
        rows = source.fetch(context["patient_id"])
        count = len(rows) if rows is not None else 0
        logger.info("Fetched %d %s rows", count, key)
        return {key: rows, f"{key}_fetched_count": count}

    load.__name__ = f"load_{key}"
    return load


def validate_records(context: dict[str, Any]) -> dict[str, Any]:
    """
    Check every fetched row against its source schema.

    Rows that are not objects are dropped; fields with unusable values are
    cleared so the record still shows with its fallbacks. A source that
    never loaded stays absent rather than failing the run.
    """
    result: dict[str, Any] = {"invalid_records": [], "repaired_records": []}
    for key, schema in SOURCE_SCHEMAS.items():
        usable, invalid, repaired = partition_rows(context.get(key), schema)
        result[f"valid_{key}"] = usable
        result["invalid_records"].extend({"source": key, **entry} for entry in invalid)
        result["repaired_records"].extend({"source": key, **entry} for entry in repaired)

    result["invalid_count"] = len(result["invalid_records"])
    result["repaired_count"] = len(result["repaired_records"])
    if result["invalid_count"]:
        logger.warning("Validation dropped %d malformed rows", result["invalid_count"])
    if result["repaired_count"]:
        logger.info("Validation cleared bad fields on %d rows", result["repaired_count"])
    return result


def build(context: dict[str, Any]) -> dict[str, Any]:
    """Normalize and merge every source into one descending timeline."""
    collections = {key: context.get(f"valid_{key}", []) for key in SOURCE_SCHEMAS}
    items, undated_count = normalize_collections(**collections)
    timeline = sort_timeline(items)
    if undated_count:
        logger.info("Left out %d records without a usable date", undated_count)

    summary = summarize_records(
        sessions=collections["sessions"],
        forms=collections["forms"],
        medications=collections["medications"],
        lab_results=collections["lab_results"],
    )
    return {
        "timeline": timeline,
        "summary_cards": summary,
        "timeline_count": len(timeline),
        "undated_count": undated_count,
    }


def filter_by_category(context: dict[str, Any]) -> dict[str, Any]:
    category = context.get("category", TimelineFilter.ALL)
    items = filter_timeline(context["timeline"], category)
    return {"filtered_timeline": items, "filtered_count": len(items)}


# ---------------------------------------------------------------------------
# Pipeline factory
# ---------------------------------------------------------------------------


def build_patient_timeline_pipeline(sources: TimelineSources) -> DAG:
    """Construct the patient timeline DAG over the given record sources."""
    dag = DAG("patient_timeline")
    load_tasks = []
    for key in SOURCE_SCHEMAS:
        task_name = f"load_{key}"
        dag.add_task(task_name, _make_loader(key, sources))
        load_tasks.append(task_name)

    dag.add_task(
        "validate_records",
        validate_records,
        depends_on=load_tasks,
        trigger_rule=TriggerRule.ALL_DONE,
    )
    dag.add_task("build_timeline", build, depends_on=["validate_records"])
    dag.add_task("filter_timeline", filter_by_category, depends_on=["build_timeline"])
    return dag


def run_patient_timeline(
    sources: TimelineSources,
    patient_id: Any,
    category: TimelineFilter | str = TimelineFilter.ALL,
) -> tuple[DAG, dict[str, Any]]:
    """Build and run the pipeline; returns the DAG (for task results) and its summary."""
    pipeline = build_patient_timeline_pipeline(sources)
    summary = pipeline.run({"patient_id": patient_id, "category": category})
    return pipeline, summary
