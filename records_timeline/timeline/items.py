"""Timeline item shape, categories and their display hints."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TimelineCategory(str, Enum):
    APPOINTMENT = "appointment"
    FORM = "form"
    MEDICATION = "medication"
    NOTE = "note"
    LAB = "lab"


class TimelineFilter(str, Enum):
    """Category selector; ALL is the sentinel meaning "no restriction"."""

    ALL = "all"
    APPOINTMENT = "appointment"
    LAB = "lab"
    MEDICATION = "medication"
    FORM = "form"
    NOTE = "note"


@dataclass(frozen=True)
class CategoryStyle:
    icon: str
    color: str


CATEGORY_STYLES: dict[TimelineCategory, CategoryStyle] = {
    TimelineCategory.APPOINTMENT: CategoryStyle(icon="calendar", color="bg-blue-100"),
    TimelineCategory.FORM: CategoryStyle(icon="file-text", color="bg-orange-100"),
    TimelineCategory.MEDICATION: CategoryStyle(icon="pill", color="bg-red-100"),
    TimelineCategory.NOTE: CategoryStyle(icon="sparkles", color="bg-purple-100"),
    TimelineCategory.LAB: CategoryStyle(icon="flask-conical", color="bg-green-100"),
}


@dataclass(frozen=True)
class FilterOption:
    id: TimelineFilter
    label: str
    icon: str | None = None


# Order matches the filter bar above the timeline
FILTER_OPTIONS: tuple[FilterOption, ...] = (
    FilterOption(TimelineFilter.ALL, "All Records"),
    FilterOption(TimelineFilter.APPOINTMENT, "Appointments", "calendar"),
    FilterOption(TimelineFilter.LAB, "Lab Results", "flask-conical"),
    FilterOption(TimelineFilter.MEDICATION, "Medications", "pill"),
    FilterOption(TimelineFilter.FORM, "Forms", "file-text"),
    FilterOption(TimelineFilter.NOTE, "Notes", "sparkles"),
)


@dataclass(frozen=True)
class TimelineItem:
    """
    Display-ready projection of one source record.

    `id` is only unique within its source collection. `date` is always an
    aware datetime and is the sole sort key.
    """

    id: str
    type: TimelineCategory
    date: datetime
    title: str
    description: str
    status: str | None = None
    icon: str = ""
    color: str = ""
    created_by: str | None = None


@dataclass(frozen=True)
class SummaryCard:
    title: str
    count: int
    icon: str
    color: str
