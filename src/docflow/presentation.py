"""Presentation helpers shared by list and detail views.

Adapters return projects in no guaranteed order; sorting and filtering are
the caller's policy and live here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from docflow.models import Project, ProjectType, ensure_utc

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class SortKey(str, Enum):
    """Sort orders offered by project lists."""

    DATE = "date"
    NAME = "name"
    TYPE = "type"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_date(timestamp: datetime | str, now: datetime | None = None) -> str:
    """Render a timestamp relative to now.

    Under a week the result is relative ("Just now", "5 minutes ago",
    "1 day ago"); older timestamps render as "Mar 4", with the year appended
    when it differs from the current one.

    Args:
        timestamp: Datetime or ISO-8601 string; naive values are taken as UTC
        now: Reference time, defaults to the current time
    """
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    timestamp = ensure_utc(timestamp)
    now = now or datetime.now(timezone.utc)

    seconds = (now - timestamp).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{_plural(minutes, 'minute')} ago"
    if hours < 24:
        return f"{_plural(hours, 'hour')} ago"
    if days < 7:
        return f"{_plural(days, 'day')} ago"

    label = f"{_MONTHS[timestamp.month - 1]} {timestamp.day}"
    if timestamp.year != now.year:
        label = f"{label}, {timestamp.year}"
    return label


def sort_projects(projects: Iterable[Project], by: SortKey | str = SortKey.DATE) -> list[Project]:
    """Sort projects for display.

    ``date`` is newest first by updatedAt; ``name`` and ``type`` are ascending.
    """
    key = SortKey(by)
    if key is SortKey.NAME:
        return sorted(projects, key=lambda p: p.title.casefold())
    if key is SortKey.TYPE:
        return sorted(projects, key=lambda p: p.type.value)
    return sorted(projects, key=lambda p: ensure_utc(p.updated_at), reverse=True)


def filter_projects(
    projects: Iterable[Project],
    query: str = "",
    project_type: ProjectType | str | None = None,
) -> list[Project]:
    """Filter by a case-insensitive search and an optional type.

    The search matches the title or the description. A type of None or
    ``"all"`` keeps every type.
    """
    needle = query.casefold()
    wanted = None
    if project_type is not None and project_type != "all":
        wanted = ProjectType(project_type)

    result = []
    for project in projects:
        if needle and needle not in project.title.casefold() \
                and needle not in project.description.casefold():
            continue
        if wanted is not None and project.type != wanted:
            continue
        result.append(project)
    return result
