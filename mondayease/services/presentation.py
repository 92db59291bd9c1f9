"""
Dashboard summaries computed from member tasks.

Status buckets, stats, kanban grouping and a deadline timeline. All
functions are pure and work on MemberTask lists.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any

from mondayease.services.tasks import MemberTask, TaskColumnValue

DONE_COLOR = "#01cb72"
STUCK_COLOR = "#fb275d"
WORKING_COLOR = "#ffcd03"
DEFAULT_KANBAN_COLOR = "#C4C4C4"
NO_STATUS = "No Status"

STATUS_TYPES = ("status", "color")


def status_bucket(text: str | None) -> str:
    """Classify status text as done, stuck, in_progress or other."""
    status = (text or "").lower()
    if "done" in status or "complete" in status:
        return "done"
    if "stuck" in status or "block" in status:
        return "stuck"
    if "progress" in status or "working" in status:
        return "in_progress"
    return "other"


_BUCKET_COLORS = {
    "done": DONE_COLOR,
    "stuck": STUCK_COLOR,
    "in_progress": WORKING_COLOR,
}


def status_color(text: str | None, label_color: str | None = None) -> str | None:
    """Badge color for a status; the column's own label color wins."""
    if label_color:
        return label_color
    return _BUCKET_COLORS.get(status_bucket(text))


def status_column(task: MemberTask) -> TaskColumnValue | None:
    for cv in task.column_values:
        if cv.type in STATUS_TYPES:
            return cv
    return None


def task_stats(tasks: Sequence[MemberTask]) -> dict[str, int]:
    stats = {"total": len(tasks), "done": 0, "stuck": 0, "in_progress": 0, "other": 0}
    for task in tasks:
        cv = status_column(task)
        stats[status_bucket(cv.text if cv else None)] += 1
    return stats


def kanban_columns(tasks: Sequence[MemberTask]) -> list[dict[str, Any]]:
    """Group tasks by status text in first-seen order."""
    groups: dict[str, dict[str, Any]] = {}
    for task in tasks:
        cv = status_column(task)
        status = (cv.text if cv else None) or NO_STATUS
        if status not in groups:
            color = status_color(status, cv.color) if cv and cv.text else None
            groups[status] = {
                "status": status,
                "color": color or DEFAULT_KANBAN_COLOR,
                "tasks": [],
            }
        groups[status]["tasks"].append(task)
    return list(groups.values())


# =============================================================================
# Timeline
# =============================================================================


def week_start(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


def _task_date(task: MemberTask, column_id: str) -> date | None:
    cv = task.column(column_id)
    if cv is None or not cv.text:
        return None
    try:
        return date.fromisoformat(cv.text.strip()[:10])
    except ValueError:
        return None


def _date_column_id(tasks: Sequence[MemberTask]) -> str | None:
    for task in tasks:
        for cv in task.column_values:
            if cv.type == "date":
                return cv.id
    return None


def timeline_sections(
    tasks: Sequence[MemberTask],
    today: date,
) -> list[dict[str, Any]] | None:
    """
    Bucket tasks by deadline.

    Sections, in order: overdue, this-week, next-week, one week-of-<iso>
    section per later week, then no-deadline. Empty sections are left
    out. Returns None when tasks exist but none has a date column.
    """
    if not tasks:
        return []
    column_id = _date_column_id(tasks)
    if column_id is None:
        return None

    this_week = week_start(today)
    next_week = this_week + timedelta(days=7)
    after_next = this_week + timedelta(days=14)

    fixed: dict[str, list[tuple[date, MemberTask]]] = {
        "overdue": [],
        "this-week": [],
        "next-week": [],
    }
    later: dict[date, list[tuple[date, MemberTask]]] = {}
    no_deadline: list[MemberTask] = []

    for task in tasks:
        due = _task_date(task, column_id)
        if due is None:
            no_deadline.append(task)
        elif due < this_week:
            fixed["overdue"].append((due, task))
        elif due < next_week:
            fixed["this-week"].append((due, task))
        elif due < after_next:
            fixed["next-week"].append((due, task))
        else:
            later.setdefault(week_start(due), []).append((due, task))

    labels = {"overdue": "Overdue", "this-week": "This Week", "next-week": "Next Week"}
    sections = []
    for key, entries in fixed.items():
        if entries:
            sections.append(_section(key, labels[key], entries))
    for start in sorted(later):
        sections.append(
            _section(f"week-of-{start.isoformat()}", f"Week of {start:%b %d}", later[start])
        )
    if no_deadline:
        sections.append({"key": "no-deadline", "label": "No Deadline", "tasks": no_deadline})
    return sections


def _section(key: str, label: str, entries: list[tuple[date, MemberTask]]) -> dict[str, Any]:
    ordered = sorted(entries, key=lambda e: e[0])
    return {"key": key, "label": label, "tasks": [task for _, task in ordered]}


def task_summary(tasks: Sequence[MemberTask], today: date) -> dict[str, Any]:
    return {
        "stats": task_stats(tasks),
        "kanban": kanban_columns(tasks),
        "timeline": timeline_sections(tasks, today),
    }
