"""Urgency classification, filtering, and ordering of tasks."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date

from crm_client.core.datetime_utils import days_between
from crm_client.core.models import Customer, Task

from .search import customer_index, task_matches

PRIORITY_WEIGHTS: Mapping[str, int] = {"High": 3, "Medium": 2, "Low": 1}

STATUS_FILTERS: Mapping[str, str] = {
    "pending": "Pending",
    "in-progress": "In Progress",
    "completed": "Completed",
}
FILTER_OPTIONS: tuple[str, ...] = (
    "all",
    "pending",
    "in-progress",
    "completed",
    "overdue",
    "due-today",
)


@dataclass(frozen=True, slots=True)
class Urgency:
    """Derived urgency of a task relative to a given day."""

    type: str
    label: str
    level: str


def _plural_days(count: int) -> str:
    return f"{count} day{'' if count == 1 else 's'}"


def classify_urgency(task: Task, today: date) -> Urgency:
    """Return how pressing ``task`` is relative to ``today``."""
    if task.status == "Completed":
        return Urgency("completed", "Completed", "low")
    if task.due_date is None:
        return Urgency("normal", "No due date", "low")

    diff = days_between(today, task.due_date)
    if diff < 0:
        return Urgency("overdue", f"{_plural_days(abs(diff))} overdue", "critical")
    if diff == 0:
        return Urgency("due-today", "Due today", "high")
    if diff == 1:
        return Urgency("due-tomorrow", "Due tomorrow", "medium")
    if diff <= 3:
        return Urgency("due-soon", f"Due in {diff} days", "medium")
    return Urgency("normal", f"Due in {diff} days", "low")


def is_overdue(task: Task, today: date) -> bool:
    """Due strictly before ``today`` and not completed."""
    return (
        task.due_date is not None
        and task.due_date < today
        and task.status != "Completed"
    )


def is_due_today(task: Task, today: date) -> bool:
    return task.due_date == today


def sort_tasks(tasks: Iterable[Task], today: date) -> list[Task]:
    """Overdue first, then higher priority, then earlier due date."""
    return sorted(
        tasks,
        key=lambda task: (
            not is_overdue(task, today),
            -PRIORITY_WEIGHTS.get(task.priority, 0),
            task.due_date or date.max,
        ),
    )


def filter_tasks(
    tasks: Iterable[Task],
    today: date,
    *,
    status: str = "all",
    priority: str = "all",
    assignee: str = "all",
    search: str = "",
    customers: Iterable[Customer] = (),
) -> list[Task]:
    """Apply the status, priority, assignee, and search filters, then sort.

    ``status`` is one of :data:`FILTER_OPTIONS`. ``due-today`` matches any
    status while ``overdue`` excludes completed tasks. All filters combine
    with AND semantics.
    """
    if status not in FILTER_OPTIONS:
        raise ValueError(f"Unknown task filter: {status}")
    query = search.strip().lower()
    names = customer_index(customers)

    def _keep(task: Task) -> bool:
        if status in STATUS_FILTERS and task.status != STATUS_FILTERS[status]:
            return False
        if status == "overdue" and not is_overdue(task, today):
            return False
        if status == "due-today" and not is_due_today(task, today):
            return False
        if priority != "all" and task.priority != priority:
            return False
        if assignee != "all" and task.assigned_to != assignee:
            return False
        return not query or task_matches(task, query, names)

    return sort_tasks((task for task in tasks if _keep(task)), today)


__all__ = [
    "FILTER_OPTIONS",
    "PRIORITY_WEIGHTS",
    "Urgency",
    "classify_urgency",
    "filter_tasks",
    "is_due_today",
    "is_overdue",
    "sort_tasks",
]
