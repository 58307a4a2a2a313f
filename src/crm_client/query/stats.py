"""Aggregate counts computed fresh from the current collections."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from crm_client.core.models import Customer, Email, Task

from .emails import sort_newest_first
from .tasks import classify_urgency, is_due_today, is_overdue


@dataclass(frozen=True, slots=True)
class CustomerStats:
    total: int
    active: int
    leads: int
    inactive: int
    total_revenue: float
    average_revenue: float


# pylint: disable=too-many-instance-attributes
@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    pending: int
    in_progress: int
    completed: int
    overdue: int
    due_today: int
    high: int
    medium: int
    low: int
    by_assignee: dict[str, int] = field(default_factory=dict)
    by_urgency: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class EmailStats:
    total: int
    unread: int
    starred: int
    sent: int
    received: int


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    """Headline numbers plus the most recent tasks and emails."""

    customers: CustomerStats
    tasks: TaskStats
    emails: EmailStats
    recent_tasks: tuple[Task, ...]
    recent_emails: tuple[Email, ...]


def customer_stats(customers: Iterable[Customer]) -> CustomerStats:
    records = list(customers)
    statuses = Counter(customer.status for customer in records)
    revenue = sum(customer.order_value for customer in records)
    return CustomerStats(
        total=len(records),
        active=statuses["Active"],
        leads=statuses["Lead"],
        inactive=statuses["Inactive"],
        total_revenue=revenue,
        average_revenue=revenue / len(records) if records else 0.0,
    )


def task_stats(tasks: Iterable[Task], today: date) -> TaskStats:
    """Count tasks by status, open priority, assignee, and urgency."""
    records = list(tasks)
    statuses = Counter(task.status for task in records)
    open_tasks = [task for task in records if task.status != "Completed"]
    priorities = Counter(task.priority for task in open_tasks)
    return TaskStats(
        total=len(records),
        pending=statuses["Pending"],
        in_progress=statuses["In Progress"],
        completed=statuses["Completed"],
        overdue=sum(1 for task in records if is_overdue(task, today)),
        due_today=sum(1 for task in open_tasks if is_due_today(task, today)),
        high=priorities["High"],
        medium=priorities["Medium"],
        low=priorities["Low"],
        by_assignee=dict(Counter(task.assigned_to for task in records)),
        by_urgency=dict(
            Counter(classify_urgency(task, today).type for task in records)
        ),
    )


def email_stats(emails: Iterable[Email]) -> EmailStats:
    records = list(emails)
    return EmailStats(
        total=len(records),
        unread=sum(1 for email in records if not email.is_read),
        starred=sum(1 for email in records if email.is_starred),
        sent=sum(1 for email in records if email.type == "outgoing"),
        received=sum(1 for email in records if email.type == "incoming"),
    )


def dashboard_summary(
    customers: Iterable[Customer],
    tasks: Iterable[Task],
    emails: Iterable[Email],
    today: date,
    *,
    recent: int = 5,
) -> DashboardSummary:
    task_list = list(tasks)
    email_list = list(emails)
    return DashboardSummary(
        customers=customer_stats(customers),
        tasks=task_stats(task_list, today),
        emails=email_stats(email_list),
        recent_tasks=tuple(task_list[:recent]),
        recent_emails=tuple(sort_newest_first(email_list)[:recent]),
    )


__all__ = [
    "CustomerStats",
    "DashboardSummary",
    "EmailStats",
    "TaskStats",
    "customer_stats",
    "dashboard_summary",
    "email_stats",
    "task_stats",
]
