"""Read-only views derived from the in-memory stores."""

from .emails import filter_emails
from .search import SearchResults, global_search, resolve_customer_name
from .stats import (
    DashboardSummary,
    customer_stats,
    dashboard_summary,
    email_stats,
    task_stats,
)
from .tasks import Urgency, classify_urgency, filter_tasks, is_overdue, sort_tasks

__all__ = [
    "DashboardSummary",
    "SearchResults",
    "Urgency",
    "classify_urgency",
    "customer_stats",
    "dashboard_summary",
    "email_stats",
    "filter_emails",
    "filter_tasks",
    "global_search",
    "is_overdue",
    "resolve_customer_name",
    "sort_tasks",
    "task_stats",
]
