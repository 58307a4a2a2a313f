"""Case-insensitive text search across customers, tasks, and emails."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from crm_client.core.models import UNKNOWN_CUSTOMER, Customer, Email, Task


@dataclass(slots=True)
class SearchResults:
    """Independent match lists per entity type."""

    customers: list[Customer] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    emails: list[Email] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.customers) + len(self.tasks) + len(self.emails)


def customer_index(customers: Iterable[Customer]) -> dict[int, str]:
    """Map customer ids to names for weak-reference lookups."""
    return {customer.id: customer.name for customer in customers}


def resolve_customer_name(
    names: Mapping[int, str], customer_id: int | None, fallback: str = ""
) -> str:
    """Return the name for ``customer_id``, tolerating dangling ids.

    A dangling id resolves to ``"Unknown"``. Records without a customer id
    use ``fallback`` (their denormalised name) when one is set.
    """
    if customer_id is None:
        return fallback or UNKNOWN_CUSTOMER
    return names.get(customer_id, UNKNOWN_CUSTOMER)


def _contains(query: str, *values: str | None) -> bool:
    return any(query in (value or "").lower() for value in values)


def customer_matches(customer: Customer, query: str) -> bool:
    return _contains(
        query, customer.name, customer.email, customer.company
    ) or _contains(query, *customer.tags)


def task_matches(task: Task, query: str, names: Mapping[int, str]) -> bool:
    customer_name = resolve_customer_name(names, task.customer_id, task.customer_name)
    return _contains(
        query, task.title, task.description, customer_name, task.assigned_to
    ) or _contains(query, *task.tags)


def email_matches(email: Email, query: str, names: Mapping[int, str]) -> bool:
    customer_name = resolve_customer_name(
        names, email.customer_id, email.customer_name
    )
    return _contains(
        query, email.subject, email.body, customer_name, email.sender, email.to
    )


def global_search(
    query: str,
    customers: Iterable[Customer],
    tasks: Iterable[Task],
    emails: Iterable[Email],
) -> SearchResults:
    """Search every collection; a blank query matches nothing."""
    needle = query.strip().lower()
    if not needle:
        return SearchResults()
    customer_list = list(customers)
    names = customer_index(customer_list)
    return SearchResults(
        customers=[c for c in customer_list if customer_matches(c, needle)],
        tasks=[t for t in tasks if task_matches(t, needle, names)],
        emails=[e for e in emails if email_matches(e, needle, names)],
    )


__all__ = [
    "SearchResults",
    "customer_index",
    "customer_matches",
    "email_matches",
    "global_search",
    "resolve_customer_name",
    "task_matches",
]
