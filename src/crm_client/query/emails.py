"""Mailbox views over the email store."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime

from crm_client.core.datetime_utils import coerce_datetime
from crm_client.core.models import Customer, Email

from .search import customer_index, email_matches

_EPOCH = datetime.min.replace(tzinfo=UTC)

VIEW_PREDICATES: Mapping[str, Callable[[Email], bool]] = {
    "all": lambda email: True,
    "unread": lambda email: not email.is_read,
    "starred": lambda email: email.is_starred,
    "sent": lambda email: email.type == "outgoing",
    "received": lambda email: email.type == "incoming",
}


def _sent_at(email: Email) -> datetime:
    # Seed records may carry naive timestamps.
    return coerce_datetime(email.timestamp) or _EPOCH


def sort_newest_first(emails: Iterable[Email]) -> list[Email]:
    return sorted(emails, key=_sent_at, reverse=True)


def filter_emails(
    emails: Iterable[Email],
    *,
    view: str = "all",
    search: str = "",
    customers: Iterable[Customer] = (),
) -> list[Email]:
    """Return emails in ``view`` matching ``search``, newest first."""
    try:
        predicate = VIEW_PREDICATES[view]
    except KeyError as exc:
        raise ValueError(f"Unknown email view: {view}") from exc
    query = search.strip().lower()
    names = customer_index(customers)
    return sort_newest_first(
        email
        for email in emails
        if predicate(email) and (not query or email_matches(email, query, names))
    )


__all__ = ["VIEW_PREDICATES", "filter_emails", "sort_newest_first"]
