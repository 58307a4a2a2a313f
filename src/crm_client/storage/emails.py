"""Mailbox view and outgoing email queue."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar

from crm_client.core.datetime_utils import coerce_datetime
from crm_client.core.models import (
    EMAIL_STATUSES,
    EMAIL_TYPES,
    Email,
    EmailChanges,
    QueuedEmail,
)
from crm_client.core.results import OperationResult

from .memory import Coercer, EntityStore
from .normalize import (
    choice,
    coerce_attachments,
    coerce_optional_id,
    coerce_text,
)

LOGGER = logging.getLogger(__name__)

_COMMON_COERCERS: Mapping[str, Coercer] = {
    "to": coerce_text,
    "cc": coerce_text,
    "bcc": coerce_text,
    "subject": coerce_text,
    "body": coerce_text,
    "customer_id": coerce_optional_id,
    "customer_name": coerce_text,
    "attachments": coerce_attachments,
}


class EmailStore(EntityStore[Email]):
    """Emails shown newest first. Emails have no database mirror."""

    record_type = Email
    entity_name = "Email"
    coercers: ClassVar[Mapping[str, Coercer]] = {
        **_COMMON_COERCERS,
        "sender": coerce_text,
        "thread": coerce_text,
        "type": choice(EMAIL_TYPES, "email type"),
        "status": choice(EMAIL_STATUSES, "email status"),
        "timestamp": coerce_datetime,
        "is_read": bool,
        "is_starred": bool,
    }

    def add_local(self, data: Mapping[str, Any]) -> OperationResult[Email]:
        """Record an email without any remote side effect."""
        return self._add_local(data)

    def mark_read(self, email_id: int, is_read: bool = True) -> OperationResult[Email]:
        changes: EmailChanges = {"is_read": is_read}
        return self._update_local(email_id, changes)

    def toggle_star(self, email_id: int) -> OperationResult[Email]:
        email = self.find(email_id)
        if email is None:
            return OperationResult.fail(f"Email {email_id} not found")
        changes: EmailChanges = {"is_starred": not email.is_starred}
        return self._update_local(email_id, changes)

    def delete_local(self, email_id: int) -> OperationResult[Email]:
        return self._delete_local(email_id)

    def find_by_thread(self, thread: str) -> list[Email]:
        return self.filter(lambda email: email.thread == thread)

    def _stamp(self, values: dict[str, Any]) -> None:
        if not values.get("timestamp"):
            values["timestamp"] = self._clock()

    def _insert(self, record: Email) -> None:
        self._records.insert(0, record)


class EmailQueue(EntityStore[QueuedEmail]):
    """Drafts waiting to be sent in bulk."""

    record_type = QueuedEmail
    entity_name = "Queued email"
    coercers: ClassVar[Mapping[str, Coercer]] = {
        **_COMMON_COERCERS,
        "queued_at": coerce_datetime,
    }

    def queue(self, data: Mapping[str, Any]) -> OperationResult[QueuedEmail]:
        """Append a draft, assigning the next queue id and ``queued_at``."""
        result = self._add_local(data)
        if result.value is not None:
            LOGGER.info("Queued email %s to %s", result.value.id, result.value.to)
        return result

    def retain(self, ids: Iterable[int]) -> None:
        """Keep only the drafts whose id is in ``ids``."""
        keep = set(ids)
        self.remove_where(lambda draft: draft.id not in keep)

    def clear(self) -> None:
        self.remove_where(lambda _draft: True)

    def _stamp(self, values: dict[str, Any]) -> None:
        values["queued_at"] = self._clock()


__all__ = ["EmailQueue", "EmailStore"]
