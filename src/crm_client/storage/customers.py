"""Customer store with cascading deletes of dependent records."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, ClassVar

from crm_client.core.datetime_utils import coerce_date, utcnow
from crm_client.core.interfaces import RemoteMirror
from crm_client.core.models import CUSTOMER_STATUSES, Customer
from crm_client.query.search import customer_matches
from crm_client.query.stats import CustomerStats, customer_stats
from crm_client.transport.field_mapping import customer_to_wire

from .memory import Coercer, EntityStore
from .normalize import choice, coerce_amount, coerce_text, normalize_tags

LOGGER = logging.getLogger(__name__)


class CustomerStore(EntityStore[Customer]):
    """Customers keyed by id; deleting one removes its tasks and emails."""

    record_type = Customer
    entity_name = "Customer"
    resource = "customers"
    id_param = "customerId"
    coercers: ClassVar[Mapping[str, Coercer]] = {
        "name": coerce_text,
        "email": coerce_text,
        "phone": coerce_text,
        "company": coerce_text,
        "address": coerce_text,
        "source": coerce_text,
        "status": choice(CUSTOMER_STATUSES, "customer status"),
        "order_value": coerce_amount,
        "tags": normalize_tags,
        "created": coerce_date,
        "last_contact": coerce_date,
    }

    def __init__(
        self,
        initial: Iterable[Customer] = (),
        *,
        dependents: Iterable[EntityStore[Any]] = (),
        mirror: RemoteMirror | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(initial, mirror=mirror, clock=clock)
        self._dependents: list[EntityStore[Any]] = list(dependents)

    def attach_dependent(self, store: EntityStore[Any]) -> None:
        """Register a store whose records reference customers by id."""
        self._dependents.append(store)

    def find_by_email(self, email: str) -> Customer | None:
        """Return the first customer whose email matches case-insensitively."""
        wanted = email.strip().lower()
        for customer in self._records:
            if customer.email.lower() == wanted:
                return customer
        return None

    def filter_customers(
        self, *, status: str | None = None, search: str | None = None
    ) -> list[Customer]:
        """Return customers matching an optional status and search text."""
        query = (search or "").strip().lower()
        return [
            customer
            for customer in self._records
            if (not status or customer.status == status)
            and (not query or customer_matches(customer, query))
        ]

    def stats(self) -> CustomerStats:
        return customer_stats(self._records)

    def _after_delete(self, record: Customer) -> None:
        for store in self._dependents:
            removed = store.remove_where(
                lambda item: getattr(item, "customer_id", None) == record.id
            )
            if removed:
                LOGGER.info(
                    "Removed %d %s record(s) linked to customer %s",
                    len(removed),
                    store.entity_name.lower(),
                    record.id,
                )

    def _to_wire(self, record: Customer, *, include_id: bool) -> dict[str, Any]:
        return customer_to_wire(record, include_id=include_id)


__all__ = ["CustomerStore"]
