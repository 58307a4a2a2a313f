"""Generic in-memory record store with best-effort remote mirroring."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import fields, replace
from datetime import date, datetime
from typing import Any, ClassVar, Generic, Protocol, TypeVar

from crm_client.core.datetime_utils import utcnow
from crm_client.core.interfaces import RecordSource, RemoteMirror
from crm_client.core.models import SyncOperation
from crm_client.core.results import OperationResult
from crm_client.transport.api_client import ApiError
from crm_client.transport.field_mapping import normalize_inbound

LOGGER = logging.getLogger(__name__)


class Identified(Protocol):
    id: int


RecordT = TypeVar("RecordT", bound=Identified)
Coercer = Callable[[Any], Any]


class EntityStore(Generic[RecordT]):
    """Owns one collection of records and mirrors mutations remotely.

    Local state is authoritative: mutations apply synchronously, then a
    remote mirror is attempted when the caller reports the backend as
    connected. The mirror's outcome never changes the returned result.

    Ids are issued as one more than the highest id ever seen by the store,
    so they are never reused after a delete.
    """

    record_type: ClassVar[type]
    entity_name: ClassVar[str] = "Record"
    resource: ClassVar[str | None] = None
    id_param: ClassVar[str] = "id"
    coercers: ClassVar[Mapping[str, Coercer]] = {}

    def __init__(
        self,
        initial: Iterable[RecordT] = (),
        *,
        mirror: RemoteMirror | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._records: list[RecordT] = list(initial)
        self._mirror = mirror
        self._clock = clock
        self._last_id = max((record.id for record in self._records), default=0)

    # -- reads --------------------------------------------------------------

    @property
    def items(self) -> tuple[RecordT, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RecordT]:
        return iter(tuple(self._records))

    def find(self, entity_id: int) -> RecordT | None:
        """Return the record with ``entity_id`` or ``None``."""
        for record in self._records:
            if record.id == entity_id:
                return record
        return None

    def filter(self, predicate: Callable[[RecordT], bool]) -> list[RecordT]:
        """Return records matching ``predicate`` in store order."""
        return [record for record in self._records if predicate(record)]

    def next_id(self) -> int:
        current_max = max((record.id for record in self._records), default=0)
        return max(current_max, self._last_id) + 1

    def today(self) -> date:
        return self._clock().date()

    # -- mutations ----------------------------------------------------------

    async def add(
        self, data: Mapping[str, Any], *, connected: bool = False
    ) -> OperationResult[RecordT]:
        """Create a record from ``data`` and mirror it when connected."""
        result = self._add_local(data)
        if result.success and result.value is not None:
            await self._submit(self._create_operation(result.value), connected)
        return result

    async def update(
        self, entity_id: int, changes: Mapping[str, Any], *, connected: bool = False
    ) -> OperationResult[RecordT]:
        """Merge ``changes`` into a record (last write wins)."""
        result = self._update_local(entity_id, changes)
        if result.success and result.value is not None:
            await self._submit(self._update_operation(result.value), connected)
        return result

    async def delete(
        self, entity_id: int, *, connected: bool = False
    ) -> OperationResult[RecordT]:
        """Remove a record and return it as it was before removal."""
        result = self._delete_local(entity_id)
        if result.success:
            await self._submit(
                SyncOperation(
                    resource=self.resource or "",
                    action="delete",
                    entity_id=entity_id,
                    query={self.id_param: entity_id},
                ),
                connected,
            )
        return result

    def remove_where(self, predicate: Callable[[RecordT], bool]) -> list[RecordT]:
        """Drop matching records locally and return them."""
        removed = [record for record in self._records if predicate(record)]
        if removed:
            self._records = [
                record for record in self._records if not predicate(record)
            ]
        return removed

    def replace_all(self, records: Iterable[RecordT]) -> None:
        """Swap the whole collection, keeping the id high-water mark."""
        self._records = list(records)
        self._last_id = max(
            self._last_id,
            max((record.id for record in self._records), default=0),
        )

    async def load_from_remote(
        self, source: RecordSource
    ) -> OperationResult[list[RecordT]]:
        """Replace local state with the backend's copy of the collection."""
        if self.resource is None:
            return OperationResult.fail(
                f"{self.entity_name} records are not stored remotely"
            )
        try:
            rows = await source.list_records(self.resource)
            records = [self._from_wire(row) for row in rows]
        except ApiError as exc:
            LOGGER.error("Error loading %s from database: %s", self.resource, exc)
            return OperationResult.fail(str(exc))
        except Exception as exc:  # noqa: BLE001 - reported through the result
            LOGGER.exception("Malformed %s record from database", self.resource)
            return OperationResult.fail(str(exc))
        self.replace_all(records)
        LOGGER.info("Loaded %d %s from database", len(records), self.resource)
        return OperationResult.ok(records)

    # -- local primitives ---------------------------------------------------

    def _add_local(self, data: Mapping[str, Any]) -> OperationResult[RecordT]:
        try:
            values = dict(data)
            values.pop("id", None)
            self._stamp(values)
            record = self._build(values, self.next_id())
        except Exception as exc:  # noqa: BLE001 - reported through the result
            LOGGER.exception("Error adding %s", self.entity_name.lower())
            return OperationResult.fail(str(exc))
        self._last_id = max(self._last_id, record.id)
        self._insert(record)
        LOGGER.debug("Added %s %s", self.entity_name.lower(), record.id)
        return OperationResult.ok(record)

    def _update_local(
        self, entity_id: int, changes: Mapping[str, Any]
    ) -> OperationResult[RecordT]:
        index = self._index_of(entity_id)
        if index is None:
            return OperationResult.fail(f"{self.entity_name} {entity_id} not found")
        try:
            values = self._coerce_fields(
                {key: value for key, value in changes.items() if key != "id"}
            )
            updated = replace(self._records[index], **values)
        except Exception as exc:  # noqa: BLE001 - reported through the result
            LOGGER.exception(
                "Error updating %s %s", self.entity_name.lower(), entity_id
            )
            return OperationResult.fail(str(exc))
        self._records[index] = updated
        return OperationResult.ok(updated)

    def _delete_local(self, entity_id: int) -> OperationResult[RecordT]:
        index = self._index_of(entity_id)
        if index is None:
            return OperationResult.fail(f"{self.entity_name} {entity_id} not found")
        record = self._records.pop(index)
        self._after_delete(record)
        LOGGER.debug("Deleted %s %s", self.entity_name.lower(), entity_id)
        return OperationResult.ok(record)

    async def _submit(self, operation: SyncOperation, connected: bool) -> None:
        if not connected or self._mirror is None or self.resource is None:
            return
        await self._mirror.submit(operation)

    # -- hooks --------------------------------------------------------------

    def _stamp(self, values: dict[str, Any]) -> None:
        """Set creation metadata on a new record's values."""
        values["created"] = self.today()

    def _build(self, values: Mapping[str, Any], entity_id: int) -> RecordT:
        return self.record_type(id=entity_id, **self._coerce_fields(values))

    def _insert(self, record: RecordT) -> None:
        self._records.append(record)

    def _after_delete(self, record: RecordT) -> None:
        """Run follow-up removals once ``record`` is gone."""

    def _to_wire(self, record: RecordT, *, include_id: bool) -> dict[str, Any]:
        raise NotImplementedError

    def _from_wire(self, row: Mapping[str, Any]) -> RecordT:
        values = normalize_inbound(row)
        entity_id = int(values.pop("id"))
        # Backend bookkeeping columns have no local counterpart.
        known = self._field_names()
        return self._build(
            {key: value for key, value in values.items() if key in known}, entity_id
        )

    def _create_operation(self, record: RecordT) -> SyncOperation:
        return SyncOperation(
            resource=self.resource or "",
            action="create",
            entity_id=record.id,
            payload=self._to_wire(record, include_id=False),
        )

    def _update_operation(self, record: RecordT) -> SyncOperation:
        return SyncOperation(
            resource=self.resource or "",
            action="update",
            entity_id=record.id,
            payload=self._to_wire(record, include_id=True),
        )

    # -- helpers ------------------------------------------------------------

    def _index_of(self, entity_id: int) -> int | None:
        for index, record in enumerate(self._records):
            if record.id == entity_id:
                return index
        return None

    def _field_names(self) -> set[str]:
        return {item.name for item in fields(self.record_type)} - {"id"}

    def _coerce_fields(self, values: Mapping[str, Any]) -> dict[str, Any]:
        known = self._field_names()
        coerced: dict[str, Any] = {}
        for key, value in values.items():
            if key not in known:
                raise ValueError(f"Unknown {self.entity_name.lower()} field: {key}")
            coercer = self.coercers.get(key)
            coerced[key] = coercer(value) if coercer else value
        return coerced


__all__ = ["EntityStore", "Identified"]
