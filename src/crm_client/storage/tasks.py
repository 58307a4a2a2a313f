"""Task store with status, assignment, and bulk update helpers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any, ClassVar

from crm_client.core.datetime_utils import coerce_date, utcnow
from crm_client.core.interfaces import RemoteMirror
from crm_client.core.models import (
    TASK_PRIORITIES,
    TASK_STATUSES,
    StaffMember,
    SyncOperation,
    Task,
    TaskChanges,
)
from crm_client.core.results import OperationResult
from crm_client.query.stats import TaskStats, task_stats
from crm_client.query.tasks import is_due_today, is_overdue
from crm_client.transport.field_mapping import changes_to_wire, task_to_wire

from .memory import Coercer, EntityStore
from .normalize import choice, coerce_optional_id, coerce_text, normalize_tags

LOGGER = logging.getLogger(__name__)


class TaskStore(EntityStore[Task]):
    """Tasks, optionally linked to customers through ``customer_id``."""

    record_type = Task
    entity_name = "Task"
    resource = "tasks"
    id_param = "taskId"
    coercers: ClassVar[Mapping[str, Coercer]] = {
        "title": coerce_text,
        "description": coerce_text,
        "customer_id": coerce_optional_id,
        "customer_name": coerce_text,
        "assigned_to": coerce_text,
        "assigned_to_email": coerce_text,
        "priority": choice(TASK_PRIORITIES, "task priority"),
        "status": choice(TASK_STATUSES, "task status"),
        "due_date": coerce_date,
        "created": coerce_date,
        "tags": normalize_tags,
    }

    def __init__(
        self,
        initial: Iterable[Task] = (),
        *,
        staff: Iterable[StaffMember] = (),
        mirror: RemoteMirror | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(initial, mirror=mirror, clock=clock)
        self._staff = {member.name: member for member in staff}

    async def update_status(
        self, task_id: int, status: str, *, connected: bool = False
    ) -> OperationResult[Task]:
        """Set a task's status and mirror it to the status endpoint."""
        result = self._update_local(task_id, {"status": status})
        if result.success:
            await self._submit(
                SyncOperation(
                    resource=self.resource or "",
                    action="update",
                    entity_id=task_id,
                    endpoint="status",
                    payload={"id": task_id, "status": status},
                ),
                connected,
            )
        return result

    async def assign(
        self, task_id: int, assignee: str, *, connected: bool = False
    ) -> OperationResult[Task]:
        """Reassign a task, filling the assignee email from the staff list."""
        changes: TaskChanges = {"assigned_to": assignee}
        member = self._staff.get(assignee)
        if member is not None:
            changes["assigned_to_email"] = member.email
        result = self._update_local(task_id, changes)
        if result.success:
            await self._submit(
                SyncOperation(
                    resource=self.resource or "",
                    action="update",
                    entity_id=task_id,
                    endpoint="assign",
                    payload={"id": task_id, "assigned_to": assignee},
                ),
                connected,
            )
        return result

    async def bulk_update(
        self,
        task_ids: Sequence[int],
        changes: TaskChanges,
        *,
        connected: bool = False,
    ) -> OperationResult[list[Task]]:
        """Apply the same ``changes`` to every task in ``task_ids``.

        Ids that are not in the store are skipped. The update is applied to
        all tasks or none: a change that fails to coerce leaves the store
        untouched.
        """
        wanted = set(task_ids)
        try:
            values = self._coerce_fields(
                {key: value for key, value in changes.items() if key != "id"}
            )
        except Exception as exc:  # noqa: BLE001 - reported through the result
            LOGGER.exception("Error bulk updating tasks")
            return OperationResult.fail(str(exc))

        updated: list[Task] = []
        for task in self._records:
            if task.id in wanted:
                result = self._update_local(task.id, values)
                if result.value is not None:
                    updated.append(result.value)

        await self._submit(
            SyncOperation(
                resource=self.resource or "",
                action="update",
                endpoint="bulk-update",
                payload={
                    "task_ids": list(task_ids),
                    "updates": changes_to_wire(values),
                },
            ),
            connected,
        )
        return OperationResult.ok(updated)

    def find_by_customer(self, customer_id: int) -> list[Task]:
        return self.filter(lambda task: task.customer_id == customer_id)

    def find_by_assignee(self, assignee: str) -> list[Task]:
        return self.filter(lambda task: task.assigned_to == assignee)

    def filter_by_status(self, status: str) -> list[Task]:
        return self.filter(lambda task: task.status == status)

    def overdue(self, today: date | None = None) -> list[Task]:
        """Open tasks whose due date has passed."""
        reference = today or self.today()
        return self.filter(lambda task: is_overdue(task, reference))

    def due_today(self, today: date | None = None) -> list[Task]:
        """Open tasks due on ``today``."""
        reference = today or self.today()
        return self.filter(
            lambda task: is_due_today(task, reference) and task.status != "Completed"
        )

    def stats(self, today: date | None = None) -> TaskStats:
        return task_stats(self._records, today or self.today())

    def _to_wire(self, record: Task, *, include_id: bool) -> dict[str, Any]:
        return task_to_wire(record, include_id=include_id)


__all__ = ["TaskStore"]
