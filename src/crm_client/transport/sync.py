"""Best-effort mirroring of local mutations to the backend database."""

from __future__ import annotations

import asyncio
import logging

from crm_client.core.interfaces import RemoteMirror
from crm_client.core.models import SyncOperation

from .api_client import ApiError, CrmApiClient

LOGGER = logging.getLogger(__name__)

_METHODS = {"create": "POST", "update": "PUT", "delete": "DELETE"}


class RemoteSyncAdapter(RemoteMirror):
    """Push local mutations to the backend as detached tasks.

    A push never raises: failures are logged at WARNING level and reported as
    ``False``. Each push runs in its own :class:`asyncio.Task`; when
    ``wait_for_remote`` is set the submitting coroutine awaits it, otherwise
    it returns at once and :meth:`drain` collects outstanding pushes.
    """

    def __init__(self, client: CrmApiClient, *, wait_for_remote: bool = True) -> None:
        self._client = client
        self._wait_for_remote = wait_for_remote
        self._pending: set[asyncio.Task[bool]] = set()
        self.succeeded = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        """Number of pushes still in flight."""
        return len(self._pending)

    async def submit(self, operation: SyncOperation) -> bool | None:
        """Start mirroring ``operation``.

        Returns the push outcome when waiting, ``None`` when detached.
        """
        task = asyncio.create_task(
            self.push(operation),
            name=f"sync:{operation.action}:{operation.resource}:{operation.entity_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        if not self._wait_for_remote:
            return None
        return await task

    async def drain(self) -> None:
        """Wait until every detached push has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def push(self, operation: SyncOperation) -> bool:
        """Issue the request for ``operation``, swallowing any failure."""
        method = _METHODS[operation.action]
        try:
            if operation.action == "create":
                await self._client.create_record(
                    operation.resource, operation.payload or {}
                )
            elif operation.action == "update":
                await self._client.update_record(
                    operation.resource,
                    operation.payload or {},
                    endpoint=operation.endpoint,
                )
            else:
                await self._client.delete_record(
                    operation.resource, operation.query or {}
                )
        except ApiError as exc:
            self.failed += 1
            LOGGER.warning(
                "Failed to %s %s %s in database (%s): %s",
                operation.action,
                operation.resource,
                operation.entity_id,
                method,
                exc,
            )
            return False
        except Exception:  # noqa: BLE001
            self.failed += 1
            LOGGER.exception(
                "Unexpected error mirroring %s of %s %s",
                operation.action,
                operation.resource,
                operation.entity_id,
            )
            return False

        self.succeeded += 1
        LOGGER.debug(
            "Mirrored %s of %s %s",
            operation.action,
            operation.resource,
            operation.entity_id,
        )
        return True


__all__ = ["RemoteSyncAdapter"]
