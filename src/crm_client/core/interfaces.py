"""Protocol interfaces for decoupling components."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from .models import SyncOperation


class RemoteMirror(Protocol):
    """Best-effort sink for local mutations."""

    async def submit(self, operation: SyncOperation) -> bool | None:
        """Mirror ``operation`` remotely; never raises.

        Returns the outcome, or ``None`` when the push continues detached.
        """
        raise NotImplementedError


class RecordSource(Protocol):
    """Remote collection that local stores can be reloaded from."""

    async def list_records(self, resource: str) -> list[dict[str, Any]]:
        """Return every stored record of ``resource`` in wire format."""
        raise NotImplementedError


class MailGateway(Protocol):
    """Backend endpoints used to send email and manage provider settings."""

    async def send_email(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Send one email and return the backend response."""
        raise NotImplementedError

    async def send_bulk_email(
        self, emails: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        """Send several emails in one request and return per-item results."""
        raise NotImplementedError

    async def get_email_config(self) -> dict[str, Any]:
        """Return provider configuration flags."""
        raise NotImplementedError

    async def save_email_config(
        self, provider: str, config: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Persist configuration for ``provider``."""
        raise NotImplementedError

    async def test_email_connection(
        self, provider: str, config: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Ask the backend to test connectivity using ``config``."""
        raise NotImplementedError


__all__ = ["MailGateway", "RecordSource", "RemoteMirror"]
