"""Conversion between local records and the backend's wire format.

Local records use Python attribute names; the backend speaks snake_case JSON
with a few renamed keys (``from`` for the email sender, ``type`` for an
attachment's content type). Records loaded back from the backend may arrive
in camelCase and are normalised on the way in.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from typing import Any

from crm_client.core.datetime_utils import serialize_date, serialize_datetime
from crm_client.core.models import Attachment, Customer, Email, QueuedEmail, Task

CUSTOMER_WIRE_FIELDS: tuple[str, ...] = (
    "name",
    "email",
    "phone",
    "company",
    "address",
    "status",
    "source",
    "order_value",
    "tags",
)

TASK_WIRE_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "customer_id",
    "customer_name",
    "assigned_to",
    "assigned_to_email",
    "priority",
    "status",
    "due_date",
    "tags",
)

EMAIL_WIRE_FIELDS: tuple[str, ...] = (
    "customer_id",
    "customer_name",
    "subject",
    "sender",
    "to",
    "cc",
    "bcc",
    "body",
    "attachments",
)

_OUTBOUND_RENAMES: Mapping[str, str] = {"sender": "from"}
_INBOUND_RENAMES: Mapping[str, str] = {"from": "sender"}
_ATTACHMENT_RENAMES: Mapping[str, str] = {"content_type": "type"}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def camel_to_snake(key: str) -> str:
    """Return ``key`` converted from camelCase to snake_case."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def wire_value(value: Any) -> Any:
    """Convert a local attribute value into its JSON representation."""
    if isinstance(value, datetime):
        return serialize_datetime(value)
    if isinstance(value, date):
        return serialize_date(value)
    if isinstance(value, Attachment):
        return attachment_to_wire(value)
    if isinstance(value, (list, tuple)):
        return [wire_value(item) for item in value]
    return value


def attachment_to_wire(attachment: Attachment) -> dict[str, Any]:
    """Render attachment metadata as ``{filename, size, type}``."""
    return {
        _ATTACHMENT_RENAMES.get(item.name, item.name): getattr(attachment, item.name)
        for item in fields(attachment)
    }


def changes_to_wire(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Map a partial update onto wire names."""
    return {
        _OUTBOUND_RENAMES.get(key, key): wire_value(value)
        for key, value in changes.items()
    }


def record_to_wire(
    record: Any, field_names: Iterable[str], *, include_id: bool = False
) -> dict[str, Any]:
    """Render selected attributes of a dataclass record for the backend."""
    if not is_dataclass(record):
        raise TypeError(f"Expected a dataclass record, got {type(record).__name__}")
    payload: dict[str, Any] = {}
    if include_id:
        payload["id"] = record.id
    for name in field_names:
        payload[_OUTBOUND_RENAMES.get(name, name)] = wire_value(getattr(record, name))
    return payload


def customer_to_wire(customer: Customer, *, include_id: bool = False) -> dict[str, Any]:
    return record_to_wire(customer, CUSTOMER_WIRE_FIELDS, include_id=include_id)


def task_to_wire(task: Task, *, include_id: bool = False) -> dict[str, Any]:
    return record_to_wire(task, TASK_WIRE_FIELDS, include_id=include_id)


def email_to_wire(email: Email | QueuedEmail) -> dict[str, Any]:
    """Render an email or queued draft as the body of a send request."""
    names = [name for name in EMAIL_WIRE_FIELDS if hasattr(email, name)]
    return record_to_wire(email, names)


def normalize_inbound(data: Mapping[str, Any]) -> dict[str, Any]:
    """Turn a backend record into keyword arguments for local records."""
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        local_key = _INBOUND_RENAMES.get(key, camel_to_snake(key))
        if local_key == "attachments" and isinstance(value, list):
            value = [attachment_from_wire(item) for item in value]
        normalized[local_key] = value
    return normalized


def attachment_from_wire(data: Mapping[str, Any] | Attachment) -> Attachment:
    """Build attachment metadata from ``{filename, size, type}``."""
    if isinstance(data, Attachment):
        return data
    return Attachment(
        filename=str(data.get("filename") or data.get("name") or ""),
        size=data.get("size"),
        content_type=data.get("type") or data.get("content_type"),
    )


__all__ = [
    "CUSTOMER_WIRE_FIELDS",
    "EMAIL_WIRE_FIELDS",
    "TASK_WIRE_FIELDS",
    "attachment_from_wire",
    "attachment_to_wire",
    "camel_to_snake",
    "changes_to_wire",
    "customer_to_wire",
    "email_to_wire",
    "normalize_inbound",
    "record_to_wire",
    "task_to_wire",
    "wire_value",
]
