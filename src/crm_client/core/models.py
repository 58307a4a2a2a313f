"""Core domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, TypedDict, get_args

CustomerStatus = Literal["Lead", "Active", "Inactive"]
TaskPriority = Literal["Low", "Medium", "High"]
TaskStatus = Literal["Pending", "In Progress", "Completed"]
EmailType = Literal["incoming", "outgoing"]
EmailStatus = Literal["sent", "delivered", "failed", "pending"]

CUSTOMER_STATUSES: tuple[str, ...] = get_args(CustomerStatus)
TASK_PRIORITIES: tuple[str, ...] = get_args(TaskPriority)
TASK_STATUSES: tuple[str, ...] = get_args(TaskStatus)
EMAIL_TYPES: tuple[str, ...] = get_args(EmailType)
EMAIL_STATUSES: tuple[str, ...] = get_args(EmailStatus)

UNKNOWN_CUSTOMER = "Unknown"


@dataclass(slots=True)
class Attachment:
    """Metadata describing an email attachment."""

    filename: str
    size: int | None = None
    content_type: str | None = None


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class Customer:
    """A customer or lead tracked by the CRM."""

    id: int
    name: str
    email: str
    phone: str = ""
    company: str = ""
    address: str = ""
    status: CustomerStatus = "Lead"
    source: str = "Manual"
    order_value: float = 0.0
    tags: list[str] = field(default_factory=list)
    created: date | None = None
    last_contact: date | None = None


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class Task:
    """Unit of work, optionally linked to a customer by id."""

    id: int
    title: str
    description: str = ""
    customer_id: int | None = None
    customer_name: str = ""
    assigned_to: str = ""
    assigned_to_email: str = ""
    priority: TaskPriority = "Medium"
    status: TaskStatus = "Pending"
    due_date: date | None = None
    created: date | None = None
    tags: list[str] = field(default_factory=list)


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class Email:
    """A sent or received email kept in the local mailbox view."""

    id: int
    subject: str
    sender: str
    to: str
    body: str = ""
    customer_id: int | None = None
    customer_name: str = ""
    cc: str = ""
    bcc: str = ""
    timestamp: datetime | None = None
    is_read: bool = False
    is_starred: bool = False
    thread: str = ""
    type: EmailType = "incoming"
    status: EmailStatus = "delivered"
    attachments: list[Attachment] = field(default_factory=list)
    smtp_message_id: str | None = None


@dataclass(slots=True)
class QueuedEmail:
    """Outgoing draft waiting in the send queue."""

    id: int
    to: str
    subject: str
    body: str = ""
    customer_id: int | None = None
    customer_name: str = ""
    cc: str = ""
    bcc: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    queued_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class StaffMember:
    """Member of staff that tasks can be assigned to."""

    id: int
    name: str
    email: str
    role: str = ""


@dataclass(frozen=True, slots=True)
class EmailTemplate:
    """Reusable email body with ``{{placeholder}}`` variables."""

    id: int
    name: str
    subject: str
    body: str


@dataclass(frozen=True, slots=True)
class SyncOperation:
    """One outbound request mirroring a local mutation."""

    resource: str
    action: Literal["create", "update", "delete"]
    entity_id: int | None = None
    payload: dict[str, object] | None = None
    endpoint: str | None = None
    query: dict[str, object] | None = None


class CustomerChanges(TypedDict, total=False):
    """Partial update accepted by the customer store."""

    name: str
    email: str
    phone: str
    company: str
    address: str
    status: str
    source: str
    order_value: float | str
    tags: list[str] | str
    last_contact: date | str | None


class TaskChanges(TypedDict, total=False):
    """Partial update accepted by the task store."""

    title: str
    description: str
    customer_id: int | None
    customer_name: str
    assigned_to: str
    assigned_to_email: str
    priority: str
    status: str
    due_date: date | str | None
    tags: list[str] | str


class EmailChanges(TypedDict, total=False):
    """Partial update accepted by the email store."""

    subject: str
    body: str
    is_read: bool
    is_starred: bool
    status: str
    customer_id: int | None
    customer_name: str


__all__ = [
    "Attachment",
    "Customer",
    "CustomerChanges",
    "CustomerStatus",
    "CUSTOMER_STATUSES",
    "Email",
    "EmailChanges",
    "EmailStatus",
    "EmailTemplate",
    "EmailType",
    "EMAIL_STATUSES",
    "EMAIL_TYPES",
    "QueuedEmail",
    "StaffMember",
    "SyncOperation",
    "Task",
    "TaskChanges",
    "TaskPriority",
    "TaskStatus",
    "TASK_PRIORITIES",
    "TASK_STATUSES",
    "UNKNOWN_CUSTOMER",
]
