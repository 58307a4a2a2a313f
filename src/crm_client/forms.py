"""Validation of user-entered form data before any mutation is attempted."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from crm_client.core.datetime_utils import coerce_date
from crm_client.storage.normalize import coerce_amount

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class FormValidationError(ValueError):
    """Raised when form input fails validation; maps field names to messages."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{key}: {msg}" for key, msg in self.errors.items()))


def is_valid_email(address: str) -> bool:
    return bool(EMAIL_PATTERN.match(address))


def split_addresses(value: str | None) -> list[str]:
    """Split a comma separated recipient list into trimmed addresses."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def invalid_addresses(value: str | None) -> list[str]:
    return [address for address in split_addresses(value) if not is_valid_email(address)]


class _Form(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_default=True)

    def to_changes(self) -> dict[str, Any]:
        """Return only the fields the user supplied."""
        return self.model_dump(exclude_unset=True)

    @field_validator("customer_id", mode="before", check_fields=False)
    @classmethod
    def _blank_customer(cls, value: Any) -> Any:
        # Selects post an empty string when no customer is chosen.
        return None if value == "" else value


class CustomerForm(_Form):
    name: str = ""
    email: str = ""
    phone: str = ""
    company: str = ""
    address: str = ""
    status: str = "Lead"
    source: str = "Manual"
    order_value: float | str | None = 0
    tags: str | list[str] = ""

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()

    @field_validator("email")
    @classmethod
    def _email_valid(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Email is required")
        if not is_valid_email(value.strip()):
            raise ValueError("Please enter a valid email address")
        return value.strip()

    @field_validator("order_value")
    @classmethod
    def _order_value_positive(cls, value: float | str | None) -> float | str | None:
        if coerce_amount(value) < 0:
            raise ValueError("Order value cannot be negative")
        return value


class TaskForm(_Form):
    title: str = ""
    description: str = ""
    customer_id: int | None = None
    customer_name: str = ""
    assigned_to: str = ""
    assigned_to_email: str = ""
    priority: str = "Medium"
    status: str = "Pending"
    due_date: date | str | None = None
    tags: str | list[str] = ""

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Task title is required")
        return value.strip()

    @field_validator("assigned_to")
    @classmethod
    def _assignee_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Task must be assigned to someone")
        return value.strip()

    @field_validator("due_date")
    @classmethod
    def _due_date_valid(
        cls, value: date | str | None, info: ValidationInfo
    ) -> date:
        try:
            due = coerce_date(value)
        except ValueError as exc:
            raise ValueError("Due date is not a valid date") from exc
        if due is None:
            raise ValueError("Due date is required")
        context = info.context or {}
        today = context.get("today")
        if context.get("creating", True) and today is not None and due < today:
            raise ValueError("Due date cannot be in the past")
        return due


class ComposeEmailForm(_Form):
    to: str = ""
    cc: str = ""
    bcc: str = ""
    subject: str = ""
    body: str = ""
    customer_id: int | None = None
    attachments: list[dict[str, Any]] = []

    @field_validator("to")
    @classmethod
    def _recipients_required(cls, value: str) -> str:
        if not split_addresses(value):
            raise ValueError("At least one recipient is required")
        return _check_addresses(value)

    @field_validator("cc", "bcc")
    @classmethod
    def _copies_valid(cls, value: str) -> str:
        return _check_addresses(value)

    @field_validator("subject")
    @classmethod
    def _subject_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Subject is required")
        return value


def _check_addresses(value: str) -> str:
    invalid = invalid_addresses(value)
    if invalid:
        raise ValueError(f"Invalid email address: {', '.join(invalid)}")
    return ", ".join(split_addresses(value))


def _collect(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for error in exc.errors():
        key = ".".join(str(part) for part in error["loc"]) or "__all__"
        ctx = error.get("ctx") or {}
        cause = ctx.get("error")
        errors.setdefault(key, str(cause) if cause is not None else error["msg"])
    return errors


def validate_customer_form(data: Mapping[str, Any]) -> CustomerForm:
    """Validate customer input, raising :class:`FormValidationError`."""
    try:
        return CustomerForm.model_validate(dict(data))
    except ValidationError as exc:
        raise FormValidationError(_collect(exc)) from exc


def validate_task_form(
    data: Mapping[str, Any], *, today: date, creating: bool = True
) -> TaskForm:
    """Validate task input; past due dates are rejected only when creating."""
    try:
        return TaskForm.model_validate(
            dict(data), context={"today": today, "creating": creating}
        )
    except ValidationError as exc:
        raise FormValidationError(_collect(exc)) from exc


def validate_compose_form(data: Mapping[str, Any]) -> ComposeEmailForm:
    try:
        return ComposeEmailForm.model_validate(dict(data))
    except ValidationError as exc:
        raise FormValidationError(_collect(exc)) from exc


__all__ = [
    "ComposeEmailForm",
    "CustomerForm",
    "FormValidationError",
    "TaskForm",
    "invalid_addresses",
    "is_valid_email",
    "split_addresses",
    "validate_compose_form",
    "validate_customer_form",
    "validate_task_form",
]
