"""Tests for translating records to and from the backend's JSON shape."""

from __future__ import annotations

from datetime import UTC, date, datetime

from crm_client.core.models import Attachment, Email, Task
from crm_client.transport.field_mapping import (
    camel_to_snake,
    changes_to_wire,
    email_to_wire,
    normalize_inbound,
    task_to_wire,
)


def test_camel_to_snake() -> None:
    assert camel_to_snake("customerId") == "customer_id"
    assert camel_to_snake("assignedToEmail") == "assigned_to_email"
    assert camel_to_snake("already_snake") == "already_snake"


def test_task_to_wire_serialises_dates() -> None:
    task = Task(
        id=3,
        title="Call",
        customer_id=1,
        due_date=date(2024, 6, 12),
        created=date(2024, 6, 1),
    )

    payload = task_to_wire(task, include_id=True)

    assert payload["id"] == 3
    assert payload["due_date"] == "2024-06-12"
    assert payload["customer_id"] == 1
    assert "created" not in payload


def test_email_to_wire_renames_sender_and_attachment_type() -> None:
    email = Email(
        id=1,
        subject="Hi",
        sender="me@x.com",
        to="you@x.com",
        timestamp=datetime(2024, 6, 10, tzinfo=UTC),
        attachments=[Attachment(filename="a.txt", size=3, content_type="text/plain")],
    )

    payload = email_to_wire(email)

    assert payload["from"] == "me@x.com"
    assert "sender" not in payload
    assert payload["attachments"] == [
        {"filename": "a.txt", "size": 3, "type": "text/plain"}
    ]


def test_changes_to_wire_maps_partial_updates() -> None:
    assert changes_to_wire({"due_date": date(2024, 1, 2), "sender": "a@x.com"}) == {
        "due_date": "2024-01-02",
        "from": "a@x.com",
    }


def test_normalize_inbound_accepts_camel_case() -> None:
    values = normalize_inbound(
        {
            "id": 4,
            "from": "a@x.com",
            "customerId": 2,
            "isRead": True,
            "attachments": [{"filename": "b.pdf", "type": "application/pdf"}],
        }
    )

    assert values["sender"] == "a@x.com"
    assert values["customer_id"] == 2
    assert values["is_read"] is True
    assert values["attachments"] == [
        Attachment(filename="b.pdf", size=None, content_type="application/pdf")
    ]
