"""Tests for sending, queueing, and configuring email."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from crm_client.core.models import Customer, Email
from crm_client.mail import (
    DEFAULT_TEMPLATES,
    MailService,
    apply_template,
    find_template,
    provider_preset,
)
from crm_client.storage import CustomerStore, EmailQueue, EmailStore
from crm_client.transport import CrmApiClient

from conftest import FIXED_NOW, FakeBackend, fixed_clock


def _service(client: CrmApiClient) -> MailService:
    customers = CustomerStore(
        [Customer(id=1, name="John Smith", email="john@techcorp.com", company="TechCorp")]
    )
    return MailService(
        client,
        emails=EmailStore(clock=fixed_clock),
        queue=EmailQueue(clock=fixed_clock),
        customers=customers,
        sender_name="Alex",
        sender_address="sales@company.com",
        clock=fixed_clock,
    )


@pytest.mark.asyncio
async def test_send_email_records_outgoing_email(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    service = _service(api_client)

    result = await service.send_email(
        {
            "to": "john@techcorp.com",
            "subject": "Hello",
            "body": "Hi John",
            "customer_id": 1,
            "attachments": [{"filename": "a.pdf", "size": 10, "type": "application/pdf"}],
        }
    )

    email = result.unwrap()
    assert email.type == "outgoing"
    assert email.status == "sent"
    assert email.is_read is True
    assert email.is_starred is False
    assert email.customer_name == "John Smith"
    assert email.sender == "sales@company.com"
    assert email.smtp_message_id == "<msg-1@crm.test>"
    assert email.thread == f"thread_{int(FIXED_NOW.timestamp() * 1000)}"
    assert email.attachments[0].content_type == "application/pdf"
    (request,) = backend.requests
    assert request.path == "/api/send-email"
    assert request.body["customer_name"] == "John Smith"
    assert request.body["attachments"] == [
        {"filename": "a.pdf", "size": 10, "type": "application/pdf"}
    ]


@pytest.mark.asyncio
async def test_send_email_failure_is_reported(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    backend.fail(
        "/api/send-email", status=200, payload={"success": False, "message": "SMTP down"}
    )
    service = _service(api_client)

    result = await service.send_email({"to": "a@x.com", "subject": "Hi"})

    assert not result.success
    assert result.error == "SMTP down"


@pytest.mark.asyncio
async def test_send_email_transport_error_is_reported(
    unreachable_api: CrmApiClient,
) -> None:
    service = _service(unreachable_api)

    result = await service.send_email({"to": "a@x.com", "subject": "Hi"})

    assert not result.success
    assert "Connection refused" in (result.error or "")


@pytest.mark.asyncio
async def test_queue_email_resolves_customer_name(api_client: CrmApiClient) -> None:
    service = _service(api_client)

    known = service.queue_email({"to": "a@x.com", "subject": "One", "customer_id": 1})
    orphan = service.queue_email({"to": "b@x.com", "subject": "Two", "customer_id": ""})

    assert known.unwrap().customer_name == "John Smith"
    assert known.unwrap().queued_at == FIXED_NOW
    assert orphan.unwrap().customer_name == "Unknown"
    assert orphan.unwrap().id == 2


@pytest.mark.asyncio
async def test_process_empty_queue_sends_nothing(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    service = _service(api_client)

    result = await service.process_queue()

    report = result.unwrap()
    assert (report.successful, report.failed) == (0, 0)
    assert backend.requests == []


@pytest.mark.asyncio
async def test_process_queue_keeps_only_failed_drafts(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    backend.bulk_failures = {1}
    service = _service(api_client)
    for index in range(3):
        service.queue_email({"to": f"user{index}@x.com", "subject": f"Mail {index}"})

    report = (await service.process_queue()).unwrap()

    assert (report.successful, report.failed) == (2, 1)
    assert report.summary() == "2 emails sent successfully, 1 failed"
    assert [email.subject for email in report.sent] == ["Mail 0", "Mail 2"]
    assert [draft.subject for draft in service._queue] == ["Mail 1"]
    assert [email.thread for email in report.sent][1].endswith("_2")
    (request,) = backend.requests
    assert len(request.body["emails"]) == 3


@pytest.mark.asyncio
async def test_process_queue_request_failure_keeps_queue(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    backend.fail("/api/bulk-email", status=500)
    service = _service(api_client)
    service.queue_email({"to": "a@x.com", "subject": "Hi"})

    result = await service.process_queue()

    assert not result.success
    assert len(service._queue) == 1


@pytest.mark.asyncio
async def test_reply_prefixes_subject_once(api_client: CrmApiClient) -> None:
    service = _service(api_client)
    original = Email(
        id=1,
        subject="Pricing",
        sender="john@techcorp.com",
        to="sales@company.com",
        body="What does it cost?",
        customer_id=1,
        timestamp=datetime(2024, 6, 9, 8, 0, tzinfo=UTC),
    )

    reply = service.reply_to(original)

    assert reply["to"] == "john@techcorp.com"
    assert reply["subject"] == "Re: Pricing"
    assert reply["customer_id"] == 1
    assert "--- Original Message ---" in reply["body"]
    assert "What does it cost?" in reply["body"]
    second = Email(id=2, subject=reply["subject"], sender="a@x.com", to="b@x.com")
    assert service.reply_to(second)["subject"] == "Re: Pricing"


def test_apply_template_substitutes_known_placeholders() -> None:
    template = find_template(2)
    customer = Customer(id=1, name="John", email="j@x.com", company="TechCorp")

    subject, body = apply_template(template, customer, "Alex")

    assert subject == "Following up on our conversation"
    assert body.startswith("Hi John,")
    assert "{{topic}}" in body
    assert body.endswith("Alex")


def test_apply_template_without_customer_is_unchanged() -> None:
    template = DEFAULT_TEMPLATES[0]

    assert apply_template(template, None) == (template.subject, template.body)


@pytest.mark.asyncio
async def test_compose_from_template_addresses_customer(api_client: CrmApiClient) -> None:
    service = _service(api_client)

    data = service.compose_from_template(DEFAULT_TEMPLATES[0], customer_id=1)

    assert data["to"] == "john@techcorp.com"
    assert data["subject"] == "Welcome to TechCorp!"
    assert "Alex\nTechCorp" in data["body"]


@pytest.mark.asyncio
async def test_provider_configuration_round_trip(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    service = _service(api_client)

    config = (await service.fetch_config()).unwrap()
    saved = await service.save_config("smtp", provider_preset("gmail", "smtp"))

    assert config["smtp"]["configured"] is True
    assert config["imap"] == {"configured": False}
    assert saved.unwrap()["host"] == "smtp.gmail.com"
    assert backend.requests[-1].body == {
        "provider": "smtp",
        "config": {"host": "smtp.gmail.com", "port": 587, "secure": False},
    }


@pytest.mark.asyncio
async def test_save_config_rejects_unknown_service(api_client: CrmApiClient) -> None:
    result = await _service(api_client).save_config("pop3", {})

    assert not result.success


@pytest.mark.asyncio
async def test_connection_test_never_raises(
    api_client: CrmApiClient, backend: FakeBackend, unreachable_api: CrmApiClient
) -> None:
    ok = await _service(api_client).test_connection("imap", {"host": "imap.x.com"})
    backend.fail(
        "/api/email/test", status=400, payload={"success": False, "message": "Bad login"}
    )
    rejected = await _service(api_client).test_connection("imap", {})
    offline = await _service(unreachable_api).test_connection("smtp", {})

    assert ok == {"success": True, "message": "Connection successful"}
    assert rejected == {"success": False, "message": "Bad login"}
    assert offline["success"] is False


def test_unknown_preset_rejected() -> None:
    with pytest.raises(ValueError):
        provider_preset("aol", "smtp")


class HeldBulkGateway:
    """Bulk gateway that holds each request until released."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.batches: list[list[str]] = []

    async def send_bulk_email(
        self, emails: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        self.batches.append([email["subject"] for email in emails])
        self.started.set()
        await self.release.wait()
        return {
            "success": True,
            "results": [
                {"success": True, "messageId": f"<held-{index}@crm.test>"}
                for index, _ in enumerate(emails)
            ],
        }


@pytest.mark.asyncio
async def test_draft_queued_during_bulk_send_stays_queued() -> None:
    gateway = HeldBulkGateway()
    queue = EmailQueue(clock=fixed_clock)
    service = MailService(
        gateway,  # type: ignore[arg-type]
        emails=EmailStore(clock=fixed_clock),
        queue=queue,
        customers=CustomerStore(),
        sender_name="Alex",
        sender_address="sales@company.com",
        clock=fixed_clock,
    )
    service.queue_email({"to": "one@x.com", "subject": "One"})

    sending = asyncio.create_task(service.process_queue())
    await gateway.started.wait()
    service.queue_email({"to": "two@x.com", "subject": "Two"})
    gateway.release.set()
    report = (await sending).unwrap()

    assert gateway.batches == [["One"]]
    assert [email.subject for email in report.sent] == ["One"]
    assert [draft.subject for draft in queue] == ["Two"]
