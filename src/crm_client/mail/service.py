"""Sending, queueing, and provider configuration for outgoing email."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from crm_client.core.datetime_utils import serialize_datetime, utcnow
from crm_client.core.interfaces import MailGateway
from crm_client.core.models import (
    UNKNOWN_CUSTOMER,
    Email,
    EmailTemplate,
    QueuedEmail,
)
from crm_client.core.results import OperationResult
from crm_client.storage.customers import CustomerStore
from crm_client.storage.emails import EmailQueue, EmailStore
from crm_client.storage.normalize import coerce_attachments, coerce_optional_id
from crm_client.transport.api_client import ApiError
from crm_client.transport.field_mapping import changes_to_wire, email_to_wire

from .templates import apply_template

LOGGER = logging.getLogger(__name__)

MAIL_SERVICES: tuple[str, ...] = ("smtp", "imap")

PROVIDER_PRESETS: Mapping[str, Mapping[str, Mapping[str, Any]]] = {
    "gmail": {
        "smtp": {"host": "smtp.gmail.com", "port": 587, "secure": False},
        "imap": {"host": "imap.gmail.com", "port": 993, "secure": True},
    },
    "outlook": {
        "smtp": {"host": "smtp-mail.outlook.com", "port": 587, "secure": False},
        "imap": {"host": "outlook.office365.com", "port": 993, "secure": True},
    },
    "yahoo": {
        "smtp": {"host": "smtp.mail.yahoo.com", "port": 587, "secure": False},
        "imap": {"host": "imap.mail.yahoo.com", "port": 993, "secure": True},
    },
}

_DRAFT_FIELDS: tuple[str, ...] = (
    "to",
    "cc",
    "bcc",
    "subject",
    "body",
    "customer_id",
    "attachments",
)


@dataclass(slots=True)
class BulkSendReport:
    """Outcome of sending the whole queue in one request."""

    successful: int = 0
    failed: int = 0
    sent: list[Email] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.successful + self.failed

    def summary(self) -> str:
        return f"{self.successful} emails sent successfully, {self.failed} failed"


def provider_preset(provider: str, service: str) -> dict[str, Any]:
    """Return a copy of the connection preset for ``provider``'s ``service``."""
    try:
        return dict(PROVIDER_PRESETS[provider.lower()][service])
    except KeyError as exc:
        raise ValueError(f"No preset for {provider} {service}") from exc


class MailService:
    """Send email through the backend and record what was sent locally.

    Unlike database mirroring, send failures are surfaced to the caller as
    failed results rather than swallowed.
    """

    def __init__(
        self,
        gateway: MailGateway,
        *,
        emails: EmailStore,
        queue: EmailQueue,
        customers: CustomerStore,
        sender_name: str = "Your Name",
        sender_address: str = "",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._gateway = gateway
        self._emails = emails
        self._queue = queue
        self._customers = customers
        self._sender_name = sender_name
        self._sender_address = sender_address
        self._clock = clock

    # -- sending ------------------------------------------------------------

    async def send_email(self, draft: Mapping[str, Any]) -> OperationResult[Email]:
        """Send ``draft`` and record it as an outgoing email on success."""
        values = self._draft_values(draft)
        try:
            response = await self._gateway.send_email(changes_to_wire(values))
        except ApiError as exc:
            LOGGER.error("Send email error: %s", exc)
            return OperationResult.fail(str(exc))

        now = self._clock()
        LOGGER.info("Sent email '%s' to %s", values.get("subject", ""), values["to"])
        return self._record_sent(
            values, response, thread=f"thread_{_millis(now)}", timestamp=now
        )

    def queue_email(self, draft: Mapping[str, Any]) -> OperationResult[QueuedEmail]:
        """Hold ``draft`` in the queue for the next bulk send."""
        return self._queue.queue(self._draft_values(draft))

    async def process_queue(self) -> OperationResult[BulkSendReport]:
        """Send every queued draft in one request.

        Drafts the backend accepted are recorded as sent emails; the queue
        keeps the ones that failed along with any draft
        queued while the request was in flight. Nothing is retried
        automatically.
        """
        drafts = self._queue.items
        if not drafts:
            return OperationResult.ok(BulkSendReport())

        LOGGER.info("Processing %d queued emails", len(drafts))
        try:
            response = await self._gateway.send_bulk_email(
                [email_to_wire(draft) for draft in drafts]
            )
        except ApiError as exc:
            LOGGER.error("Bulk email error: %s", exc)
            return OperationResult.fail(str(exc))

        outcomes = response.get("results") or []
        now = self._clock()
        report = BulkSendReport()
        failed_ids: list[int] = []
        for index, draft in enumerate(drafts):
            outcome = outcomes[index] if index < len(outcomes) else {}
            if not isinstance(outcome, Mapping) or not outcome.get("success"):
                failed_ids.append(draft.id)
                continue
            result = self._record_sent(
                _queued_values(draft),
                outcome,
                thread=f"thread_{_millis(now)}_{index}",
                timestamp=now,
            )
            if result.value is not None:
                report.sent.append(result.value)
            else:
                failed_ids.append(draft.id)

        # Drafts queued while the request was in flight stay queued.
        sent_ids = {draft.id for draft in drafts} - set(failed_ids)
        self._queue.remove_where(lambda draft: draft.id in sent_ids)
        report.successful = len(report.sent)
        report.failed = len(failed_ids)
        if report.failed:
            LOGGER.warning("Bulk send: %s", report.summary())
        return OperationResult.ok(report)

    # -- composing ----------------------------------------------------------

    def reply_to(self, email: Email) -> dict[str, Any]:
        """Return compose data for a reply quoting ``email``."""
        subject = email.subject
        if not subject.startswith("Re:"):
            subject = f"Re: {subject}"
        sent = serialize_datetime(email.timestamp) or ""
        body = (
            "\n\n--- Original Message ---\n"
            f"From: {email.sender}\n"
            f"Sent: {sent}\n"
            f"Subject: {email.subject}\n\n"
            f"{email.body}"
        )
        return {
            "to": email.sender,
            "subject": subject,
            "body": body,
            "customer_id": email.customer_id,
        }

    def compose_from_template(
        self, template: EmailTemplate, customer_id: int | None = None
    ) -> dict[str, Any]:
        """Return compose data for ``template`` addressed to a customer."""
        customer = self._customers.find(customer_id) if customer_id else None
        subject, body = apply_template(template, customer, self._sender_name)
        data: dict[str, Any] = {"subject": subject, "body": body}
        if customer is not None:
            data["to"] = customer.email
            data["customer_id"] = customer.id
        return data

    # -- provider configuration ---------------------------------------------

    async def fetch_config(self) -> OperationResult[dict[str, Any]]:
        try:
            response = await self._gateway.get_email_config()
        except ApiError as exc:
            LOGGER.error("Failed to load email configuration: %s", exc)
            return OperationResult.fail(str(exc))
        config = response.get("config") or {}
        return OperationResult.ok(
            {
                service: config.get(service) or {"configured": False}
                for service in MAIL_SERVICES
            }
        )

    async def save_config(
        self, provider: str, config: Mapping[str, Any]
    ) -> OperationResult[dict[str, Any]]:
        """Persist settings for ``provider`` (``smtp`` or ``imap``)."""
        if provider not in MAIL_SERVICES:
            return OperationResult.fail(f"Unknown mail service: {provider}")
        try:
            await self._gateway.save_email_config(provider, config)
        except ApiError as exc:
            LOGGER.error("Failed to save %s configuration: %s", provider, exc)
            return OperationResult.fail(str(exc))
        return OperationResult.ok({**dict(config), "configured": True})

    async def test_connection(
        self, provider: str, config: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Return ``{"success", "message"}``; errors are reported, never raised."""
        try:
            response = await self._gateway.test_email_connection(provider, config)
        except ApiError as exc:
            LOGGER.warning("%s connection test failed: %s", provider, exc)
            return {"success": False, "message": str(exc)}
        return {
            "success": True,
            "message": str(response.get("message") or "Connection successful"),
        }

    # -- helpers ------------------------------------------------------------

    def _draft_values(self, draft: Mapping[str, Any]) -> dict[str, Any]:
        values = {key: draft[key] for key in _DRAFT_FIELDS if key in draft}
        values.setdefault("to", "")
        values["customer_id"] = coerce_optional_id(values.get("customer_id"))
        values["attachments"] = coerce_attachments(values.get("attachments"))
        values["customer_name"] = self._customer_name(values["customer_id"])
        return values

    def _customer_name(self, customer_id: int | None) -> str:
        if customer_id is None:
            return UNKNOWN_CUSTOMER
        customer = self._customers.find(customer_id)
        return customer.name if customer else UNKNOWN_CUSTOMER

    def _record_sent(
        self,
        values: Mapping[str, Any],
        response: Mapping[str, Any],
        *,
        thread: str,
        timestamp: datetime,
    ) -> OperationResult[Email]:
        message_id = response.get("messageId") or response.get("message_id")
        return self._emails.add_local(
            {
                **values,
                "sender": self._sender_address,
                "timestamp": timestamp,
                "is_read": True,
                "is_starred": False,
                "thread": thread,
                "type": "outgoing",
                "status": "sent",
                "smtp_message_id": str(message_id) if message_id else None,
            }
        )


def _queued_values(draft: QueuedEmail) -> dict[str, Any]:
    return {
        "to": draft.to,
        "cc": draft.cc,
        "bcc": draft.bcc,
        "subject": draft.subject,
        "body": draft.body,
        "customer_id": draft.customer_id,
        "customer_name": draft.customer_name,
        "attachments": list(draft.attachments),
    }


def _millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


__all__ = [
    "BulkSendReport",
    "MAIL_SERVICES",
    "MailService",
    "PROVIDER_PRESETS",
    "provider_preset",
]
