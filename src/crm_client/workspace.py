"""Application facade wiring stores, sync, mail, and notifications together.

Each ``handle_*`` coroutine validates input, performs the mutation, and
turns the outcome into exactly one notification. Validation failures raise
:class:`~crm_client.forms.FormValidationError` before anything is mutated so
callers can render field errors next to the form.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import asdict
from datetime import datetime
from types import TracebackType
from typing import Any

from crm_client.core.config import AppSettings
from crm_client.core.datetime_utils import utcnow
from crm_client.core.models import (
    Customer,
    CustomerChanges,
    Email,
    EmailTemplate,
    QueuedEmail,
    StaffMember,
    Task,
    TaskChanges,
)
from crm_client.core.notifications import NotificationCenter
from crm_client.core.results import OperationResult
from crm_client.forms import (
    validate_compose_form,
    validate_customer_form,
    validate_task_form,
)
from crm_client.mail import DEFAULT_TEMPLATES, BulkSendReport, MailService
from crm_client.query import (
    DashboardSummary,
    SearchResults,
    dashboard_summary,
    global_search,
)
from crm_client.storage import CustomerStore, EmailQueue, EmailStore, TaskStore
from crm_client.transport import CrmApiClient, RemoteSyncAdapter

LOGGER = logging.getLogger(__name__)


class CrmWorkspace:
    """Owns every collection and reports each user action as a notification."""

    def __init__(
        self,
        settings: AppSettings,
        *,
        client: CrmApiClient | None = None,
        customers: Iterable[Customer] = (),
        tasks: Iterable[Task] = (),
        emails: Iterable[Email] = (),
        staff: Iterable[StaffMember] = (),
        templates: Iterable[EmailTemplate] = DEFAULT_TEMPLATES,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self.connected = settings.sync.connected
        self.client = client or CrmApiClient(settings.api)
        self.sync = RemoteSyncAdapter(
            self.client, wait_for_remote=settings.sync.wait_for_remote
        )
        self.staff: tuple[StaffMember, ...] = tuple(staff)
        self.templates: tuple[EmailTemplate, ...] = tuple(templates)
        self.tasks = TaskStore(tasks, staff=self.staff, mirror=self.sync, clock=clock)
        self.emails = EmailStore(emails, clock=clock)
        self.queue = EmailQueue(clock=clock)
        self.customers = CustomerStore(
            customers,
            dependents=(self.tasks, self.emails),
            mirror=self.sync,
            clock=clock,
        )
        self.notifications = NotificationCenter(
            settings.notifications.default_duration_ms, clock=clock
        )
        self.mail = MailService(
            self.client,
            emails=self.emails,
            queue=self.queue,
            customers=self.customers,
            sender_name=settings.mail.sender_name,
            sender_address=settings.mail.sender_address,
            clock=clock,
        )
        self.email_config: dict[str, Any] = {
            "smtp": {"configured": False},
            "imap": {"configured": False},
        }

    async def __aenter__(self) -> CrmWorkspace:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Wait for detached sync pushes, then close the HTTP client."""
        await self.sync.drain()
        await self.client.aclose()

    # -- customers ----------------------------------------------------------

    async def handle_add_customer(
        self, data: Mapping[str, Any]
    ) -> OperationResult[Customer]:
        form = validate_customer_form(data)
        result = await self.customers.add(form.to_changes(), connected=self.connected)
        if result.success and result.value is not None:
            self.notifications.success(
                f'Customer "{result.value.name}" added successfully!'
            )
        else:
            self.notifications.error(f"Failed to add customer: {result.error}")
        return result

    async def handle_update_customer(
        self, customer_id: int, changes: CustomerChanges
    ) -> OperationResult[Customer]:
        existing = self.customers.find(customer_id)
        if existing is not None:
            validate_customer_form({**asdict(existing), **changes})
        result = await self.customers.update(
            customer_id, changes, connected=self.connected
        )
        if result.success and result.value is not None:
            self.notifications.success(
                f'Customer "{result.value.name}" updated successfully!'
            )
        else:
            self.notifications.error(f"Failed to update customer: {result.error}")
        return result

    async def handle_delete_customer(
        self, customer_id: int
    ) -> OperationResult[Customer]:
        """Delete a customer together with its tasks and emails."""
        result = await self.customers.delete(customer_id, connected=self.connected)
        if result.success and result.value is not None:
            self.notifications.success(
                f'Customer "{result.value.name}" deleted successfully!'
            )
        else:
            self.notifications.error(f"Failed to delete customer: {result.error}")
        return result

    # -- tasks --------------------------------------------------------------

    async def handle_add_task(self, data: Mapping[str, Any]) -> OperationResult[Task]:
        form = validate_task_form(data, today=self.tasks.today(), creating=True)
        values = form.to_changes()
        self._fill_task_links(values)
        result = await self.tasks.add(values, connected=self.connected)
        if result.success and result.value is not None:
            self.notifications.success(
                f'Task "{result.value.title}" created successfully!'
            )
        else:
            self.notifications.error(f"Failed to create task: {result.error}")
        return result

    async def handle_update_task(
        self, task_id: int, changes: TaskChanges
    ) -> OperationResult[Task]:
        existing = self.tasks.find(task_id)
        values = dict(changes)
        if existing is not None:
            validate_task_form(
                {**asdict(existing), **values},
                today=self.tasks.today(),
                creating=False,
            )
            self._fill_task_links(values)
        result = await self.tasks.update(task_id, values, connected=self.connected)
        if result.success and result.value is not None:
            self.notifications.success(
                f'Task "{result.value.title}" updated successfully!'
            )
        else:
            self.notifications.error(f"Failed to update task: {result.error}")
        return result

    async def handle_delete_task(self, task_id: int) -> OperationResult[Task]:
        result = await self.tasks.delete(task_id, connected=self.connected)
        if result.success and result.value is not None:
            self.notifications.success(
                f'Task "{result.value.title}" deleted successfully!'
            )
        else:
            self.notifications.error(f"Failed to delete task: {result.error}")
        return result

    async def handle_update_task_status(
        self, task_id: int, status: str
    ) -> OperationResult[Task]:
        result = await self.tasks.update_status(
            task_id, status, connected=self.connected
        )
        if result.success:
            self.notifications.success(f'Task status updated to "{status}"!')
        else:
            self.notifications.error(f"Failed to update task status: {result.error}")
        return result

    async def handle_assign_task(
        self, task_id: int, assignee: str
    ) -> OperationResult[Task]:
        result = await self.tasks.assign(task_id, assignee, connected=self.connected)
        if result.success:
            self.notifications.success(f"Task assigned to {assignee}!")
        else:
            self.notifications.error(f"Failed to assign task: {result.error}")
        return result

    async def handle_bulk_update_tasks(
        self, task_ids: Sequence[int], changes: TaskChanges
    ) -> OperationResult[list[Task]]:
        result = await self.tasks.bulk_update(
            task_ids, changes, connected=self.connected
        )
        if result.success and result.value is not None:
            self.notifications.success(
                f"{len(result.value)} tasks updated successfully!"
            )
        else:
            self.notifications.error(f"Failed to update tasks: {result.error}")
        return result

    # -- email --------------------------------------------------------------

    async def handle_send_email(
        self, draft: Mapping[str, Any]
    ) -> OperationResult[Email]:
        form = validate_compose_form(draft)
        result = await self.mail.send_email(form.to_changes())
        if result.success:
            self.notifications.success("Email sent successfully!")
        else:
            self.notifications.error(f"Failed to send email: {result.error}")
        return result

    def handle_queue_email(
        self, draft: Mapping[str, Any]
    ) -> OperationResult[QueuedEmail]:
        form = validate_compose_form(draft)
        result = self.mail.queue_email(form.to_changes())
        if result.success:
            self.notifications.success("Email added to queue!")
        else:
            self.notifications.error(f"Failed to queue email: {result.error}")
        return result

    async def process_email_queue(self) -> OperationResult[BulkSendReport]:
        """Send the queue, keeping failed drafts for a later attempt."""
        if len(self.queue) == 0:
            self.notifications.info("No emails in queue")
            return OperationResult.ok(BulkSendReport())

        self.notifications.info(f"Processing {len(self.queue)} queued emails...")
        result = await self.mail.process_queue()
        report = result.value
        if result.success and report is not None:
            self.notifications.show(
                report.summary(), "warning" if report.failed else "success"
            )
        else:
            self.notifications.error(
                f"Failed to process email queue: {result.error}"
            )
        return result

    def handle_mark_read(
        self, email_id: int, is_read: bool = True
    ) -> OperationResult[Email]:
        return self.emails.mark_read(email_id, is_read)

    def handle_toggle_star(self, email_id: int) -> OperationResult[Email]:
        return self.emails.toggle_star(email_id)

    def handle_delete_email(self, email_id: int) -> OperationResult[Email]:
        return self.emails.delete_local(email_id)

    # Bulk mailbox actions skip ids that are no longer in the store.

    def handle_bulk_mark_read(
        self, email_ids: Iterable[int]
    ) -> OperationResult[list[Email]]:
        return _collect(self.emails.mark_read(email_id) for email_id in email_ids)

    def handle_bulk_toggle_star(
        self, email_ids: Iterable[int]
    ) -> OperationResult[list[Email]]:
        return _collect(self.emails.toggle_star(email_id) for email_id in email_ids)

    def handle_bulk_delete_emails(
        self, email_ids: Iterable[int]
    ) -> OperationResult[list[Email]]:
        return _collect(self.emails.delete_local(email_id) for email_id in email_ids)

    def reply_to(self, email_id: int) -> dict[str, Any] | None:
        """Return reply compose data for an email, or ``None`` if unknown."""
        email = self.emails.find(email_id)
        return self.mail.reply_to(email) if email is not None else None

    def compose_from_template(
        self, template_id: int, customer_id: int | None = None
    ) -> dict[str, Any] | None:
        for template in self.templates:
            if template.id == template_id:
                return self.mail.compose_from_template(template, customer_id)
        return None

    # -- email provider settings --------------------------------------------

    async def check_email_config(self) -> dict[str, Any]:
        """Refresh provider flags; a failure keeps the previous flags."""
        result = await self.mail.fetch_config()
        if result.success and result.value is not None:
            self.email_config = result.value
        else:
            LOGGER.warning("Failed to check email configuration: %s", result.error)
        return self.email_config

    async def handle_save_email_config(
        self, provider: str, config: Mapping[str, Any]
    ) -> OperationResult[dict[str, Any]]:
        result = await self.mail.save_config(provider, config)
        label = provider.upper()
        if result.success and result.value is not None:
            self.email_config[provider] = result.value
            self.notifications.success(f"{label} configuration saved successfully!")
        else:
            self.notifications.error(
                f"Failed to save {label} configuration: {result.error}"
            )
        return result

    async def handle_test_email_connection(
        self, provider: str, config: Mapping[str, Any]
    ) -> dict[str, Any]:
        outcome = await self.mail.test_connection(provider, config)
        label = provider.upper()
        if outcome["success"]:
            self.notifications.success(f"{label} connection test successful!")
        else:
            self.notifications.error(
                f"{label} connection test failed: {outcome['message']}"
            )
        return outcome

    # -- reads --------------------------------------------------------------

    async def load_from_remote(self) -> bool:
        """Reload customers and tasks from the backend when connected."""
        if not self.connected:
            return False
        loaded = True
        for store in (self.customers, self.tasks):
            result = await store.load_from_remote(self.client)
            loaded = loaded and result.success
        if not loaded:
            self.notifications.warning("Some records could not be loaded from database")
        return loaded

    def search(self, query: str) -> SearchResults:
        return global_search(query, self.customers, self.tasks, self.emails)

    def dashboard(self) -> DashboardSummary:
        return dashboard_summary(
            self.customers, self.tasks, self.emails, self.tasks.today()
        )

    def _fill_task_links(self, values: dict[str, Any]) -> None:
        """Denormalise customer and assignee details onto task values."""
        customer_id = values.get("customer_id")
        if customer_id is not None:
            customer = self.customers.find(customer_id)
            if customer is not None:
                values["customer_name"] = customer.name
        assignee = values.get("assigned_to")
        if assignee and not values.get("assigned_to_email"):
            for member in self.staff:
                if member.name == assignee:
                    values["assigned_to_email"] = member.email
                    break


def _collect(
    results: Iterable[OperationResult[Email]],
) -> OperationResult[list[Email]]:
    return OperationResult.ok(
        [result.value for result in results if result.value is not None]
    )


__all__ = ["CrmWorkspace"]
