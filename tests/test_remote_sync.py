"""Tests for best-effort mirroring of store mutations to the backend."""

from __future__ import annotations

import logging

import pytest

from crm_client.core.models import Customer, StaffMember, SyncOperation, Task
from crm_client.storage import CustomerStore, TaskStore
from crm_client.transport import ApiError, CrmApiClient, RemoteSyncAdapter

from conftest import FakeBackend, fixed_clock


@pytest.mark.asyncio
async def test_disconnected_mutations_issue_no_requests(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    sync = RemoteSyncAdapter(api_client)
    store = CustomerStore(mirror=sync)

    customer = (await store.add({"name": "A", "email": "a@x.com"})).unwrap()
    await store.update(customer.id, {"phone": "555"})
    await store.delete(customer.id)

    assert backend.requests == []


@pytest.mark.asyncio
async def test_connected_create_posts_snake_case_payload(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    sync = RemoteSyncAdapter(api_client)
    store = CustomerStore(mirror=sync, clock=fixed_clock)

    await store.add(
        {"name": "A", "email": "a@x.com", "order_value": "10", "tags": "VIP"},
        connected=True,
    )

    (request,) = backend.calls("POST")
    assert request.path == "/api/database/customers"
    assert request.body == {
        "name": "A",
        "email": "a@x.com",
        "phone": "",
        "company": "",
        "address": "",
        "status": "Lead",
        "source": "Manual",
        "order_value": 10.0,
        "tags": ["VIP"],
    }
    assert sync.succeeded == 1


@pytest.mark.asyncio
async def test_connected_update_and_delete_requests(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    store = CustomerStore(
        [Customer(id=3, name="A", email="a@x.com")],
        mirror=RemoteSyncAdapter(api_client),
    )

    await store.update(3, {"company": "Acme"}, connected=True)
    await store.delete(3, connected=True)

    put, delete = backend.requests
    assert (put.method, put.path) == ("PUT", "/api/database/customers")
    assert put.body["id"] == 3
    assert put.body["company"] == "Acme"
    assert (delete.method, delete.path) == ("DELETE", "/api/database/customers")
    assert delete.params == {"customerId": "3"}


@pytest.mark.asyncio
async def test_network_error_is_swallowed_and_record_kept(
    unreachable_api: CrmApiClient, caplog: pytest.LogCaptureFixture
) -> None:
    sync = RemoteSyncAdapter(unreachable_api)
    store = CustomerStore(mirror=sync)

    with caplog.at_level(logging.WARNING, logger="crm_client.transport.sync"):
        result = await store.add({"name": "A", "email": "a@x.com"}, connected=True)

    assert result.success
    assert len(store) == 1
    assert sync.failed == 1
    assert "Failed to create customers" in caplog.text


@pytest.mark.asyncio
async def test_http_error_status_is_swallowed(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    backend.fail("/api/database/tasks", status=503)
    sync = RemoteSyncAdapter(api_client)
    store = TaskStore(mirror=sync)

    result = await store.add({"title": "Call"}, connected=True)

    assert result.success
    assert store.find(result.unwrap().id) is not None
    assert sync.failed == 1


@pytest.mark.asyncio
async def test_payload_failure_flag_is_swallowed(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    backend.fail(
        "/api/database/tasks",
        status=200,
        payload={"success": False, "message": "constraint violated"},
    )
    sync = RemoteSyncAdapter(api_client)

    ok = await sync.push(
        SyncOperation(resource="tasks", action="create", payload={"title": "X"})
    )

    assert ok is False
    assert sync.failed == 1


@pytest.mark.asyncio
async def test_client_raises_api_error_on_failure_flag(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    backend.fail(
        "/api/send-email", status=200, payload={"success": False, "message": "Nope"}
    )

    with pytest.raises(ApiError, match="Nope") as excinfo:
        await api_client.send_email({"to": "a@x.com"})

    assert excinfo.value.status_code == 200


@pytest.mark.asyncio
async def test_detached_pushes_complete_on_drain(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    sync = RemoteSyncAdapter(api_client, wait_for_remote=False)
    store = CustomerStore(mirror=sync)

    result = await store.add({"name": "A", "email": "a@x.com"}, connected=True)

    assert result.success
    assert sync.pending == 1
    await sync.drain()
    assert sync.pending == 0
    assert len(backend.calls("POST")) == 1


@pytest.mark.asyncio
async def test_task_specific_endpoints(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    staff = [StaffMember(id=1, name="Sarah", email="sarah@company.com")]
    store = TaskStore(
        [Task(id=1, title="One"), Task(id=2, title="Two")],
        staff=staff,
        mirror=RemoteSyncAdapter(api_client),
    )

    await store.update_status(1, "Completed", connected=True)
    assigned = await store.assign(2, "Sarah", connected=True)
    bulk = await store.bulk_update([1, 2, 99], {"priority": "High"}, connected=True)

    status_call, assign_call, bulk_call = backend.requests
    assert status_call.path == "/api/database/tasks/status"
    assert status_call.body == {"id": 1, "status": "Completed"}
    assert assign_call.path == "/api/database/tasks/assign"
    assert assign_call.body == {"id": 2, "assigned_to": "Sarah"}
    assert assigned.unwrap().assigned_to_email == "sarah@company.com"
    assert bulk_call.path == "/api/database/tasks/bulk-update"
    assert bulk_call.body == {"task_ids": [1, 2, 99], "updates": {"priority": "High"}}
    assert [task.priority for task in bulk.unwrap()] == ["High", "High"]


@pytest.mark.asyncio
async def test_load_from_remote_replaces_local_records(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    backend.records["customers"] = [
        {
            "id": 7,
            "name": "Remote",
            "email": "r@x.com",
            "orderValue": "12.5",
            "tags": ["Imported"],
            "status": "Active",
            "updated_at": "2024-06-01T10:00:00Z",
        }
    ]
    store = CustomerStore([Customer(id=1, name="Local", email="l@x.com")])

    result = await store.load_from_remote(api_client)

    assert result.success
    (customer,) = store.items
    assert customer.id == 7
    assert customer.order_value == 12.5
    assert customer.tags == ["Imported"]
    assert store.next_id() == 8


@pytest.mark.asyncio
async def test_load_from_remote_failure_keeps_local_records(
    unreachable_api: CrmApiClient,
) -> None:
    store = CustomerStore([Customer(id=1, name="Local", email="l@x.com")])

    result = await store.load_from_remote(unreachable_api)

    assert not result.success
    assert [customer.name for customer in store] == ["Local"]


@pytest.mark.asyncio
async def test_load_from_remote_rejects_row_without_id(
    api_client: CrmApiClient, backend: FakeBackend
) -> None:
    backend.records["tasks"] = [{"title": "No id", "status": "Pending"}]
    store = TaskStore([Task(id=1, title="Local")])

    result = await store.load_from_remote(api_client)

    assert not result.success
    assert [task.title for task in store] == ["Local"]
