"""Shared fixtures: a fake CRM backend served through httpx's ASGI transport."""

from __future__ import annotations

import itertools
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from crm_client.core.config import ApiSettings
from crm_client.transport import CrmApiClient

BASE_URL = "http://crm.test"
FIXED_NOW = datetime(2024, 6, 10, 9, 30, tzinfo=UTC)


def fixed_clock() -> datetime:
    return FIXED_NOW


@dataclass
class RecordedRequest:
    method: str
    path: str
    body: Any
    params: dict[str, str]


@dataclass
class FakeBackend:
    """In-memory stand-in for the CRM server with switchable failures."""

    requests: list[RecordedRequest] = field(default_factory=list)
    records: dict[str, list[dict[str, Any]]] = field(
        default_factory=lambda: {"customers": [], "tasks": []}
    )
    failures: dict[str, tuple[int, dict[str, Any]]] = field(default_factory=dict)
    bulk_failures: set[int] = field(default_factory=set)
    email_config: dict[str, Any] = field(
        default_factory=lambda: {
            "smtp": {"configured": True, "host": "smtp.gmail.com"},
            "imap": {"configured": False},
        }
    )
    message_ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def fail(
        self, path: str, status: int = 500, payload: dict[str, Any] | None = None
    ) -> None:
        self.failures[path] = (
            status,
            payload or {"success": False, "message": "Backend unavailable"},
        )

    def calls(self, method: str | None = None) -> list[RecordedRequest]:
        return [
            request
            for request in self.requests
            if method is None or request.method == method
        ]

    def next_message_id(self) -> str:
        return f"<msg-{next(self.message_ids)}@crm.test>"


def create_backend_app(backend: FakeBackend) -> FastAPI:
    app = FastAPI()

    async def _record(request: Request) -> JSONResponse | None:
        raw = await request.body()
        backend.requests.append(
            RecordedRequest(
                method=request.method,
                path=request.url.path,
                body=await request.json() if raw else None,
                params=dict(request.query_params),
            )
        )
        failure = backend.failures.get(request.url.path)
        if failure is None:
            return None
        status, payload = failure
        return JSONResponse(status_code=status, content=payload)

    @app.get("/api/database/{resource}")
    async def list_records(resource: str, request: Request):
        return await _record(request) or {
            "success": True,
            "data": backend.records.get(resource, []),
        }

    @app.post("/api/database/{resource}")
    async def create_record(resource: str, request: Request):
        failure = await _record(request)
        if failure is not None:
            return failure
        body = backend.requests[-1].body or {}
        return {"success": True, "data": {"id": 900, **body}, "resource": resource}

    @app.put("/api/database/{resource}")
    async def update_record(resource: str, request: Request):
        return await _record(request) or {"success": True, "resource": resource}

    @app.put("/api/database/{resource}/{endpoint}")
    async def update_record_endpoint(resource: str, endpoint: str, request: Request):
        return await _record(request) or {"success": True, "endpoint": endpoint}

    @app.delete("/api/database/{resource}")
    async def delete_record(resource: str, request: Request):
        return await _record(request) or {"success": True, "resource": resource}

    @app.post("/api/send-email")
    async def send_email(request: Request):
        return await _record(request) or {
            "success": True,
            "messageId": backend.next_message_id(),
        }

    @app.post("/api/bulk-email")
    async def bulk_email(request: Request):
        failure = await _record(request)
        if failure is not None:
            return failure
        emails = backend.requests[-1].body["emails"]
        results = [
            {"success": False, "error": "Mailbox unavailable"}
            if index in backend.bulk_failures
            else {"success": True, "messageId": backend.next_message_id()}
            for index, _ in enumerate(emails)
        ]
        successful = sum(1 for result in results if result["success"])
        return {
            "success": True,
            "results": results,
            "summary": {"successful": successful, "failed": len(results) - successful},
        }

    @app.get("/api/email/config")
    async def get_email_config(request: Request):
        return await _record(request) or {
            "success": True,
            "config": backend.email_config,
        }

    @app.post("/api/email/config")
    async def save_email_config(request: Request):
        return await _record(request) or {"success": True}

    @app.post("/api/email/test")
    async def test_email_connection(request: Request):
        return await _record(request) or {
            "success": True,
            "message": "Connection successful",
        }

    return app


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def api_client(backend: FakeBackend) -> AsyncGenerator[CrmApiClient, None]:
    """API client wired to the fake backend."""
    transport = httpx.ASGITransport(app=create_backend_app(backend))
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http:
        yield CrmApiClient(ApiSettings(base_url=BASE_URL), client=http)


@pytest_asyncio.fixture
async def unreachable_api() -> AsyncGenerator[CrmApiClient, None]:
    """Client whose every request fails at the transport level."""

    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    transport = httpx.MockTransport(_refuse)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http:
        yield CrmApiClient(ApiSettings(base_url=BASE_URL), client=http)
