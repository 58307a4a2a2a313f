"""Async HTTP client for the CRM REST backend."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any

import httpx

from crm_client.core.config import ApiSettings

LOGGER = logging.getLogger(__name__)

DATABASE_PREFIX = "/api/database"
EMAIL_CONFIG_PATH = "/api/email/config"
EMAIL_TEST_PATH = "/api/email/test"
SEND_EMAIL_PATH = "/api/send-email"
BULK_EMAIL_PATH = "/api/bulk-email"


class ApiError(RuntimeError):
    """Raised when the backend is unreachable or rejects a request."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = dict(payload) if payload else {}


def resource_path(resource: str, endpoint: str | None = None) -> str:
    """Return the database path for ``resource`` and an optional sub-endpoint."""
    path = f"{DATABASE_PREFIX}/{resource}"
    if endpoint:
        path = f"{path}/{endpoint.strip('/')}"
    return path


class CrmApiClient:
    """Thin async client over the backend's JSON endpoints.

    Every call checks both the HTTP status and the payload-level ``success``
    flag; either failing raises :class:`ApiError`.

    Example:
        >>> async with CrmApiClient(ApiSettings(base_url="http://crm.local")) as api:
        ...     customers = await api.list_records("customers")
    """

    def __init__(
        self, settings: ApiSettings, *, client: httpx.AsyncClient | None = None
    ) -> None:
        """Create the client, reusing ``client`` when one is injected."""
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> CrmApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        payload: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and return the decoded JSON object."""
        LOGGER.debug("%s %s", method, path)
        try:
            response = await self._client.request(
                method, path, json=payload, params=params
            )
        except httpx.HTTPError as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        data = _decode(response)
        if response.is_error:
            message = _payload_message(data) or (
                f"{method} {path} returned HTTP {response.status_code}"
            )
            raise ApiError(message, status_code=response.status_code, payload=data)
        if data.get("success") is False:
            message = _payload_message(data) or "Backend reported failure"
            raise ApiError(message, status_code=response.status_code, payload=data)
        return data

    async def list_records(self, resource: str) -> list[dict[str, Any]]:
        """Return all records stored remotely for ``resource``."""
        data = await self.request("GET", resource_path(resource))
        records = data.get("data", [])
        if not isinstance(records, list):
            raise ApiError(f"Unexpected payload listing {resource}", payload=data)
        return records

    async def create_record(
        self, resource: str, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self.request("POST", resource_path(resource), payload=dict(payload))

    async def update_record(
        self,
        resource: str,
        payload: Mapping[str, Any],
        *,
        endpoint: str | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            "PUT", resource_path(resource, endpoint), payload=dict(payload)
        )

    async def delete_record(
        self, resource: str, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self.request("DELETE", resource_path(resource), params=params)

    async def send_email(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return await self.request("POST", SEND_EMAIL_PATH, payload=dict(payload))

    async def send_bulk_email(
        self, emails: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        return await self.request(
            "POST", BULK_EMAIL_PATH, payload={"emails": [dict(e) for e in emails]}
        )

    async def get_email_config(self) -> dict[str, Any]:
        return await self.request("GET", EMAIL_CONFIG_PATH)

    async def save_email_config(
        self, provider: str, config: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            EMAIL_CONFIG_PATH,
            payload={"provider": provider, "config": dict(config)},
        )

    async def test_email_connection(
        self, provider: str, config: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            EMAIL_TEST_PATH,
            payload={"provider": provider, "config": dict(config)},
        )


def _decode(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except json.JSONDecodeError as exc:
        if response.is_error:
            return {}
        raise ApiError(
            "Backend returned invalid JSON", status_code=response.status_code
        ) from exc
    if not isinstance(data, dict):
        raise ApiError(
            "Backend returned a non-object payload", status_code=response.status_code
        )
    return data


def _payload_message(data: Mapping[str, Any]) -> str | None:
    message = data.get("message") or data.get("error")
    return str(message) if message else None


__all__ = ["ApiError", "CrmApiClient", "resource_path"]
