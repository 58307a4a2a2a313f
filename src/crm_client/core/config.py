"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class ApiSettings(BaseModel):
    """Settings controlling access to the CRM REST backend."""

    base_url: str = Field(
        default="http://localhost:3000", description="Backend base URL"
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Request timeout; None waits indefinitely",
    )


class SyncSettings(BaseModel):
    """Settings controlling best-effort mirroring of local mutations."""

    connected: bool = Field(
        default=False, description="Whether the backend database is reachable"
    )
    wait_for_remote: bool = Field(
        default=True,
        description="Await the detached sync task before returning a result",
    )


class NotificationSettings(BaseModel):
    """Defaults for transient user notifications."""

    default_duration_ms: int = Field(
        default=5000, ge=0, description="Visible duration before auto-dismiss"
    )


class MailSettings(BaseModel):
    """Settings used when composing outgoing email."""

    sender_name: str = Field(
        default="Your Name", description="Name substituted into templates"
    )
    sender_address: str = Field(
        default="sales@company.com",
        description="Address recorded as the sender of outgoing email",
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )
    loggers: dict[str, str] = Field(
        default_factory=dict,
        description="Per-logger level overrides, e.g. {'crm_client.transport': 'DEBUG'}",
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    api: ApiSettings = Field(default_factory=ApiSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    mail: MailSettings = Field(default_factory=MailSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_PREFIX = "CRM_CLIENT_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=4)
def _load_cached_settings(
    env_file: Path | str | None, include_environment: bool
) -> AppSettings:
    collected = _collect_env_values(
        env_file, include_environment=include_environment
    )
    return AppSettings.model_validate(collected)


def load_app_settings(
    env_file: Path | str | None = None,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides.

    Calls without ``overrides`` share a cached instance per env file.
    Section overrides such as ``sync={"connected": True}`` replace the
    loaded section and bypass the cache.
    """
    if not overrides:
        return _load_cached_settings(env_file, include_environment)
    collected = _collect_env_values(
        env_file, include_environment=include_environment
    )
    collected.update(overrides)
    return AppSettings.model_validate(collected)


def clear_settings_cache() -> None:
    """Forget cached settings so the next load re-reads the environment."""
    _load_cached_settings.cache_clear()


__all__ = [
    "ApiSettings",
    "AppSettings",
    "LoggingSettings",
    "MailSettings",
    "NotificationSettings",
    "SyncSettings",
    "clear_settings_cache",
    "load_app_settings",
]
