"""Coercion helpers applied to user input before it reaches a record."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from crm_client.core.models import Attachment
from crm_client.transport.field_mapping import attachment_from_wire


def normalize_tags(value: str | Iterable[str] | None) -> list[str]:
    """Split comma separated tag text into trimmed, non-empty tags.

    >>> normalize_tags("VIP, Enterprise, ")
    ['VIP', 'Enterprise']
    """
    if value is None:
        return []
    parts = value.split(",") if isinstance(value, str) else value
    return [tag.strip() for tag in parts if tag and tag.strip()]


def coerce_amount(value: Any) -> float:
    """Parse a monetary amount, falling back to ``0.0`` for unusable input."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def coerce_optional_id(value: Any) -> int | None:
    """Return ``value`` as an integer id; empty values map to ``None``."""
    if value is None or value == "":
        return None
    return int(value)


def coerce_text(value: Any) -> str:
    return "" if value is None else str(value)


def coerce_attachments(value: Any) -> list[Attachment]:
    if not value:
        return []
    return [attachment_from_wire(item) for item in value]


def choice(options: tuple[str, ...], label: str) -> Callable[[Any], str]:
    """Build a coercer accepting only one of ``options``."""

    def _coerce(value: Any) -> str:
        if value not in options:
            allowed = ", ".join(options)
            raise ValueError(f"Invalid {label} '{value}'; expected one of: {allowed}")
        return str(value)

    return _coerce


__all__ = [
    "choice",
    "coerce_amount",
    "coerce_attachments",
    "coerce_optional_id",
    "coerce_text",
    "normalize_tags",
]
