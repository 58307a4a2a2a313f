"""Single-slot transient notification channel."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, get_args

from .datetime_utils import utcnow

LOGGER = logging.getLogger(__name__)

Severity = Literal["success", "error", "warning", "info"]
SEVERITIES: tuple[str, ...] = get_args(Severity)


@dataclass(frozen=True, slots=True)
class Notification:
    """Message shown to the user until dismissed or expired."""

    id: int
    message: str
    severity: str
    title: str | None
    duration_ms: int
    auto_hide: bool
    shown_at: datetime

    @property
    def expires_at(self) -> datetime | None:
        """Return the moment an auto-hiding notification disappears."""
        if not self.auto_hide:
            return None
        return self.shown_at + timedelta(milliseconds=self.duration_ms)

    def is_expired(self, now: datetime) -> bool:
        """Check whether the notification should no longer be visible."""
        expires_at = self.expires_at
        return expires_at is not None and now >= expires_at


class NotificationCenter:
    """Holds at most one notification; a new one replaces the current one."""

    def __init__(
        self,
        default_duration_ms: int = 5000,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialise an empty notification slot."""
        self._default_duration_ms = default_duration_ms
        self._clock = clock
        self._current: Notification | None = None
        self._ids = itertools.count(1)

    @property
    def current(self) -> Notification | None:
        """Return the visible notification, dropping it once expired."""
        if self._current and self._current.is_expired(self._clock()):
            LOGGER.debug("Notification %s expired", self._current.id)
            self._current = None
        return self._current

    def show(
        self,
        message: str,
        severity: str = "success",
        *,
        title: str | None = None,
        duration_ms: int | None = None,
        auto_hide: bool = True,
    ) -> Notification:
        """Replace the current notification with a new one."""
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown notification severity: {severity}")
        notification = Notification(
            id=next(self._ids),
            message=message,
            severity=severity,
            title=title,
            duration_ms=(
                self._default_duration_ms if duration_ms is None else duration_ms
            ),
            auto_hide=auto_hide,
            shown_at=self._clock(),
        )
        self._current = notification
        LOGGER.debug("Showing %s notification: %s", severity, message)
        return notification

    def hide(self) -> None:
        """Dismiss the current notification."""
        self._current = None

    def success(self, message: str, **options: object) -> Notification:
        return self.show(message, "success", **options)  # type: ignore[arg-type]

    def error(self, message: str, **options: object) -> Notification:
        return self.show(message, "error", **options)  # type: ignore[arg-type]

    def warning(self, message: str, **options: object) -> Notification:
        return self.show(message, "warning", **options)  # type: ignore[arg-type]

    def info(self, message: str, **options: object) -> Notification:
        return self.show(message, "info", **options)  # type: ignore[arg-type]


__all__ = ["Notification", "NotificationCenter", "SEVERITIES", "Severity"]
