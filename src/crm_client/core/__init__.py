"""Core utilities for configuration, logging, results, and notifications."""

from .config import AppSettings, SyncSettings, load_app_settings
from .logging import configure_logging
from .notifications import Notification, NotificationCenter
from .results import OperationResult

__all__ = [
    "AppSettings",
    "Notification",
    "NotificationCenter",
    "OperationResult",
    "SyncSettings",
    "configure_logging",
    "load_app_settings",
]
