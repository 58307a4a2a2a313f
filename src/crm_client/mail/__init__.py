"""Outgoing email: sending, queueing, templates, and provider settings."""

from .service import PROVIDER_PRESETS, BulkSendReport, MailService, provider_preset
from .templates import DEFAULT_TEMPLATES, apply_template, find_template

__all__ = [
    "BulkSendReport",
    "DEFAULT_TEMPLATES",
    "MailService",
    "PROVIDER_PRESETS",
    "apply_template",
    "find_template",
    "provider_preset",
]
