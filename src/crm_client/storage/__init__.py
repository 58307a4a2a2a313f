"""In-memory stores owning the CRM records."""

from .customers import CustomerStore
from .emails import EmailQueue, EmailStore
from .memory import EntityStore
from .normalize import normalize_tags
from .tasks import TaskStore

__all__ = [
    "CustomerStore",
    "EmailQueue",
    "EmailStore",
    "EntityStore",
    "TaskStore",
    "normalize_tags",
]
