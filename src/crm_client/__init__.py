"""Client-side state and sync core for a small CRM."""

from .workspace import CrmWorkspace

__version__ = "0.1.0"

__all__ = ["CrmWorkspace", "__version__"]
