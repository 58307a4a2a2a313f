"""Transport adapters for the CRM REST backend."""

from .api_client import ApiError, CrmApiClient
from .sync import RemoteSyncAdapter

__all__ = ["ApiError", "CrmApiClient", "RemoteSyncAdapter"]
