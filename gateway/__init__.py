"""
Remote store gateway for the placement portal.

Wraps the Google Sheets values API behind a uniform get/add/update/batch
contract with retries, response caching and a local fallback snapshot.
"""

from gateway.fallback import FallbackStore, FileFallbackStore
from gateway.http_client import SheetsClient
from gateway.store import RemoteStoreGateway, WriteResult

__all__ = [
    "FallbackStore",
    "FileFallbackStore",
    "RemoteStoreGateway",
    "SheetsClient",
    "WriteResult",
]
