"""Core infrastructure: errors, config, shared context, logging and utilities."""

from core import verbose
from core.errors import (
    BulkImportError,
    NotFoundError,
    PortalError,
    RemoteReadError,
    RemoteWriteError,
    TransportError,
    ValidationError,
)
from core.cache import SheetCache
from core.config import PortalConfig, Settings, load_config
from core.context import ActivityEntry, DistributionStats, PortalContext
from core.ids import generate_placement_id
from core.logging import configure_logging

__all__ = [
    "BulkImportError",
    "NotFoundError",
    "PortalError",
    "RemoteReadError",
    "RemoteWriteError",
    "TransportError",
    "ValidationError",
    "SheetCache",
    "PortalConfig",
    "Settings",
    "load_config",
    "ActivityEntry",
    "DistributionStats",
    "PortalContext",
    "generate_placement_id",
    "configure_logging",
    "verbose",
]
