"""Error taxonomy for the placement portal."""

from __future__ import annotations

from typing import Any


class PortalError(Exception):
    """Base class for all portal errors. Messages are display-ready."""


class TransportError(PortalError):
    """Network failure, timeout or throttling response from the remote store."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteWriteError(PortalError):
    """The remote store rejected a write, or kept failing after retries."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteReadError(PortalError):
    """The remote store rejected a read (4xx)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(PortalError):
    """A record addressed by key does not exist."""


class ValidationError(PortalError):
    """Raised when a record fails validation at the system boundary."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class BulkImportError(PortalError):
    """A bulk import stopped partway. ``report`` holds the progress made."""

    def __init__(self, message: str, report: Any):
        super().__init__(message)
        self.report = report
