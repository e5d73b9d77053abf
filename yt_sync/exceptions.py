"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class YtSyncError(Exception):
    """Base exception for all application-specific errors."""


class IdentityError(YtSyncError):
    """Raised when a local file's item id cannot be extracted."""


class RemoteUnavailable(YtSyncError):
    """Raised when a playlist listing cannot be fetched (network, extractor errors)."""


class RemoteNotFound(YtSyncError):
    """Raised when the remote playlist does not exist or is private."""


class FetchFailed(YtSyncError):
    """
    Raised when a single item could not be fetched.

    ``retryable`` tells the executor whether another attempt may succeed.
    """

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class IntegrityError(FetchFailed):
    """Raised when a fetched file fails its post-download integrity check."""

    def __init__(self, message: str):
        super().__init__(message, retryable=True)


class ReconcileError(YtSyncError):
    """Raised when the remote and local snapshots cannot be reconciled."""


class DuplicateIdError(ReconcileError):
    """Raised when an id appears more than once within a single snapshot."""


class ManifestWriteError(YtSyncError):
    """Raised when the playlist manifest cannot be written."""


class ConfigError(YtSyncError):
    """Raised when a single sync target is misconfigured."""


class ConfigurationError(YtSyncError):
    """Raised for issues with the configuration file as a whole."""


class SyncCancelled(YtSyncError):
    """Raised inside a target run once the user has cancelled the sync."""
