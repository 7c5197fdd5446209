"""
Custom exceptions for storage backends.
"""


class StorageError(Exception):
    """Base exception for storage errors."""
    pass


class ConfigurationError(StorageError):
    """Configuration-related errors (missing or invalid config)."""
    pass


class InvalidCustomUrl(ConfigurationError):
    """The custom public base URL is not a valid absolute URL."""

    def __init__(self, url: str = None):
        super().__init__(f"Invalid custom URL: {url!r}" if url is not None else "Invalid custom URL")
        self.url = url


class KeyNotSet(ConfigurationError):
    """A signed URL was requested but no account key is configured."""

    def __init__(self, message: str = "You must set the account key to generate temporary URLs"):
        super().__init__(message)


class CapabilityNotSupported(StorageError):
    """The backing store cannot perform the requested operation."""

    def __init__(self, operation: str, path: str = None, reason: str = None):
        message = f"Unable to {operation}"
        if path is not None:
            message += f" for file at location: {path}"
        if reason:
            message += f". {reason}"
        super().__init__(message)
        self.operation = operation
        self.path = path
        self.reason = reason


class MetadataUnavailable(StorageError):
    """Blob properties could not be retrieved."""

    def __init__(self, path: str, metadata_type: str = 'metadata', reason: str = ''):
        message = f"Unable to retrieve the {metadata_type} for file at location: {path}."
        if reason:
            message += f" {reason}"
        super().__init__(message)
        self.path = path
        self.metadata_type = metadata_type
        self.reason = reason


class CopyFailed(StorageError):
    """A server-side blob copy did not finish with status ``success``."""

    def __init__(self, source: str, destination: str, status: str = None):
        super().__init__(f"Copy from {source} to {destination} ended with status {status!r}")
        self.source = source
        self.destination = destination
        self.status = status
