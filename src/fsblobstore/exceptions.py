"""Exception hierarchy for fsblobstore.

All errors raised by the store inherit from BlobStoreError, so callers can
catch every store-specific failure with a single handler. Raw OSError and
path-parsing errors are translated into this vocabulary at the adapter
boundary and never leak to callers.
"""

from typing import Any


class BlobStoreError(Exception):
    """Base exception for all fsblobstore errors.

    Attributes:
        message: Human-readable error message
        **kwargs: Additional context stored as attributes
    """

    def __init__(self, message: str, **kwargs: Any) -> None:
        """Initialize exception with message and optional context.

        Args:
            message: Human-readable error description
            **kwargs: Additional context (e.g., container, key, path)
        """
        super().__init__(message)
        self.message = message

        for key, value in kwargs.items():
            setattr(self, key, value)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class InvalidNameError(BlobStoreError, ValueError):
    """Raised when a container name or blob key is unsafe as a filesystem path.

    Validation happens before any I/O, so an operation that raises this
    error has not touched the filesystem.

    Common scenarios:
    - Container name containing a path separator ("file/system")
    - Blob key with a leading separator ("/test.jpg")
    - ".." segments or NUL characters
    """

    pass


class StorageIOError(BlobStoreError):
    """Raised when a filesystem operation fails.

    Wraps OSError (permission denied, disk full, names rejected by the
    operating system) with the path and operation that failed.

    Attributes:
        path: Filesystem path involved, when known
        operation: Name of the failing store operation
    """

    def __init__(
        self,
        message: str,
        path: Any = None,
        operation: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, path=path, operation=operation, **kwargs)


class ContentLengthMismatchError(StorageIOError):
    """Raised when a payload's declared length differs from the bytes written.

    Attributes:
        expected: Declared content length
        actual: Number of bytes actually read from the payload
    """

    def __init__(self, message: str, expected: int, actual: int, **kwargs: Any) -> None:
        super().__init__(message, expected=expected, actual=actual, **kwargs)


class ContainerNotFoundError(BlobStoreError):
    """Raised when an operation requires a container that does not exist."""

    pass


class ConfigurationError(BlobStoreError):
    """Raised when configuration is invalid or missing.

    Common scenarios:
    - Invalid YAML syntax
    - Unknown or mistyped fields
    - Failed environment variable substitution
    """

    pass
