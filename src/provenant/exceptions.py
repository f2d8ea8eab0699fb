"""Provenant exceptions."""

from collections.abc import Collection
from pathlib import Path


class ProvenantError(Exception):
    """Base exception for provenant errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(ProvenantError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration values fail validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        value: object = None,
        expected: str | None = None,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and the offending key and source."""
        super().__init__(message)
        self.key: str | None = key
        self.value: object = value
        self.expected: str | None = expected
        self.source: str | None = source


# =============================================================================
# Registry Exceptions
# =============================================================================


class RegistryError(ProvenantError):
    """Base exception for artifact registry operations."""


class ArtifactNotFoundError(RegistryError, KeyError):
    """Raised when an artifact name is not present in the registry.

    Attributes:
        name: The artifact name that could not be found.
        referenced_by: The artifact whose input list referenced ``name``, if the
            lookup came from a provenance edge rather than a direct request.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        referenced_by: str | None = None,
    ) -> None:
        """Initialize with error message and artifact context.

        Args:
            message: Human-readable error message.
            name: The artifact name that could not be found.
            referenced_by: The artifact that referenced the missing name.
        """
        super().__init__(message)
        self.name: str | None = name
        self.referenced_by: str | None = referenced_by

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class DuplicateNameError(RegistryError, ValueError):
    """Raised when registering a name that already exists.

    Attributes:
        name: The artifact name that already exists.
    """

    def __init__(self, message: str, *, name: str | None = None) -> None:
        """Initialize with error message and artifact context."""
        super().__init__(message)
        self.name: str | None = name


class InvalidTypeError(RegistryError, ValueError):
    """Raised when an artifact type is outside the allowed set.

    Attributes:
        name: The artifact being registered.
        artifact_type: The rejected type.
        allowed_types: The types that would have been accepted.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        artifact_type: str | None = None,
        allowed_types: Collection[str] = (),
    ) -> None:
        """Initialize with error message and type context."""
        super().__init__(message)
        self.name: str | None = name
        self.artifact_type: str | None = artifact_type
        self.allowed_types: tuple[str, ...] = tuple(sorted(allowed_types))


class ArtifactFileNotFoundError(RegistryError, FileNotFoundError):
    """Raised when an artifact's file is missing from disk.

    Attributes:
        name: The artifact whose file is missing.
        path: The path that was expected to exist.
    """

    def __init__(self, message: str, *, name: str | None, path: Path) -> None:
        """Initialize with error message and file context."""
        super().__init__(message)
        self.name: str | None = name
        self.path: Path = path
        self.filename: str = str(path)

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class HashMismatchError(RegistryError):
    """Raised on request when a file no longer matches its recorded hash.

    Verification itself reports mismatches as data; this error exists for
    callers that want a hard failure.

    Attributes:
        name: The artifact that failed verification.
        expected: The hash recorded at registration.
        actual: The hash of the current bytes, or None if the file is gone.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str,
        expected: str,
        actual: str | None,
    ) -> None:
        """Initialize with error message and hash context."""
        super().__init__(message)
        self.name: str = name
        self.expected: str = expected
        self.actual: str | None = actual


class RegistryStoreError(RegistryError):
    """Raised when the registry document cannot be read or written.

    Attributes:
        path: Path to the registry document.
        operation: The operation that failed ("read", "write").
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        operation: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and I/O context."""
        super().__init__(message)
        self.path: Path = path
        self.operation: str = operation
        self.cause: Exception | None = cause


class CorruptRegistryError(RegistryStoreError):
    """Raised when an existing registry document cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and parse context."""
        super().__init__(message, path=path, operation="read", cause=cause)


class ConcurrentModificationError(RegistryStoreError):
    """Raised when the registry changed on disk since it was loaded.

    Attributes:
        expected_revision: Revision the caller's registry was based on.
        actual_revision: Revision currently on disk.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        expected_revision: int,
        actual_revision: int,
    ) -> None:
        """Initialize with error message and revision context."""
        super().__init__(message, path=path, operation="write")
        self.expected_revision: int = expected_revision
        self.actual_revision: int = actual_revision


# =============================================================================
# Bundle Exceptions
# =============================================================================


class BundleError(ProvenantError):
    """Raised when a release bundle cannot be built or read.

    Attributes:
        bundle_name: Name of the bundle being processed.
    """

    def __init__(self, message: str, *, bundle_name: str | None = None) -> None:
        """Initialize with error message and bundle context."""
        super().__init__(message)
        self.bundle_name: str | None = bundle_name
