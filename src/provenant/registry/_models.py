"""Data classes for the artifact registry.

This module defines the immutable values the registry API passes around:
- Artifact, one registered file with its fingerprint and provenance edges
- Registry, the whole document plus the project root paths resolve against
- VerificationResult and RegistryValidationResult for integrity checks
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from provenant.exceptions import HashMismatchError

SCHEMA_VERSION = "1.0"

PROJECT_DIR_NAME = ".provenant"

RELEASE_BUNDLE_TYPE = "release_bundle"

DEFAULT_ARTIFACT_TYPES: frozenset[str] = frozenset(
    {
        "raw_input",
        "raw_data",
        "checkpoint",
        "processed_data",
        "intermediate",
        "results",
        "plot_object",
        "report",
        "validation_report",
        RELEASE_BUNDLE_TYPE,
    }
)


@dataclass(frozen=True, slots=True)
class Artifact:
    """A registered file with its integrity fingerprint and provenance.

    Attributes:
        name: Unique, caller-assigned identifier.
        type: Category from the allowed type set.
        file_path: POSIX path relative to the project root, or absolute when
            the file lives outside the root.
        content_hash: SHA-256 hex digest of the bytes at registration.
        size_bytes: File size at registration.
        created_at: Registration time (UTC).
        input_artifacts: Names of the artifacts this one was derived from.
        metadata: Free-form caller data, never interpreted except ``workflow``.
        data_hash: Optional digest of the logical (tabular) content.
    """

    name: str
    type: str
    file_path: str
    content_hash: str
    size_bytes: int
    created_at: datetime
    input_artifacts: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)  # pyright: ignore[reportExplicitAny]
    data_hash: str | None = None

    @property
    def workflow(self) -> str | None:
        """The pipeline workflow that produced this artifact, if recorded."""
        value = self.metadata.get("workflow")
        return None if value is None else str(value)

    def resolve_path(self, root: Path) -> Path:
        """Return the absolute location of the artifact's file under ``root``."""
        path = Path(self.file_path)
        if path.is_absolute():
            return path
        return root / path


@dataclass(frozen=True, slots=True)
class Registry:
    """An immutable snapshot of the registry document.

    Every mutating operation returns a new Registry; the value it was derived
    from is left untouched and should be discarded.

    Attributes:
        root: Directory relative artifact paths resolve against. Not persisted.
        artifacts: Artifacts keyed by name, in registration order.
        version: Schema version of the document.
        created_at: When the registry was first written.
        last_modified_at: Time of the most recent registration or prune.
        revision: Save counter used to detect concurrent writers.
    """

    root: Path
    artifacts: dict[str, Artifact] = field(default_factory=dict)
    version: str = SCHEMA_VERSION
    created_at: datetime | None = None
    last_modified_at: datetime | None = None
    revision: int = 0

    def __contains__(self, name: object) -> bool:
        return name in self.artifacts

    @property
    def names(self) -> tuple[str, ...]:
        """Artifact names in registration order."""
        return tuple(self.artifacts)

    def resolve(self, artifact: Artifact) -> Path:
        """Return the absolute path of an artifact's file."""
        return artifact.resolve_path(self.root)


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome of checking an artifact's file against its recorded hash.

    Attributes:
        name: Artifact that was checked.
        valid: True when the file exists and its hash matches.
        expected: Hash recorded at registration.
        actual: Hash of the current bytes, or None if the file is missing.
        path: Absolute path that was hashed.
    """

    name: str
    valid: bool
    expected: str
    actual: str | None
    path: Path

    @property
    def missing(self) -> bool:
        """Whether the file was absent."""
        return self.actual is None

    def raise_if_invalid(self) -> None:
        """Raise HashMismatchError if verification failed.

        Raises:
            HashMismatchError: If the file is missing or its hash differs.
        """
        if self.valid:
            return
        if self.actual is None:
            msg = f"Artifact '{self.name}' file is missing: {self.path}"
        else:
            msg = (
                f"Artifact '{self.name}' content changed since registration: "
                f"expected {self.expected}, found {self.actual}"
            )
        raise HashMismatchError(msg, name=self.name, expected=self.expected, actual=self.actual)


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A single problem found while validating a registry.

    Attributes:
        level: Severity level ("error" or "warning").
        message: Human-readable description.
        artifact: Name of the artifact involved (if applicable).
    """

    level: Literal["error", "warning"]
    message: str
    artifact: str | None = None


@dataclass(frozen=True, slots=True)
class RegistryValidationResult:
    """Aggregate result of validating a registry.

    Attributes:
        missing_types: Required types with no registered artifact.
        missing_files: Names of artifacts whose files are gone.
        dangling_inputs: (artifact, missing input) pairs.
        hash_mismatches: Names whose files changed (only when hashes checked).
        issues: Every problem as a ValidationIssue, in discovery order.
    """

    missing_types: tuple[str, ...] = ()
    missing_files: tuple[str, ...] = ()
    dangling_inputs: tuple[tuple[str, str], ...] = ()
    hash_mismatches: tuple[str, ...] = ()
    issues: tuple[ValidationIssue, ...] = ()

    @property
    def errors(self) -> tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.level == "error")

    @property
    def warnings(self) -> tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.level == "warning")

    @property
    def valid(self) -> bool:
        """True when there are no errors; warnings do not fail validation."""
        return not self.errors
