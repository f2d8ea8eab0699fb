# pyright: reportAny=false
"""Registration, query and integrity operations on Registry values.

Every function here is pure with respect to the registry: operations that
change the artifact set return a new Registry and leave their argument
untouched. Only ``save_and_register`` touches the filesystem beyond reading
and hashing artifact files, and only to persist the object it is given.

Example:
    >>> from pathlib import Path
    >>> from provenant.registry import load, register, save
    >>> registry = load(Path(".provenant/registry.yaml"), root=Path("."))
    >>> registry = register(
    ...     registry,
    ...     "raw_survey",
    ...     "raw_data",
    ...     "data/raw/survey.csv",
    ...     allowed_types={"raw_data", "report"},
    ... )
    >>> registry = save(registry, Path(".provenant/registry.yaml"))
"""

import os
import shutil
import tempfile
from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any

import polars as pl
from structlog.typing import FilteringBoundLogger

from provenant.exceptions import (
    ArtifactFileNotFoundError,
    ArtifactNotFoundError,
    DuplicateNameError,
    InvalidTypeError,
)
from provenant.hashing import hash_file, hash_tabular
from provenant.registry._models import (
    Artifact,
    Registry,
    RegistryValidationResult,
    ValidationIssue,
    VerificationResult,
)
from provenant.utils import create_null_logger, parse_timestamp, utc_now

__all__ = [
    "default_artifact_name",
    "find_by_hash",
    "get",
    "get_latest",
    "get_or_raise",
    "list_artifacts",
    "prune",
    "register",
    "save_and_register",
    "validate_registry",
    "verify",
    "verify_all",
]

_PARQUET_SUFFIXES = frozenset({".parquet", ".pq"})


# =============================================================================
# Paths
# =============================================================================


def _absolute(file_path: Path | str, root: Path) -> Path:
    path = Path(file_path)
    if not path.is_absolute():
        path = root / path
    # abspath normalizes ".." without following symlinks
    return Path(os.path.abspath(path))  # noqa: PTH100


def _stored_path(absolute: Path, root: Path) -> str:
    try:
        return absolute.relative_to(Path(os.path.abspath(root))).as_posix()  # noqa: PTH100
    except ValueError:
        return absolute.as_posix()


# =============================================================================
# Registration
# =============================================================================


def _check_registration(
    registry: Registry,
    name: str,
    artifact_type: str,
    *,
    allowed_types: Collection[str],
    input_artifacts: Sequence[str],
) -> tuple[str, ...]:
    if artifact_type not in allowed_types:
        msg = (
            f"Cannot register '{name}': type '{artifact_type}' is not one of "
            f"{', '.join(sorted(allowed_types))}"
        )
        raise InvalidTypeError(
            msg, name=name, artifact_type=artifact_type, allowed_types=allowed_types
        )

    if not name or not name.strip():
        msg = "Artifact name must be a non-empty string"
        raise ValueError(msg)

    if name in registry.artifacts:
        msg = f"Artifact '{name}' is already registered; names are unique"
        raise DuplicateNameError(msg, name=name)

    for input_name in input_artifacts:
        if input_name not in registry.artifacts:
            msg = (
                f"Cannot register '{name}': input artifact '{input_name}' "
                "is not in the registry"
            )
            raise ArtifactNotFoundError(msg, name=input_name, referenced_by=name)

    inputs = tuple(input_artifacts)
    if len(set(inputs)) != len(inputs):
        duplicates = sorted({i for i in inputs if inputs.count(i) > 1})
        msg = f"Cannot register '{name}': duplicate input artifacts {', '.join(duplicates)}"
        raise ValueError(msg)

    return inputs


def register(  # noqa: PLR0913
    registry: Registry,
    name: str,
    artifact_type: str,
    file_path: Path | str,
    *,
    allowed_types: Collection[str],
    input_artifacts: Sequence[str] = (),
    metadata: Mapping[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    data_hash: str | None = None,
    now: datetime | None = None,
    logger: FilteringBoundLogger | None = None,
) -> Registry:
    """Register an existing file as a new artifact.

    Checks run in a fixed order: the file exists, the type is allowed, the
    name is non-empty and unused, every input is registered, inputs are not
    repeated. Because inputs must already exist, the provenance graph stays
    acyclic by construction.

    Args:
        registry: Current registry value. It is not modified.
        name: Unique name for the new artifact.
        artifact_type: Category, which must be in ``allowed_types``.
        file_path: The artifact's file. Relative paths resolve against
            ``registry.root``.
        allowed_types: Types accepted for registration.
        input_artifacts: Names of artifacts this one was derived from.
        metadata: Free-form data to record with the artifact.
        data_hash: Optional digest of the logical content (see
            ``hash_tabular``).
        now: Registration timestamp. Defaults to the current UTC time.
        logger: Optional logger.

    Returns:
        A new registry containing the artifact.

    Raises:
        ArtifactFileNotFoundError: If the file does not exist.
        InvalidTypeError: If the type is not allowed.
        DuplicateNameError: If the name is already registered.
        ArtifactNotFoundError: If an input artifact is not registered.
        ValueError: If the name is empty or inputs repeat.
    """
    log = logger or create_null_logger()
    absolute = _absolute(file_path, registry.root)

    if not absolute.is_file():
        msg = f"Cannot register '{name}': file not found: {absolute}"
        raise ArtifactFileNotFoundError(msg, name=name, path=absolute)

    inputs = _check_registration(
        registry,
        name,
        artifact_type,
        allowed_types=allowed_types,
        input_artifacts=input_artifacts,
    )

    timestamp = parse_timestamp(now) if now else utc_now()
    artifact = Artifact(
        name=name,
        type=artifact_type,
        file_path=_stored_path(absolute, registry.root),
        content_hash=hash_file(absolute),
        size_bytes=absolute.stat().st_size,
        created_at=timestamp,
        input_artifacts=inputs,
        metadata=dict(metadata or {}),
        data_hash=data_hash,
    )

    log.info(
        "artifact_registered",
        name=name,
        type=artifact_type,
        file_path=artifact.file_path,
        content_hash=artifact.content_hash,
        inputs=list(inputs),
    )
    return replace(
        registry,
        artifacts={**registry.artifacts, name: artifact},
        last_modified_at=timestamp,
    )


def default_artifact_name(artifact_type: str, now: datetime | None = None) -> str:
    """Return the generated name ``<type>_<YYYYmmdd_HHMMSS>``."""
    return f"{artifact_type}_{(now or utc_now()).strftime('%Y%m%d_%H%M%S')}"


def _writer_for(obj: object, destination: Path) -> Callable[[Path], None]:
    if isinstance(obj, pl.DataFrame):
        suffix = destination.suffix.lower()
        if suffix == ".csv":
            return obj.write_csv
        if suffix in _PARQUET_SUFFIXES:
            return obj.write_parquet
        msg = (
            f"Cannot infer a DataFrame format from suffix '{destination.suffix}' "
            "(use .csv or .parquet)"
        )
        raise ValueError(msg)

    if isinstance(obj, bytes | bytearray | memoryview):
        data = bytes(obj)

        def write_bytes(target: Path) -> None:
            _ = target.write_bytes(data)

        return write_bytes

    if isinstance(obj, str):
        text = obj

        def write_text(target: Path) -> None:
            _ = target.write_text(text, encoding="utf-8")

        return write_text

    if isinstance(obj, Path):
        if not obj.is_file():
            msg = f"Source file not found: {obj}"
            raise FileNotFoundError(msg)
        source = obj

        def copy_file(target: Path) -> None:
            _ = shutil.copyfile(source, target)

        return copy_file

    msg = (
        "save_and_register accepts bytes, str, a source Path or a polars DataFrame, "
        f"not {type(obj).__name__}"
    )
    raise TypeError(msg)


def _persist(writer: Callable[[Path], None], destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
    )
    os.close(fd)
    temp_path = Path(temp_name)
    try:
        writer(temp_path)
        _ = temp_path.replace(destination)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def save_and_register(  # noqa: PLR0913
    obj: object,
    file_path: Path | str,
    artifact_type: str,
    registry: Registry,
    *,
    name: str | None = None,
    allowed_types: Collection[str],
    input_artifacts: Sequence[str] = (),
    metadata: Mapping[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    data_hash: str | None = None,
    now: datetime | None = None,
    logger: FilteringBoundLogger | None = None,
) -> Registry:
    """Persist an object to disk and register the written file.

    Registration checks run before anything is written, and the file is
    written through a temporary sibling so a failed write leaves neither a
    partial file nor a registry entry.

    Supported objects:
        - ``bytes``: written verbatim.
        - ``str``: written as UTF-8 text.
        - ``Path``: an existing file, copied to ``file_path``.
        - ``polars.DataFrame``: written as CSV or Parquet by the suffix of
          ``file_path``. Its ``hash_tabular`` digest is recorded as the
          artifact's data hash unless one is given.

    Args:
        obj: The object to persist.
        file_path: Destination; relative paths resolve against
            ``registry.root``. Parent directories are created.
        artifact_type: Category of the new artifact.
        registry: Current registry value.
        name: Artifact name. Defaults to ``<type>_<YYYYmmdd_HHMMSS>``.
        allowed_types: Types accepted for registration.
        input_artifacts: Names of artifacts this one was derived from.
        metadata: Free-form data to record with the artifact.
        data_hash: Digest of the logical content, if already known.
        now: Registration timestamp. Defaults to the current UTC time.
        logger: Optional logger.

    Returns:
        A new registry containing the artifact.

    Raises:
        TypeError: If ``obj`` is not a supported type.
        ValueError: If a DataFrame destination has an unknown suffix.
        OSError: If the object cannot be written.
        InvalidTypeError: If the type is not allowed.
        DuplicateNameError: If the name is already registered.
        ArtifactNotFoundError: If an input artifact is not registered.
    """
    log = logger or create_null_logger()
    timestamp = parse_timestamp(now) if now else utc_now()
    artifact_name = name if name is not None else default_artifact_name(artifact_type, timestamp)
    destination = _absolute(file_path, registry.root)

    writer = _writer_for(obj, destination)
    _ = _check_registration(
        registry,
        artifact_name,
        artifact_type,
        allowed_types=allowed_types,
        input_artifacts=input_artifacts,
    )

    if data_hash is None and isinstance(obj, pl.DataFrame):
        data_hash = hash_tabular(obj)

    _persist(writer, destination)
    log.debug("artifact_persisted", name=artifact_name, path=str(destination))

    return register(
        registry,
        artifact_name,
        artifact_type,
        destination,
        allowed_types=allowed_types,
        input_artifacts=input_artifacts,
        metadata=metadata,
        data_hash=data_hash,
        now=timestamp,
        logger=log,
    )


# =============================================================================
# Queries
# =============================================================================


def get(registry: Registry, name: str) -> Artifact | None:
    """Get an artifact by name, or None if it is not registered."""
    return registry.artifacts.get(name)


def get_or_raise(registry: Registry, name: str) -> Artifact:
    """Get an artifact by name.

    Raises:
        ArtifactNotFoundError: If the name is not registered.
    """
    artifact = registry.artifacts.get(name)
    if artifact is None:
        msg = f"Artifact not found: {name}"
        raise ArtifactNotFoundError(msg, name=name)
    return artifact


def list_artifacts(
    registry: Registry,
    *,
    artifact_type: str | None = None,
    workflow: str | None = None,
) -> list[Artifact]:
    """List artifacts in registration order, optionally filtered.

    Args:
        registry: Registry to query.
        artifact_type: Only include artifacts of this type.
        workflow: Only include artifacts whose ``metadata["workflow"]``
            equals this value.

    Returns:
        Matching artifacts.
    """
    return [
        artifact
        for artifact in registry.artifacts.values()
        if (artifact_type is None or artifact.type == artifact_type)
        and (workflow is None or artifact.workflow == workflow)
    ]


def get_latest(registry: Registry, artifact_type: str) -> Artifact | None:
    """Get the most recently registered artifact of a type.

    "Most recent" is decided by the recorded ``created_at`` timestamp, never
    by filesystem modification times. Equal timestamps go to the artifact
    registered later.

    Returns:
        The latest artifact, or None if no artifact has the type.
    """
    latest: Artifact | None = None
    for artifact in registry.artifacts.values():
        if artifact.type != artifact_type:
            continue
        # >= so a later insertion wins ties
        if latest is None or artifact.created_at >= latest.created_at:
            latest = artifact
    return latest


def find_by_hash(registry: Registry, content_hash: str) -> list[Artifact]:
    """List artifacts whose recorded content hash equals ``content_hash``."""
    needle = content_hash.lower()
    return [a for a in registry.artifacts.values() if a.content_hash == needle]


# =============================================================================
# Integrity
# =============================================================================


def _verify_artifact(registry: Registry, artifact: Artifact) -> VerificationResult:
    path = registry.resolve(artifact)
    try:
        actual: str | None = hash_file(path)
    except OSError:
        actual = None
    return VerificationResult(
        name=artifact.name,
        valid=actual == artifact.content_hash,
        expected=artifact.content_hash,
        actual=actual,
        path=path,
    )


def verify(
    registry: Registry,
    name: str,
    *,
    logger: FilteringBoundLogger | None = None,
) -> VerificationResult:
    """Recompute an artifact's hash and compare it with the recorded one.

    A changed or missing file is reported in the result rather than raised;
    call ``raise_if_invalid()`` on the result for a hard failure.

    Raises:
        ArtifactNotFoundError: If the name is not registered.
    """
    log = logger or create_null_logger()
    result = _verify_artifact(registry, get_or_raise(registry, name))
    if result.valid:
        log.debug("artifact_verified", name=name)
    else:
        log.warning(
            "artifact_verification_failed",
            name=name,
            expected=result.expected,
            actual=result.actual,
            path=str(result.path),
        )
    return result


def verify_all(
    registry: Registry,
    *,
    names: Iterable[str] | None = None,
    logger: FilteringBoundLogger | None = None,
) -> list[VerificationResult]:
    """Verify several artifacts (all of them by default), in registration order."""
    selected = registry.names if names is None else tuple(names)
    return [verify(registry, name, logger=logger) for name in selected]


def validate_registry(
    registry: Registry,
    *,
    required_types: Iterable[str] = (),
    check_hashes: bool = False,
) -> RegistryValidationResult:
    """Check a registry's structural and on-disk integrity.

    Errors: an empty registry, required types with no artifact, artifact
    files missing from disk, and input references to unregistered names.
    Warnings: files whose bytes no longer match the recorded hash (only
    computed when ``check_hashes`` is set).

    Args:
        registry: Registry to validate.
        required_types: Types that must have at least one artifact.
        check_hashes: Also rehash every present file.

    Returns:
        The aggregated result; ``result.valid`` is False if any error was found.
    """
    issues: list[ValidationIssue] = []

    if not registry.artifacts:
        issues.append(ValidationIssue(level="error", message="Registry is empty"))

    present_types = {artifact.type for artifact in registry.artifacts.values()}
    missing_types = tuple(t for t in dict.fromkeys(required_types) if t not in present_types)
    issues.extend(
        ValidationIssue(level="error", message=f"No artifact of required type '{t}'")
        for t in missing_types
    )

    missing_files: list[str] = []
    dangling: list[tuple[str, str]] = []
    mismatches: list[str] = []
    for artifact in registry.artifacts.values():
        path = registry.resolve(artifact)
        if not path.is_file():
            missing_files.append(artifact.name)
            issues.append(
                ValidationIssue(
                    level="error",
                    message=f"File missing: {path}",
                    artifact=artifact.name,
                )
            )
        elif check_hashes and not _verify_artifact(registry, artifact).valid:
            mismatches.append(artifact.name)
            issues.append(
                ValidationIssue(
                    level="warning",
                    message=f"Content changed since registration: {path}",
                    artifact=artifact.name,
                )
            )

        for input_name in artifact.input_artifacts:
            if input_name not in registry.artifacts:
                dangling.append((artifact.name, input_name))
                issues.append(
                    ValidationIssue(
                        level="error",
                        message=f"Input artifact '{input_name}' is not registered",
                        artifact=artifact.name,
                    )
                )

    return RegistryValidationResult(
        missing_types=missing_types,
        missing_files=tuple(missing_files),
        dangling_inputs=tuple(dangling),
        hash_mismatches=tuple(mismatches),
        issues=tuple(issues),
    )


# =============================================================================
# Pruning
# =============================================================================


def prune(
    registry: Registry,
    artifact_type: str,
    keep_latest_n: int,
    *,
    now: datetime | None = None,
    logger: FilteringBoundLogger | None = None,
) -> tuple[Registry, list[Path]]:
    """Drop all but the newest artifacts of a type from the registry.

    Artifacts are ranked by recorded ``created_at`` (later insertion wins
    ties). An older artifact that a surviving artifact still lists as an
    input is kept, so pruning never leaves a dangling reference. No file is
    deleted; the caller decides what to do with the returned paths.

    Args:
        registry: Current registry value. It is not modified.
        artifact_type: Type to prune.
        keep_latest_n: Number of newest artifacts of the type to keep.
        now: Timestamp recorded as ``last_modified_at`` when anything is
            removed.
        logger: Optional logger.

    Returns:
        The pruned registry and the absolute file paths of the removed
        artifacts, oldest first. Paths still recorded by a surviving
        artifact are left out, and each path appears once.

    Raises:
        ValueError: If ``keep_latest_n`` is negative.
    """
    if keep_latest_n < 0:
        msg = f"keep_latest_n must be non-negative, got {keep_latest_n}"
        raise ValueError(msg)

    log = logger or create_null_logger()
    order = {name: index for index, name in enumerate(registry.artifacts)}
    candidates = sorted(
        list_artifacts(registry, artifact_type=artifact_type),
        key=lambda a: (a.created_at, order[a.name]),
        reverse=True,
    )
    removed = {a.name for a in candidates[keep_latest_n:]}

    # Anything a survivor depends on survives too, transitively
    pending = [name for name in registry.artifacts if name not in removed]
    while pending:
        for input_name in registry.artifacts[pending.pop()].input_artifacts:
            if input_name in removed:
                removed.discard(input_name)
                pending.append(input_name)

    if not removed:
        return registry, []

    survivors = {n: a for n, a in registry.artifacts.items() if n not in removed}
    doomed = sorted(
        (registry.artifacts[name] for name in removed),
        key=lambda a: (a.created_at, order[a.name]),
    )
    # A file still recorded by a survivor is not the caller's to delete
    kept_paths = {registry.resolve(a) for a in survivors.values()}
    paths: list[Path] = []
    for artifact in doomed:
        path = registry.resolve(artifact)
        if path not in kept_paths and path not in paths:
            paths.append(path)

    log.info(
        "artifacts_pruned",
        type=artifact_type,
        kept=len(candidates) - len(removed),
        removed=[a.name for a in doomed],
    )
    modified_at = parse_timestamp(now) if now else utc_now()
    return replace(registry, artifacts=survivors, last_modified_at=modified_at), paths
