r"""Release bundle assembly.

A bundle is a zip archive holding one top-level directory::

    <bundle>/
        manifest.yaml
        <type>/<artifact name>/<file name>
        ...

Every check that can fail runs before anything is written. Files are staged
in a temporary directory, the manifest is written beside them, and the
directory is packaged into a deterministic archive that is renamed into
place as the last filesystem step.

Example:
    >>> from pathlib import Path
    >>> from provenant.bundle import create_bundle
    >>> from provenant.registry import load
    >>> registry = load(Path(".provenant/registry.yaml"), root=Path("."))
    >>> result = create_bundle(registry, ["final_report"], Path("dist/release.zip"))
    >>> result.manifest.artifact_count
    4
"""

import os
import platform
import re
import shutil
import tempfile
from collections.abc import Collection, Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from structlog.typing import FilteringBoundLogger

from provenant._version import __version__
from provenant.bundle._archive import write_deterministic_zip
from provenant.bundle._closure import resolve_closure
from provenant.bundle._manifest import (
    MANIFEST_NAME,
    BundleManifest,
    ManifestEntry,
    dump_manifest,
)
from provenant.exceptions import (
    ArtifactFileNotFoundError,
    BundleError,
    DuplicateNameError,
    InvalidTypeError,
)
from provenant.registry import (
    DEFAULT_ARTIFACT_TYPES,
    RELEASE_BUNDLE_TYPE,
    Artifact,
    Registry,
    verify,
)
from provenant.registry import register as register_artifact
from provenant.registry._serialization import to_plain
from provenant.utils import create_null_logger, parse_timestamp, utc_now

__all__ = ["BundleResult", "archive_path_for", "create_bundle"]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True, slots=True)
class BundleResult:
    """Outcome of a successful bundle build.

    Attributes:
        path: Location of the written archive.
        manifest: The manifest packaged in the archive.
        registry: The registry including the bundle artifact when it was
            registered, otherwise the registry that was passed in.
    """

    path: Path
    manifest: BundleManifest
    registry: Registry


def _safe_segment(value: str) -> str:
    segment = _UNSAFE_CHARS.sub("_", value)
    if segment in {"", ".", ".."}:
        return segment.replace(".", "_") or "_"
    return segment


def archive_path_for(artifact: Artifact) -> str:
    """Return an artifact's path inside the bundle directory."""
    filename = Path(artifact.file_path).name
    return "/".join(
        (
            _safe_segment(artifact.type),
            _safe_segment(artifact.name),
            _safe_segment(filename),
        )
    )


def _check_bundle_name(bundle_name: str) -> None:
    if _safe_segment(bundle_name) != bundle_name:
        msg = (
            f"Invalid bundle name {bundle_name!r}: use only letters, digits, "
            "'.', '_' and '-'"
        )
        raise BundleError(msg, bundle_name=bundle_name)


def _preflight(  # noqa: PLR0913
    registry: Registry,
    closure: list[Artifact],
    bundle_name: str,
    *,
    verify_hashes: bool,
    register_bundle: bool,
    allowed_types: Collection[str],
) -> dict[str, str]:
    archive_paths: dict[str, str] = {}
    owners: dict[str, str] = {}
    for artifact in closure:
        path = registry.resolve(artifact)
        if not path.is_file():
            msg = f"Cannot bundle '{artifact.name}': file not found: {path}"
            raise ArtifactFileNotFoundError(msg, name=artifact.name, path=path)
        if verify_hashes:
            verify(registry, artifact.name).raise_if_invalid()

        archive_path = archive_path_for(artifact)
        if archive_path in owners:
            msg = (
                f"Artifacts '{owners[archive_path]}' and '{artifact.name}' map to "
                f"the same bundle path {archive_path}"
            )
            raise BundleError(msg, bundle_name=bundle_name)
        owners[archive_path] = artifact.name
        archive_paths[artifact.name] = archive_path

    if register_bundle:
        if RELEASE_BUNDLE_TYPE not in allowed_types:
            msg = (
                f"Cannot register bundle '{bundle_name}': type "
                f"'{RELEASE_BUNDLE_TYPE}' is not allowed"
            )
            raise InvalidTypeError(
                msg,
                name=bundle_name,
                artifact_type=RELEASE_BUNDLE_TYPE,
                allowed_types=allowed_types,
            )
        if bundle_name in registry.artifacts:
            msg = f"Cannot register bundle: artifact '{bundle_name}' already exists"
            raise DuplicateNameError(msg, name=bundle_name)

    return archive_paths


def _build_manifest(  # noqa: PLR0913
    closure: list[Artifact],
    archive_paths: dict[str, str],
    *,
    bundle_name: str,
    created_at: datetime,
    roots: tuple[str, ...],
    include_metadata: bool,
) -> BundleManifest:
    return BundleManifest(
        bundle_name=bundle_name,
        created_at=created_at,
        roots=roots,
        artifacts=tuple(
            ManifestEntry(
                name=artifact.name,
                type=artifact.type,
                original_path=artifact.file_path,
                archive_path=archive_paths[artifact.name],
                content_hash=artifact.content_hash,
                size_bytes=artifact.size_bytes,
                created_at=artifact.created_at,
                input_artifacts=artifact.input_artifacts,
                data_hash=artifact.data_hash,
                metadata=to_plain(artifact.metadata) if include_metadata else None,
            )
            for artifact in closure
        ),
        tool_version=__version__,
        python_version=platform.python_version(),
    )


def _stage(
    registry: Registry,
    closure: list[Artifact],
    manifest: BundleManifest,
    bundle_dir: Path,
) -> None:
    for artifact, entry in zip(closure, manifest.artifacts, strict=True):
        target = bundle_dir / entry.archive_path
        target.parent.mkdir(parents=True, exist_ok=True)
        _ = shutil.copyfile(registry.resolve(artifact), target)
    _ = (bundle_dir / MANIFEST_NAME).write_text(dump_manifest(manifest), encoding="utf-8")


def create_bundle(  # noqa: PLR0913
    registry: Registry,
    root_names: Iterable[str] | str,
    output_path: Path | str,
    *,
    include_metadata: bool = True,
    bundle_name: str | None = None,
    created_at: datetime | None = None,
    register: bool = False,
    allowed_types: Collection[str] | None = None,
    verify_hashes: bool = False,
    logger: FilteringBoundLogger | None = None,
) -> BundleResult:
    """Package artifacts and their full provenance into a zip archive.

    Args:
        registry: Registry the artifacts come from.
        root_names: Artifact name or names to release. Their transitive
            inputs are included automatically.
        output_path: Destination of the archive.
        include_metadata: Copy each artifact's metadata into the manifest.
        bundle_name: Name of the directory inside the archive (and of the
            bundle artifact when registered). Defaults to the stem of
            ``output_path``.
        created_at: Timestamp written to the manifest. Defaults to now;
            passing a fixed value makes the archive byte-reproducible.
        register: Register the archive as a ``release_bundle`` artifact
            whose inputs are the bundled artifacts.
        allowed_types: Types accepted when registering the archive.
            Defaults to the built-in artifact types.
        verify_hashes: Rehash every file and refuse to bundle one that no
            longer matches its recorded hash.
        logger: Optional logger.

    Returns:
        The archive path, its manifest, and the (possibly updated) registry.

    Raises:
        ArtifactNotFoundError: If a root or a referenced input is not
            registered.
        ArtifactFileNotFoundError: If an artifact's file is missing.
        HashMismatchError: If ``verify_hashes`` is set and a file changed.
        InvalidTypeError: If registering and ``release_bundle`` is not allowed.
        DuplicateNameError: If registering and the bundle name is taken.
        BundleError: If the bundle name is invalid, no roots are given, or
            two artifacts would share a bundle path.
        OSError: If staging or writing the archive fails.
    """
    log = logger or create_null_logger()
    output = Path(os.path.abspath(output_path))  # noqa: PTH100
    name = bundle_name if bundle_name is not None else output.stem
    roots = (root_names,) if isinstance(root_names, str) else tuple(root_names)
    allowed = DEFAULT_ARTIFACT_TYPES if allowed_types is None else allowed_types

    _check_bundle_name(name)
    if not roots:
        msg = f"Bundle '{name}' needs at least one root artifact"
        raise BundleError(msg, bundle_name=name)

    closure = resolve_closure(registry, roots)
    archive_paths = _preflight(
        registry,
        closure,
        name,
        verify_hashes=verify_hashes,
        register_bundle=register,
        allowed_types=allowed,
    )
    timestamp = parse_timestamp(created_at) if created_at else utc_now()
    manifest = _build_manifest(
        closure,
        archive_paths,
        bundle_name=name,
        created_at=timestamp,
        roots=roots,
        include_metadata=include_metadata,
    )

    log.info("bundle_started", bundle=name, roots=list(roots), artifacts=len(closure))

    committed = False
    try:
        with tempfile.TemporaryDirectory(prefix="provenant-bundle-") as staging:
            bundle_dir = Path(staging) / name
            _stage(registry, closure, manifest, bundle_dir)
            n_files = write_deterministic_zip(bundle_dir, output)
            committed = True

        result_registry = registry
        if register:
            result_registry = _register_bundle(
                registry, output, name, closure, roots, n_files, timestamp, allowed, log
            )
    except Exception:
        if committed:
            output.unlink(missing_ok=True)
        log.exception("bundle_failed", bundle=name, path=str(output))
        raise

    log.info(
        "bundle_created",
        bundle=name,
        path=str(output),
        artifacts=manifest.artifact_count,
        size_bytes=output.stat().st_size,
        registered=register,
    )
    return BundleResult(path=output, manifest=manifest, registry=result_registry)


def _register_bundle(  # noqa: PLR0913
    registry: Registry,
    output: Path,
    name: str,
    closure: list[Artifact],
    roots: tuple[str, ...],
    n_files: int,
    timestamp: datetime,
    allowed: Collection[str],
    log: FilteringBoundLogger,
) -> Registry:
    return register_artifact(
        registry,
        name,
        RELEASE_BUNDLE_TYPE,
        output,
        allowed_types=allowed,
        input_artifacts=[artifact.name for artifact in closure],
        metadata={
            "workflow": "release",
            "roots": list(roots),
            "n_files": n_files,
            "zip_size_bytes": output.stat().st_size,
        },
        now=timestamp,
        logger=log,
    )
