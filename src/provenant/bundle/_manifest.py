# pyright: reportAny=false
"""The manifest document that travels inside every release bundle.

The manifest records, for every bundled artifact, where it came from, where
it sits in the archive, its fingerprint and the names of its inputs, so the
provenance chain can be inspected and the contents re-verified without the
registry that produced the bundle.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import yaml

from provenant.utils import format_timestamp, parse_timestamp

__all__ = [
    "MANIFEST_NAME",
    "MANIFEST_SCHEMA_VERSION",
    "BundleManifest",
    "ManifestEntry",
    "dump_manifest",
    "manifest_from_document",
    "manifest_to_document",
    "parse_manifest",
]

MANIFEST_NAME = "manifest.yaml"
MANIFEST_SCHEMA_VERSION = "1.0"


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """One bundled artifact.

    Attributes:
        name: Artifact name.
        type: Artifact type.
        original_path: Path recorded in the registry.
        archive_path: Location inside the bundle directory.
        content_hash: SHA-256 recorded at registration.
        size_bytes: Size recorded at registration.
        created_at: Registration time.
        input_artifacts: Names of the artifact's inputs.
        data_hash: Logical content digest, if one was recorded.
        metadata: Caller metadata, or None when excluded from the bundle.
    """

    name: str
    type: str
    original_path: str
    archive_path: str
    content_hash: str
    size_bytes: int
    created_at: datetime
    input_artifacts: tuple[str, ...] = ()
    data_hash: str | None = None
    metadata: dict[str, Any] | None = None  # pyright: ignore[reportExplicitAny]


@dataclass(frozen=True, slots=True)
class BundleManifest:
    """Description of a release bundle's contents.

    Attributes:
        bundle_name: Name of the bundle directory inside the archive.
        created_at: Bundle creation time.
        roots: Names the bundle was requested for.
        artifacts: Every bundled artifact, inputs before dependents.
        schema_version: Manifest format version.
        tool_version: Version of provenant that wrote the manifest.
        python_version: Python version that wrote the manifest.
    """

    bundle_name: str
    created_at: datetime
    roots: tuple[str, ...]
    artifacts: tuple[ManifestEntry, ...] = field(default_factory=tuple)
    schema_version: str = MANIFEST_SCHEMA_VERSION
    tool_version: str = ""
    python_version: str = ""

    @property
    def artifact_count(self) -> int:
        return len(self.artifacts)

    @property
    def total_size_bytes(self) -> int:
        return sum(entry.size_bytes for entry in self.artifacts)

    def get(self, name: str) -> ManifestEntry | None:
        """Get the entry for an artifact name, or None."""
        return next((entry for entry in self.artifacts if entry.name == name), None)


def _entry_to_document(entry: ManifestEntry) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    doc: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
        "name": entry.name,
        "type": entry.type,
        "original_path": entry.original_path,
        "archive_path": entry.archive_path,
        "content_hash": entry.content_hash,
        "size_bytes": entry.size_bytes,
        "created_at": format_timestamp(entry.created_at),
        "input_artifacts": list(entry.input_artifacts),
    }
    if entry.data_hash is not None:
        doc["data_hash"] = entry.data_hash
    if entry.metadata is not None:
        doc["metadata"] = entry.metadata
    return doc


def manifest_to_document(manifest: BundleManifest) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Convert a manifest to a plain mapping ready for YAML serialization."""
    return {
        "bundle_name": manifest.bundle_name,
        "created_at": format_timestamp(manifest.created_at),
        "schema_version": manifest.schema_version,
        "tool_version": manifest.tool_version,
        "python_version": manifest.python_version,
        "roots": list(manifest.roots),
        "artifact_count": manifest.artifact_count,
        "total_size_bytes": manifest.total_size_bytes,
        "artifacts": [_entry_to_document(entry) for entry in manifest.artifacts],
    }


def dump_manifest(manifest: BundleManifest) -> str:
    """Serialize a manifest to YAML text."""
    return yaml.safe_dump(
        manifest_to_document(manifest),
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )


def _entry_from_document(data: Any) -> ManifestEntry:  # pyright: ignore[reportExplicitAny]
    if not isinstance(data, dict):
        msg = f"Manifest artifact entry must be a mapping, got {type(data).__name__}"
        raise ValueError(msg)  # noqa: TRY004
    try:
        return ManifestEntry(
            name=str(data["name"]),
            type=str(data["type"]),
            original_path=str(data["original_path"]),
            archive_path=str(data["archive_path"]),
            content_hash=str(data["content_hash"]),
            size_bytes=int(data["size_bytes"]),
            created_at=parse_timestamp(data["created_at"]),
            input_artifacts=tuple(str(i) for i in data.get("input_artifacts") or ()),
            data_hash=data.get("data_hash"),
            metadata=data.get("metadata"),
        )
    except KeyError as e:
        msg = f"Manifest artifact entry missing field {e.args[0]!r}"
        raise ValueError(msg) from e


def manifest_from_document(data: Any) -> BundleManifest:  # pyright: ignore[reportExplicitAny]
    """Build a BundleManifest from a parsed YAML document.

    Raises:
        ValueError: If the document is not a valid manifest.
    """
    if not isinstance(data, dict):
        msg = f"Manifest must be a mapping, got {type(data).__name__}"
        raise ValueError(msg)  # noqa: TRY004

    artifacts = data.get("artifacts") or []
    if not isinstance(artifacts, list):
        msg = "Manifest 'artifacts' must be a list"
        raise ValueError(msg)  # noqa: TRY004

    try:
        return BundleManifest(
            bundle_name=str(data["bundle_name"]),
            created_at=parse_timestamp(data["created_at"]),
            roots=tuple(str(r) for r in data.get("roots") or ()),
            artifacts=tuple(_entry_from_document(entry) for entry in artifacts),
            schema_version=str(data.get("schema_version", MANIFEST_SCHEMA_VERSION)),
            tool_version=str(data.get("tool_version", "")),
            python_version=str(data.get("python_version", "")),
        )
    except KeyError as e:
        msg = f"Manifest missing field {e.args[0]!r}"
        raise ValueError(msg) from e


def parse_manifest(text: str | bytes) -> BundleManifest:
    """Parse YAML text into a BundleManifest.

    Raises:
        yaml.YAMLError: If the text is not valid YAML.
        ValueError: If the document is not a valid manifest.
    """
    return manifest_from_document(yaml.safe_load(text))
