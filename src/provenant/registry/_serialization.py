# pyright: reportAny=false
"""Conversion between Registry values and the on-disk YAML document.

The document is a mapping with a fixed key order so that successive saves
produce small, reviewable diffs::

    version: '1.0'
    revision: 3
    created_at: '2024-05-01T12:00:00+00:00'
    last_modified_at: '2024-05-02T08:30:00+00:00'
    artifacts:
      raw_survey:
        type: raw_data
        file_path: data/raw/survey.csv
        ...
"""

from pathlib import Path
from typing import Any

import orjson
import yaml

from provenant.registry._models import SCHEMA_VERSION, Artifact, Registry
from provenant.utils import format_timestamp, parse_timestamp

__all__ = [
    "dump_registry",
    "parse_registry",
    "registry_from_document",
    "registry_to_document",
    "to_plain",
]

_SUPPORTED_MAJOR = SCHEMA_VERSION.split(".", maxsplit=1)[0]


def to_plain(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Normalize caller data to JSON-compatible types that safe_dump accepts."""
    return orjson.loads(orjson.dumps(value, default=str, option=orjson.OPT_NON_STR_KEYS))


def _artifact_to_document(artifact: Artifact) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    doc: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
        "type": artifact.type,
        "file_path": artifact.file_path,
        "content_hash": artifact.content_hash,
        "size_bytes": artifact.size_bytes,
        "created_at": format_timestamp(artifact.created_at),
        "input_artifacts": list(artifact.input_artifacts),
    }
    if artifact.data_hash is not None:
        doc["data_hash"] = artifact.data_hash
    doc["metadata"] = to_plain(artifact.metadata)
    return doc


def registry_to_document(registry: Registry) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Convert a registry to a plain mapping ready for YAML serialization."""
    return {
        "version": registry.version,
        "revision": registry.revision,
        "created_at": (
            format_timestamp(registry.created_at) if registry.created_at else None
        ),
        "last_modified_at": (
            format_timestamp(registry.last_modified_at)
            if registry.last_modified_at
            else None
        ),
        "artifacts": {
            name: _artifact_to_document(artifact)
            for name, artifact in registry.artifacts.items()
        },
    }


def dump_registry(registry: Registry) -> str:
    """Serialize a registry to YAML text."""
    return yaml.safe_dump(
        registry_to_document(registry),
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )


def _require(data: dict[str, Any], key: str, kind: type, context: str) -> Any:  # pyright: ignore[reportExplicitAny]
    if key not in data:
        msg = f"{context}: missing required field '{key}'"
        raise ValueError(msg)
    value = data[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        msg = f"{context}: field '{key}' must be {kind.__name__}, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _artifact_from_document(name: str, data: Any) -> Artifact:  # pyright: ignore[reportExplicitAny]
    context = f"artifact '{name}'"
    if not isinstance(data, dict):
        msg = f"{context}: expected a mapping, got {type(data).__name__}"
        raise ValueError(msg)  # noqa: TRY004

    inputs = data.get("input_artifacts") or []
    if not isinstance(inputs, list) or not all(isinstance(i, str) for i in inputs):
        msg = f"{context}: 'input_artifacts' must be a list of names"
        raise ValueError(msg)

    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        msg = f"{context}: 'metadata' must be a mapping"
        raise ValueError(msg)

    data_hash = data.get("data_hash")
    if data_hash is not None and not isinstance(data_hash, str):
        msg = f"{context}: 'data_hash' must be a string"
        raise ValueError(msg)

    created_raw = data.get("created_at")
    if created_raw is None:
        msg = f"{context}: missing required field 'created_at'"
        raise ValueError(msg)

    return Artifact(
        name=name,
        type=_require(data, "type", str, context),
        file_path=_require(data, "file_path", str, context),
        content_hash=_require(data, "content_hash", str, context),
        size_bytes=_require(data, "size_bytes", int, context),
        created_at=parse_timestamp(created_raw),
        input_artifacts=tuple(inputs),
        metadata=metadata,
        data_hash=data_hash,
    )


def registry_from_document(data: Any, *, root: Path) -> Registry:  # pyright: ignore[reportExplicitAny]
    """Build a Registry from a parsed YAML document.

    Args:
        data: The parsed document.
        root: Project root for the resulting registry.

    Returns:
        The registry the document describes.

    Raises:
        ValueError: If the document is not a mapping, lacks required fields,
            holds a field of the wrong type, or declares an unsupported
            schema version.
    """
    if not isinstance(data, dict):
        msg = f"Registry document must be a mapping, got {type(data).__name__}"
        raise ValueError(msg)  # noqa: TRY004

    if data.get("version") is None:
        msg = "registry: missing required field 'version'"
        raise ValueError(msg)
    # Hand-edited files may carry an unquoted 1.0
    version = str(data["version"])
    if version.split(".", maxsplit=1)[0] != _SUPPORTED_MAJOR:
        msg = f"Unsupported registry schema version {version!r} (expected {SCHEMA_VERSION})"
        raise ValueError(msg)

    revision = data.get("revision", 0)
    if not isinstance(revision, int) or isinstance(revision, bool) or revision < 0:
        msg = f"registry: 'revision' must be a non-negative integer, got {revision!r}"
        raise ValueError(msg)

    raw_artifacts = data.get("artifacts") or {}
    if not isinstance(raw_artifacts, dict):
        msg = "registry: 'artifacts' must be a mapping of name to artifact"
        raise ValueError(msg)

    artifacts: dict[str, Artifact] = {}
    for name, entry in raw_artifacts.items():
        if not isinstance(name, str) or not name:
            msg = f"registry: invalid artifact name {name!r}"
            raise ValueError(msg)
        artifacts[name] = _artifact_from_document(name, entry)

    created_at = data.get("created_at")
    last_modified_at = data.get("last_modified_at")

    return Registry(
        root=root,
        artifacts=artifacts,
        version=version,
        created_at=parse_timestamp(created_at) if created_at is not None else None,
        last_modified_at=(
            parse_timestamp(last_modified_at) if last_modified_at is not None else None
        ),
        revision=revision,
    )


def parse_registry(text: str, *, root: Path) -> Registry:
    """Parse YAML text into a Registry.

    Raises:
        yaml.YAMLError: If the text is not valid YAML.
        ValueError: If the document does not describe a registry.
    """
    return registry_from_document(yaml.safe_load(text), root=root)
