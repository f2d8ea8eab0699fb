"""Artifact registry: models, persistence and operations.

The registry is a YAML document listing every file a pipeline produced, with
its SHA-256 fingerprint and the names of the artifacts it was derived from.
Registry values are immutable; each operation that changes the artifact set
returns a new value, which must then be saved through ``save``.

Example:
    >>> from provenant.registry import DEFAULT_ARTIFACT_TYPES, load, register, save
    >>> registry = load(".provenant/registry.yaml", root=".")
    >>> registry = register(
    ...     registry,
    ...     "plot_1",
    ...     "plot_object",
    ...     "plots/plot_1.png",
    ...     allowed_types=DEFAULT_ARTIFACT_TYPES,
    ... )
    >>> registry = save(registry, ".provenant/registry.yaml")
"""

from provenant.registry._models import (
    DEFAULT_ARTIFACT_TYPES,
    PROJECT_DIR_NAME,
    RELEASE_BUNDLE_TYPE,
    SCHEMA_VERSION,
    Artifact,
    Registry,
    RegistryValidationResult,
    ValidationIssue,
    VerificationResult,
)
from provenant.registry._operations import (
    default_artifact_name,
    find_by_hash,
    get,
    get_latest,
    get_or_raise,
    list_artifacts,
    prune,
    register,
    save_and_register,
    validate_registry,
    verify,
    verify_all,
)
from provenant.registry._serialization import dump_registry, parse_registry
from provenant.registry._session import DEFAULT_MAX_ATTEMPTS, update_registry
from provenant.registry._store import load, lock_path_for, save

__all__ = [
    "DEFAULT_ARTIFACT_TYPES",
    "DEFAULT_MAX_ATTEMPTS",
    "PROJECT_DIR_NAME",
    "RELEASE_BUNDLE_TYPE",
    "SCHEMA_VERSION",
    "Artifact",
    "Registry",
    "RegistryValidationResult",
    "ValidationIssue",
    "VerificationResult",
    "default_artifact_name",
    "dump_registry",
    "find_by_hash",
    "get",
    "get_latest",
    "get_or_raise",
    "list_artifacts",
    "load",
    "lock_path_for",
    "parse_registry",
    "prune",
    "register",
    "save",
    "save_and_register",
    "update_registry",
    "validate_registry",
    "verify",
    "verify_all",
]
