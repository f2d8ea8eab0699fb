"""Artifact registry with provenance tracking and reproducible release bundles."""

from provenant._version import __version__
from provenant.bundle import create_bundle, resolve_closure
from provenant.hashing import hash_file, hash_tabular
from provenant.registry import (
    Artifact,
    Registry,
    load,
    register,
    save,
    save_and_register,
    update_registry,
)

__all__ = [
    "Artifact",
    "Registry",
    "__version__",
    "create_bundle",
    "hash_file",
    "hash_tabular",
    "load",
    "register",
    "resolve_closure",
    "save",
    "save_and_register",
    "update_registry",
]
