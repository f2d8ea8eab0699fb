"""Release bundles: provenance closure, manifest and deterministic archives."""

from provenant.bundle._archive import FIXED_DATE_TIME, write_deterministic_zip
from provenant.bundle._bundler import BundleResult, archive_path_for, create_bundle
from provenant.bundle._closure import find_dependents, resolve_closure
from provenant.bundle._manifest import (
    MANIFEST_NAME,
    MANIFEST_SCHEMA_VERSION,
    BundleManifest,
    ManifestEntry,
    dump_manifest,
    manifest_from_document,
    manifest_to_document,
    parse_manifest,
)
from provenant.bundle._reader import ManifestMismatch, read_manifest, verify_bundle

__all__ = [
    "FIXED_DATE_TIME",
    "MANIFEST_NAME",
    "MANIFEST_SCHEMA_VERSION",
    "BundleManifest",
    "BundleResult",
    "ManifestEntry",
    "ManifestMismatch",
    "archive_path_for",
    "create_bundle",
    "dump_manifest",
    "find_dependents",
    "manifest_from_document",
    "manifest_to_document",
    "parse_manifest",
    "read_manifest",
    "resolve_closure",
    "verify_bundle",
    "write_deterministic_zip",
]
