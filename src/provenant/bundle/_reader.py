"""Reading and verifying existing release bundles."""

import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import yaml

from provenant.bundle._manifest import MANIFEST_NAME, BundleManifest, parse_manifest
from provenant.exceptions import BundleError
from provenant.hashing import hash_stream

__all__ = ["ManifestMismatch", "read_manifest", "verify_bundle"]


@dataclass(frozen=True, slots=True)
class ManifestMismatch:
    """A disagreement between a bundle's manifest and its contents.

    Attributes:
        archive_path: Path inside the bundle directory.
        reason: "missing" (listed but absent), "changed" (hash or size
            differs) or "unexpected" (present but not listed).
        name: Artifact name, when the path is listed in the manifest.
        expected: Hash recorded in the manifest.
        actual: Hash of the archived bytes.
    """

    archive_path: str
    reason: Literal["missing", "changed", "unexpected"]
    name: str | None = None
    expected: str | None = None
    actual: str | None = None


def _manifest_member(zf: zipfile.ZipFile, archive_path: Path) -> str:
    candidates = [
        member
        for member in zf.namelist()
        if member.count("/") == 1 and member.endswith(f"/{MANIFEST_NAME}")
    ]
    if len(candidates) != 1:
        msg = (
            f"{archive_path} is not a release bundle: expected one "
            f"<bundle>/{MANIFEST_NAME}, found {len(candidates)}"
        )
        raise BundleError(msg)
    return candidates[0]


def _load_manifest(zf: zipfile.ZipFile, archive_path: Path) -> BundleManifest:
    member = _manifest_member(zf, archive_path)
    bundle_name = member.split("/", maxsplit=1)[0]
    try:
        manifest = parse_manifest(zf.read(member))
    except (yaml.YAMLError, ValueError) as e:
        msg = f"Invalid manifest in {archive_path}: {e}"
        raise BundleError(msg, bundle_name=bundle_name) from e
    if manifest.bundle_name != bundle_name:
        msg = (
            f"Manifest in {archive_path} names bundle '{manifest.bundle_name}' "
            f"but lives under '{bundle_name}/'"
        )
        raise BundleError(msg, bundle_name=bundle_name)
    return manifest


def _open_zip(archive_path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(archive_path, mode="r")
    except zipfile.BadZipFile as e:
        msg = f"{archive_path} is not a zip archive"
        raise BundleError(msg) from e


def read_manifest(archive_path: Path | str) -> BundleManifest:
    """Read the manifest packaged in a release bundle.

    Raises:
        FileNotFoundError: If the archive does not exist.
        BundleError: If the file is not a bundle or its manifest is invalid.
    """
    path = Path(archive_path)
    with _open_zip(path) as zf:
        return _load_manifest(zf, path)


def verify_bundle(archive_path: Path | str) -> list[ManifestMismatch]:
    """Check a bundle's files against the hashes in its manifest.

    Args:
        archive_path: The bundle to check.

    Returns:
        Every mismatch found, in manifest order followed by unexpected
        entries in archive order. An empty list means the bundle is intact.

    Raises:
        FileNotFoundError: If the archive does not exist.
        BundleError: If the file is not a bundle or its manifest is invalid.
    """
    path = Path(archive_path)
    mismatches: list[ManifestMismatch] = []
    with _open_zip(path) as zf:
        manifest = _load_manifest(zf, path)
        prefix = f"{manifest.bundle_name}/"
        members = {info.filename: info for info in zf.infolist() if not info.is_dir()}
        listed = {prefix + MANIFEST_NAME}

        for entry in manifest.artifacts:
            member = prefix + entry.archive_path
            listed.add(member)
            info = members.get(member)
            if info is None:
                mismatches.append(
                    ManifestMismatch(
                        archive_path=entry.archive_path,
                        reason="missing",
                        name=entry.name,
                        expected=entry.content_hash,
                    )
                )
                continue
            with zf.open(info) as stream:
                actual = hash_stream(stream)
            if actual != entry.content_hash or info.file_size != entry.size_bytes:
                mismatches.append(
                    ManifestMismatch(
                        archive_path=entry.archive_path,
                        reason="changed",
                        name=entry.name,
                        expected=entry.content_hash,
                        actual=actual,
                    )
                )

        mismatches.extend(
            ManifestMismatch(archive_path=member.removeprefix(prefix), reason="unexpected")
            for member in members
            if member not in listed
        )
    return mismatches
