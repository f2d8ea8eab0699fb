"""Load and save the registry document.

Saves are atomic and optimistically concurrent. A writer holds an exclusive
advisory lock on a sidecar ``<registry>.lock`` file while it compares the
revision on disk with the revision its registry value was loaded at, writes
the next revision to a temporary file in the same directory and renames it
over the destination. A reader therefore sees either the old document or the
new one, and a writer whose basis is stale gets ConcurrentModificationError
instead of silently discarding someone else's registrations.
"""

import os
import sys
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

import yaml
from structlog.typing import FilteringBoundLogger

from provenant.exceptions import (
    ConcurrentModificationError,
    CorruptRegistryError,
    RegistryStoreError,
)
from provenant.registry._models import PROJECT_DIR_NAME, Registry
from provenant.registry._serialization import dump_registry, parse_registry
from provenant.utils import create_null_logger, utc_now

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

__all__ = ["load", "lock_path_for", "save"]

_LOCK_TIMEOUT_SECONDS = 30.0


def lock_path_for(path: Path) -> Path:
    """Return the sidecar lock file guarding a registry document."""
    return path.with_name(f"{path.name}.lock")


@contextmanager
def _exclusive_lock(path: Path) -> Iterator[None]:
    lock_path = lock_path_for(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a+b") as handle:
        if sys.platform == "win32":
            deadline = time.monotonic() + _LOCK_TIMEOUT_SECONDS
            while True:
                try:
                    handle.seek(0)
                    msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
                    break
                except OSError:
                    if time.monotonic() > deadline:
                        raise
                    time.sleep(0.01)
            try:
                yield
            finally:
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
        else:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def _default_root(path: Path) -> Path:
    parent = path.parent
    if parent.name == PROJECT_DIR_NAME:
        return parent.parent
    return parent


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        msg = f"Failed to read registry {path}: {e}"
        raise RegistryStoreError(msg, path=path, operation="read", cause=e) from e


def _parse(text: str, path: Path, root: Path) -> Registry:
    try:
        return parse_registry(text, root=root)
    except yaml.YAMLError as e:
        msg = f"Registry {path} is not valid YAML: {e}"
        raise CorruptRegistryError(msg, path=path, cause=e) from e
    except ValueError as e:
        msg = f"Registry {path} is malformed: {e}"
        raise CorruptRegistryError(msg, path=path, cause=e) from e


def load(
    path: Path | str,
    *,
    root: Path | str | None = None,
    logger: FilteringBoundLogger | None = None,
) -> Registry:
    """Load the registry document at ``path``.

    A missing file yields a fresh, empty registry at revision 0. An existing
    file that cannot be parsed is an error and is never replaced by an empty
    registry.

    Args:
        path: Location of the registry YAML file.
        root: Project root relative artifact paths resolve against. Defaults
            to the directory containing the registry file, or to its parent
            when that directory is ``.provenant/``.
        logger: Optional logger for load events.

    Returns:
        The loaded registry.

    Raises:
        CorruptRegistryError: If the file exists but is not a valid registry.
        RegistryStoreError: If the file exists but cannot be read.
    """
    log = logger or create_null_logger()
    path = Path(path)
    resolved_root = Path(root) if root is not None else _default_root(path)

    text = _read_text(path)
    if text is None:
        log.debug("registry_initialized", path=str(path))
        return Registry(root=resolved_root)

    registry = _parse(text, path, resolved_root)
    log.debug(
        "registry_loaded",
        path=str(path),
        revision=registry.revision,
        artifacts=len(registry.artifacts),
    )
    return registry


def _write_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as f:
            temp_path = Path(f.name)
            _ = f.write(content)
            f.flush()
            os.fsync(f.fileno())

        # Path.replace() is atomic on both POSIX and Windows
        _ = temp_path.replace(path)
    except OSError as e:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        msg = f"Failed to write registry {path}: {e}"
        raise RegistryStoreError(msg, path=path, operation="write", cause=e) from e


def save(
    registry: Registry,
    path: Path | str,
    *,
    logger: FilteringBoundLogger | None = None,
) -> Registry:
    """Atomically persist a registry, guarding against concurrent writers.

    Args:
        registry: The registry to write. Its ``revision`` must match the
            revision currently on disk (0 when no file exists).
        path: Destination of the registry YAML file.
        logger: Optional logger for save events.

    Returns:
        The registry as written, carrying the incremented revision. Use it
        as the basis for further changes.

    Raises:
        ConcurrentModificationError: If the document on disk changed (or
            appeared, or vanished) since ``registry`` was loaded.
        CorruptRegistryError: If the document on disk cannot be parsed.
        RegistryStoreError: If the document cannot be written.
    """
    log = logger or create_null_logger()
    path = Path(path)

    with _exclusive_lock(path):
        text = _read_text(path)
        on_disk = 0 if text is None else _parse(text, path, registry.root).revision
        if on_disk != registry.revision:
            log.warning(
                "registry_conflict",
                path=str(path),
                expected_revision=registry.revision,
                actual_revision=on_disk,
            )
            msg = (
                f"Registry {path} was modified concurrently: loaded at revision "
                f"{registry.revision}, now at revision {on_disk}"
            )
            raise ConcurrentModificationError(
                msg,
                path=path,
                expected_revision=registry.revision,
                actual_revision=on_disk,
            )

        saved = replace(
            registry,
            revision=registry.revision + 1,
            created_at=registry.created_at or utc_now(),
        )
        _write_atomic(path, dump_registry(saved))

    log.info(
        "registry_saved",
        path=str(path),
        revision=saved.revision,
        artifacts=len(saved.artifacts),
    )
    return saved
