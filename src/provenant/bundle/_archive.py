"""Deterministic zip packaging.

Archives are reproducible: entries are written in sorted order with a fixed
timestamp, fixed permissions and a fixed host system, so packaging the same
directory contents twice produces byte-identical files.
"""

import shutil
import tempfile
import zipfile
from pathlib import Path

from provenant.hashing import CHUNK_SIZE

__all__ = ["FIXED_DATE_TIME", "write_deterministic_zip"]

# Earliest timestamp the zip format can represent
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)

_FILE_MODE = 0o100644
_UNIX_HOST = 3
_ZIP64_THRESHOLD = (1 << 31) - 1


def _entry_info(arcname: str, size: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=FIXED_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.create_system = _UNIX_HOST
    info.external_attr = _FILE_MODE << 16
    info.file_size = size
    return info


def _collect(source_dir: Path) -> list[tuple[str, Path]]:
    prefix = source_dir.name
    entries = [
        (f"{prefix}/{path.relative_to(source_dir).as_posix()}", path)
        for path in source_dir.rglob("*")
        if path.is_file()
    ]
    return sorted(entries)


def write_deterministic_zip(source_dir: Path, output_path: Path) -> int:
    """Zip a directory so that identical contents give identical bytes.

    Entries are named ``<source_dir.name>/<relative path>``. The archive is
    written to a temporary file beside ``output_path`` and renamed into
    place, so ``output_path`` never holds a partial archive.

    Args:
        source_dir: Directory to package.
        output_path: Destination archive.

    Returns:
        Number of files written.

    Raises:
        OSError: If a file cannot be read or the archive cannot be written.
    """
    entries = _collect(source_dir)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=output_path.parent,
            prefix=f".{output_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            with zipfile.ZipFile(f, mode="w") as zf:
                for arcname, path in entries:
                    size = path.stat().st_size
                    info = _entry_info(arcname, size)
                    with (
                        path.open("rb") as src,
                        zf.open(info, mode="w", force_zip64=size > _ZIP64_THRESHOLD) as dest,
                    ):
                        shutil.copyfileobj(src, dest, CHUNK_SIZE)

        _ = temp_path.replace(output_path)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise

    return len(entries)
