"""Content fingerprints for files, bytes and tabular data.

All digests are lowercase SHA-256 hex strings. File hashing streams fixed-size
chunks so memory use does not grow with file size.
"""

import hashlib
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import IO, Any, TypeAlias

import orjson
import polars as pl

__all__ = [
    "CHUNK_SIZE",
    "hash_bytes",
    "hash_file",
    "hash_stream",
    "hash_tabular",
]

CHUNK_SIZE = 65536

_ENCODE_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS

TabularInput: TypeAlias = pl.DataFrame | Mapping[str, Sequence[Any]] | Iterable[Mapping[str, Any]]


def hash_file(path: Path | str) -> str:
    """Compute the SHA-256 digest of a file's bytes.

    Args:
        path: File to hash.

    Returns:
        Hex digest of the file contents.

    Raises:
        FileNotFoundError: If the path does not exist.
        OSError: If the path cannot be read (permissions, directory).
    """
    with Path(path).open("rb") as f:
        return hash_stream(f)


def hash_stream(stream: IO[bytes]) -> str:
    """Compute the SHA-256 digest of everything left in a binary stream."""
    hasher = hashlib.sha256()
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def hash_bytes(data: bytes) -> str:
    """Compute the SHA-256 digest of an in-memory byte string."""
    return hashlib.sha256(data).hexdigest()


def _to_frame(rows: TabularInput) -> pl.DataFrame:
    if isinstance(rows, pl.DataFrame):
        return rows
    if isinstance(rows, Mapping):
        return pl.DataFrame(dict(rows))
    records = list(rows)
    if not records:
        return pl.DataFrame()
    return pl.from_dicts(records, infer_schema_length=None)


def _encode(value: Any) -> bytes:  # pyright: ignore[reportExplicitAny]
    return orjson.dumps(value, option=_ENCODE_OPTIONS, default=str)


def hash_tabular(rows: TabularInput, sort_keys: Sequence[str] = ()) -> str:
    """Compute an order-independent digest of tabular data.

    Columns are taken in sorted name order and rows are sorted on
    ``sort_keys``; rows that tie on the sort keys are ordered by their full
    canonical encoding. Two tables holding the same rows therefore hash
    identically however their rows or columns were ordered.

    Args:
        rows: A polars DataFrame, a mapping of column name to values, or an
            iterable of row mappings.
        sort_keys: Columns that define the logical row order.

    Returns:
        Hex digest of the canonical encoding.

    Raises:
        ValueError: If a sort key is not a column of the data.

    Example:
        >>> a = hash_tabular([{"id": 2, "v": "b"}, {"id": 1, "v": "a"}], ["id"])
        >>> b = hash_tabular([{"v": "a", "id": 1}, {"v": "b", "id": 2}], ["id"])
        >>> a == b
        True
    """
    frame = _to_frame(rows)
    columns = sorted(frame.columns)

    unknown = [key for key in sort_keys if key not in columns]
    if unknown and frame.width:
        msg = f"Sort keys not present in data: {', '.join(unknown)}"
        raise ValueError(msg)

    records = frame.select(columns).to_dicts() if columns else []
    encoded = [
        (tuple(_encode(record.get(key)) for key in sort_keys), _encode(record))
        for record in records
    ]
    encoded.sort()

    hasher = hashlib.sha256()
    hasher.update(b"columns:")
    hasher.update(_encode(columns))
    for _, row in encoded:
        hasher.update(b"\n")
        hasher.update(row)
    return hasher.hexdigest()
