"""Deterministic content fingerprints.

Example:
    >>> from provenant.hashing import hash_bytes
    >>> hash_bytes(b"")[:12]
    'e3b0c44298fc'
"""

from provenant.hashing._hasher import (
    CHUNK_SIZE,
    TabularInput,
    hash_bytes,
    hash_file,
    hash_stream,
    hash_tabular,
)

__all__ = [
    "CHUNK_SIZE",
    "TabularInput",
    "hash_bytes",
    "hash_file",
    "hash_stream",
    "hash_tabular",
]
