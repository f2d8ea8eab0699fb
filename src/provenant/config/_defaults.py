"""Default configuration values.

This module defines the built-in default configuration values that are used
when no other configuration sources provide values.

Note: DEFAULT_CONFIG is a plain dict for type compatibility with deep_merge,
which always returns copies.
"""

from typing import Any

from provenant.registry import (
    DEFAULT_ARTIFACT_TYPES,
    DEFAULT_MAX_ATTEMPTS,
    PROJECT_DIR_NAME,
)

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "project": {
        "name": "",
    },
    "registry": {
        "path": f"{PROJECT_DIR_NAME}/registry.yaml",
        "allowed_types": sorted(DEFAULT_ARTIFACT_TYPES),
        "extra_types": [],
        "max_retries": DEFAULT_MAX_ATTEMPTS,
    },
    "bundle": {
        "output_dir": "dist",
        "include_metadata": True,
        "verify_hashes": False,
    },
    "logging": {
        "level": "warning",
        "format": "text",
        "file": "",
    },
}
