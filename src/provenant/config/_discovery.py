"""Project root and config path discovery utilities.

This module locates the project root by searching upward through the
directory tree for the `.provenant/` marker directory, and determines the
platform-specific user configuration path.
"""

from pathlib import Path
from typing import Any

import platformdirs

from provenant.config._defaults import DEFAULT_CONFIG, PROJECT_DIR_NAME
from provenant.config._models import ConfigSource, ConfigSourceName


def find_project_root(start: Path | None = None) -> Path | None:
    """Find the project root by searching upward for a .provenant/ directory.

    Args:
        start: Directory to start searching from. Defaults to the current
            working directory.

    Returns:
        The directory containing `.provenant/`, or None if the filesystem
        root is reached first.
    """
    current = (start or Path.cwd()).resolve()

    while True:
        if (current / PROJECT_DIR_NAME).is_dir():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def get_user_config_path() -> Path:
    r"""Get platform-specific user config file path.

    - Linux: ``~/.config/provenant/config.toml``
    - macOS: ``~/Library/Application Support/provenant/config.toml``
    - Windows: ``%APPDATA%\provenant\config.toml``

    The path is returned whether or not it exists.
    """
    return platformdirs.user_config_path("provenant") / "config.toml"


def _file_exists(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def discover_sources(
    project_root: Path | None = None,
    *,
    include_env: bool = True,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> list[ConfigSource]:
    """Discover all configuration sources.

    File-based sources are checked for existence. Project sources are
    omitted when there is no project root.

    Args:
        project_root: Project root directory. If None, auto-detect by
            searching upward for `.provenant/`.
        include_env: Include environment variables as a source.
        cli_overrides: Values given on the command line.

    Returns:
        ConfigSource objects in precedence order (highest first). Sources
        that don't exist are still included with exists=False.
    """
    sources: list[ConfigSource] = []
    resolved_root = project_root if project_root else find_project_root()

    if cli_overrides is not None:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.CLI,
                path=None,
                exists=bool(cli_overrides),
                values=cli_overrides,
            )
        )

    if include_env:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.ENV,
                path=None,
                exists=True,  # Values are parsed during loading
                values={},
            )
        )

    if resolved_root:
        for name, filename in (
            (ConfigSourceName.LOCAL, "provenant.local.toml"),
            (ConfigSourceName.PROJECT, "provenant.toml"),
        ):
            path = resolved_root / PROJECT_DIR_NAME / filename
            sources.append(
                ConfigSource(name=name, path=path, exists=_file_exists(path), values={})
            )

    user_path = get_user_config_path()
    sources.append(
        ConfigSource(
            name=ConfigSourceName.USER,
            path=user_path,
            exists=_file_exists(user_path),
            values={},
        )
    )

    sources.append(
        ConfigSource(
            name=ConfigSourceName.DEFAULT,
            path=None,
            exists=True,
            values=DEFAULT_CONFIG,
        )
    )

    return sources
