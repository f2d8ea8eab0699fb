# pyright: reportExplicitAny=false, reportAny=false
"""Configuration container with typed access.

This module provides the Config class, the primary interface for reading
provenant configuration values.
"""

from pathlib import Path
from typing import Any, ClassVar, Self, TypeVar, overload

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from provenant.config._defaults import DEFAULT_CONFIG
from provenant.config._discovery import discover_sources, find_project_root
from provenant.config._loader import copy_value, deep_merge, parse_env_vars, read_toml_file
from provenant.config._models import (
    BundleConfig,
    ConfigSource,
    ConfigSourceName,
    LoggingConfig,
    ProjectConfig,
    RegistryConfig,
)
from provenant.exceptions import ConfigValidationError

T = TypeVar("T")


def _validate(data: dict[str, Any], source: str | None) -> "Config":  # noqa: UP037
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        key = ".".join(str(part) for part in error.get("loc", ()))
        msg = f"Invalid configuration value for '{key}': {error.get('msg', 'invalid value')}"
        if source:
            msg = f"{msg} (from {source})"
        raise ConfigValidationError(
            msg,
            key=key,
            value=error.get("input"),
            expected=str(error.get("msg")),
            source=source,
        ) from e


class Config(BaseModel):
    """Configuration container with typed access.

    Instances are immutable. Use ``load()``, ``from_file()`` or
    ``from_dict()`` rather than the constructor.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    bundle: BundleConfig = Field(default_factory=BundleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    _data: dict[str, Any] = PrivateAttr(default_factory=dict)
    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())
    _project_root: Path | None = PrivateAttr(default=None)

    @classmethod
    def _build(
        cls,
        merged: dict[str, Any],
        *,
        sources: tuple[ConfigSource, ...] = (),
        project_root: Path | None = None,
        source_label: str | None = None,
    ) -> Self:
        config = _validate(merged, source_label)
        config._data = merged
        config._sources = sources
        config._project_root = project_root
        return config  # pyright: ignore[reportReturnType]

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        project_root: Path | None = None,
    ) -> Self:
        """Create configuration from a dictionary merged over the defaults.

        Raises:
            ConfigValidationError: If a value fails validation.
        """
        return cls._build(deep_merge(DEFAULT_CONFIG, data), project_root=project_root)

    @classmethod
    def from_file(cls, path: Path, *, project_root: Path | None = None) -> Self:
        """Load configuration from a single TOML file merged over the defaults.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If a value fails validation.
        """
        data = read_toml_file(path)
        source = ConfigSource(
            name=ConfigSourceName.PROJECT,
            path=path,
            exists=True,
            values=data,
        )
        return cls._build(
            deep_merge(DEFAULT_CONFIG, data),
            sources=(source,),
            project_root=project_root,
            source_label=str(path),
        )

    @classmethod
    def load(
        cls,
        *,
        project_root: Path | None = None,
        include_env: bool = True,
        cli_overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Sources merge lowest to highest: defaults, user, project, local,
        environment, CLI.

        Args:
            project_root: Project root directory. If None, auto-detect by
                searching upward for `.provenant/`.
            include_env: Include ``PROVENANT_SECTION__KEY`` variables.
            cli_overrides: Values given on the command line.

        Returns:
            Merged configuration object.

        Raises:
            ConfigLoadError: If a config file cannot be parsed.
            ConfigValidationError: If the merged config fails validation.
        """
        root = project_root if project_root else find_project_root()
        sources = discover_sources(
            project_root=root,
            include_env=include_env,
            cli_overrides=cli_overrides,
        )

        merged: dict[str, Any] = {}
        loaded: list[ConfigSource] = []
        for source in reversed(sources):
            values: dict[str, Any] = source.values
            if source.name == ConfigSourceName.ENV:
                values = parse_env_vars()
            elif source.path is not None:
                values = read_toml_file(source.path) if source.exists else {}

            loaded.append(
                ConfigSource(
                    name=source.name,
                    path=source.path,
                    exists=source.exists,
                    values=values,
                )
            )
            if values:
                merged = deep_merge(merged, values)

        return cls._build(merged, sources=tuple(reversed(loaded)), project_root=root)

    @property
    def sources(self) -> list[ConfigSource]:
        """Sources that contributed to this configuration, highest first."""
        return list(self._sources)

    @property
    def project_root(self) -> Path | None:
        """Project root the configuration was loaded for, if any."""
        return self._project_root

    def _under_root(self, value: str) -> Path:
        path = Path(value).expanduser()
        if path.is_absolute():
            return path
        return (self._project_root or Path.cwd()) / path

    @property
    def registry_path(self) -> Path:
        """Absolute location of the registry file."""
        return self._under_root(self.registry.path)

    @property
    def bundle_output_dir(self) -> Path:
        """Absolute location of the default bundle output directory."""
        return self._under_root(self.bundle.output_dir)

    @overload
    def get(self, key: str) -> Any: ...

    @overload
    def get(self, key: str, default: T) -> T: ...

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key.

        Examples:
            >>> config.get("registry.max_retries")
            3
            >>> config.get("nonexistent", "fallback")
            'fallback'
        """
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def to_dict(self) -> dict[str, Any]:
        """Return a deep copy of the merged configuration data."""
        return copy_value(self._data)
