"""Configuration section models and source tracking types."""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from provenant.registry import DEFAULT_ARTIFACT_TYPES, DEFAULT_MAX_ATTEMPTS


class LogLevel(StrEnum):
    """Log level threshold values, most verbose first."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class ConfigSourceName(StrEnum):
    """Configuration source names, highest precedence first."""

    CLI = "cli"
    ENV = "env"
    LOCAL = "local"
    PROJECT = "project"
    USER = "user"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """Represents a configuration source.

    Attributes:
        name: The source type identifier.
        path: Path to the config file, or None for non-file sources.
        exists: Whether the source exists (file exists, or values are present).
        values: Configuration values from this source.
    """

    name: ConfigSourceName
    path: Path | None
    exists: bool
    values: dict[str, Any]  # pyright: ignore[reportExplicitAny]


class ProjectConfig(BaseModel):
    """Project configuration section.

    Attributes:
        name: Project name.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    name: str = ""


class RegistryConfig(BaseModel):
    """Registry configuration section.

    Attributes:
        path: Registry file, relative to the project root.
        allowed_types: Artifact types accepted for registration.
        extra_types: Types added to ``allowed_types`` without restating it.
        max_retries: Load-mutate-save attempts on concurrent modification.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    path: str = ".provenant/registry.yaml"
    allowed_types: tuple[str, ...] = tuple(sorted(DEFAULT_ARTIFACT_TYPES))
    extra_types: tuple[str, ...] = ()
    max_retries: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)

    @field_validator("allowed_types", "extra_types")
    @classmethod
    def _no_blank_types(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if any(not t.strip() for t in value):
            msg = "artifact types must be non-empty strings"
            raise ValueError(msg)
        return value

    @property
    def types(self) -> frozenset[str]:
        """All types accepted for registration."""
        return frozenset(self.allowed_types) | frozenset(self.extra_types)


class BundleConfig(BaseModel):
    """Bundle configuration section.

    Attributes:
        output_dir: Default directory for archives, relative to the project root.
        include_metadata: Copy artifact metadata into manifests.
        verify_hashes: Rehash files before bundling.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    output_dir: str = "dist"
    include_metadata: bool = True
    verify_hashes: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.WARNING
    format: LogFormat = LogFormat.TEXT
    file: str = ""
