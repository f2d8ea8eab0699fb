"""Provenant configuration.

Configuration is read from TOML files and ``PROVENANT_SECTION__KEY``
environment variables and exposed through immutable pydantic models.

Example:
    >>> from provenant.config import Config
    >>> config = Config.load()
    >>> config.registry.path
    '.provenant/registry.yaml'
"""

from provenant.exceptions import ConfigError, ConfigLoadError, ConfigValidationError

from ._config import Config
from ._defaults import DEFAULT_CONFIG, PROJECT_DIR_NAME
from ._discovery import discover_sources, find_project_root, get_user_config_path
from ._loader import (
    ENV_PREFIX,
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    BundleConfig,
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ProjectConfig,
    RegistryConfig,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "PROJECT_DIR_NAME",
    "BundleConfig",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ProjectConfig",
    "RegistryConfig",
    "deep_merge",
    "discover_sources",
    "find_project_root",
    "get_user_config_path",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
    "set_nested_key",
]
