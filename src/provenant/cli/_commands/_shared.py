# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands.

This module provides common utilities used across CLI command implementations:
- Standardized exit codes and the mapping from library errors to them
- Generic output formatters (JSON, YAML)
- Console utilities for error handling
"""

from collections.abc import Iterator
from contextlib import contextmanager
from enum import IntEnum
from typing import Any, Never

import orjson
import yaml
from rich.console import Console
from rich.markup import escape

from provenant.exceptions import (
    ArtifactFileNotFoundError,
    ArtifactNotFoundError,
    BundleError,
    ConcurrentModificationError,
    ConfigError,
    CorruptRegistryError,
    HashMismatchError,
    ProvenantError,
    RegistryStoreError,
)

FormattableData = dict[str, Any] | list[Any]

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_code_for",
    "exit_with_error",
    "format_json",
    "format_yaml",
    "reported_errors",
]


class ExitCode(IntEnum):
    """Standard exit codes for provenant CLI commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5
    CONCURRENT_MODIFICATION = 6


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Format data as JSON.

    Args:
        data: Mapping or list to format as JSON.
        indent: Whether to pretty-print with indentation.

    Returns:
        JSON-formatted string representation.
    """
    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, default=str, option=options).decode("utf-8")


def format_yaml(data: FormattableData) -> str:
    """Format data as YAML."""
    return yaml.safe_dump(
        data, default_flow_style=False, allow_unicode=True, sort_keys=False
    )


def exit_code_for(error: BaseException) -> ExitCode:  # noqa: PLR0911
    """Map an exception raised by a library operation to an exit code.

    Several registry errors also derive from builtin exceptions, so the
    specific classes are checked before the builtin ones.
    """
    if isinstance(error, ConcurrentModificationError):
        return ExitCode.CONCURRENT_MODIFICATION
    if isinstance(error, (ConfigError, CorruptRegistryError)):
        return ExitCode.LOAD_ERROR
    if isinstance(error, (ArtifactNotFoundError, ArtifactFileNotFoundError)):
        return ExitCode.NOT_FOUND
    if isinstance(error, RegistryStoreError):
        return ExitCode.IO_ERROR
    if isinstance(error, (HashMismatchError, BundleError, ValueError, TypeError)):
        return ExitCode.VALIDATION_ERROR
    if isinstance(error, FileNotFoundError):
        return ExitCode.NOT_FOUND
    if isinstance(error, OSError):
        return ExitCode.IO_ERROR
    return ExitCode.INTERNAL_ERROR


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Args:
        message: The error message to display.
        code: The exit code to use (defaults to INTERNAL_ERROR).
        console: Optional Rich console for output. If not provided,
            a new stderr console will be created.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = Console(stderr=True)

    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)


@contextmanager
def reported_errors(console: Console | None = None) -> Iterator[None]:
    """Turn library errors raised inside the block into an error exit.

    Raises:
        SystemExit: With the code from ``exit_code_for`` when a provenant
            error or an OS, value or type error escapes the block.
    """
    try:
        yield
    except (ProvenantError, OSError, ValueError, TypeError) as e:
        exit_with_error(escape(str(e)), exit_code_for(e), console=console)
