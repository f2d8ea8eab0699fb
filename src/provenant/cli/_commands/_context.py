# ruff: noqa: TC003  # Path needed at runtime for dataclass field
"""CLI context for global state management.

The CLIContext is set once per invocation by the meta command and made
available to every command via contextvars.
"""

import contextvars
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from rich.console import Console
from structlog.typing import FilteringBoundLogger

from provenant.config import Config
from provenant.utils import create_null_logger


class OutputFormat(StrEnum):
    """Supported output formats for commands."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context with configuration and options.

    Attributes:
        config: Loaded configuration object.
        console: Console for command output.
        error_console: Console for error messages.
        verbose: Enable verbose output with additional details.
        quiet: Suppress non-essential output.
        project_root: Directory relative artifact paths resolve against.
        logger: Structured logger for library operations.
    """

    config: Config = field(repr=False)
    console: Console = field(default_factory=Console, repr=False)
    error_console: Console = field(
        default_factory=lambda: Console(stderr=True), repr=False
    )
    verbose: bool = False
    quiet: bool = False
    project_root: Path = field(default_factory=Path.cwd)
    logger: FilteringBoundLogger = field(default_factory=create_null_logger, repr=False)

    @property
    def registry_path(self) -> Path:
        """Location of the registry file."""
        return self.config.registry_path

    @classmethod
    def get_current(cls) -> "CLIContext":  # noqa: UP037
        """Get the active CLIContext, or a default one if none is set."""
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx
        return cls(config=Config.from_dict({}))

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:  # noqa: UP037
        """Set the current active CLIContext."""
        _ = _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Reset to default context.

        This is primarily useful for testing to ensure a clean state between tests.
        """
        _ = _current_cli_context.set(None)


_current_cli_context: contextvars.ContextVar[CLIContext | None] = (
    contextvars.ContextVar("cli_context", default=None)
)
