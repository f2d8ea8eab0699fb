"""The command-line interface for provenant."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated, Any

from cyclopts import App, Parameter
from rich.console import Console
from rich.markup import escape

from provenant._version import __version__
from provenant.config import (
    Config,
    ConfigError,
    ConfigLoadError,
    deep_merge,
    find_project_root,
    parse_string_value,
    set_nested_key,
)
from provenant.utils import create_cli_logger

from ._commands import register_commands
from ._commands._context import CLIContext
from ._commands._shared import ExitCode, exit_with_error

_HELP = "Track pipeline artifacts and their provenance, and build release bundles."


def _parse_overrides(pairs: list[str] | None, *, verbose: bool) -> dict[str, Any] | None:  # pyright: ignore[reportExplicitAny]
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            msg = f"Invalid --set value '{pair}': expected SECTION.KEY=VALUE"
            raise ConfigLoadError(msg)
        set_nested_key(overrides, key.strip(), parse_string_value(value))
    if verbose:
        set_nested_key(overrides, "logging.level", "debug")
    return overrides or None


def _load_config(
    config_path: Path | None,
    project_root: Path | None,
    cli_overrides: dict[str, Any] | None,  # pyright: ignore[reportExplicitAny]
) -> Config:
    root = project_root.resolve() if project_root else find_project_root()

    if config_path is None:
        return Config.load(project_root=root, cli_overrides=cli_overrides)

    # Explicit path - must exist
    if not config_path.is_file():
        msg = f"Config file not found: {config_path}"
        raise ConfigLoadError(msg, path=config_path)
    config = Config.from_file(config_path, project_root=root)
    if cli_overrides:
        return Config.from_dict(
            deep_merge(config.to_dict(), cli_overrides), project_root=root
        )
    return config


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="provenant",
        help=_HELP,
        version=__version__,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[bool, Parameter(help="Enable debug logging")] = False,
        quiet: Annotated[bool, Parameter(help="Suppress non-essential output")] = False,
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
        project_root: Annotated[
            Path | None, Parameter(name="--project-root", help="Path to project root")
        ] = None,
        overrides: Annotated[
            list[str] | None,
            Parameter(
                name="--set", help="Override a config value as SECTION.KEY=VALUE"
            ),
        ] = None,
    ) -> None:
        """Launch provenant with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Log at debug level.
            quiet: Suppress non-essential output.
            config: Explicit path to config file.
            project_root: Path to project root directory.
            overrides: Config values that take precedence over every file.
        """
        try:
            cli_overrides = _parse_overrides(overrides, verbose=verbose)
            loaded_config = _load_config(config, project_root, cli_overrides)
        except (ConfigError, OSError) as e:
            exit_with_error(escape(str(e)), ExitCode.LOAD_ERROR, console=error_console)

        cli_logger = create_cli_logger(
            level=loaded_config.logging.level.value,
            log_format=loaded_config.logging.format.value,
            log_file=loaded_config.logging.file,
            command=tokens[0] if tokens else "",
        )

        ctx = CLIContext(
            config=loaded_config,
            console=console,
            error_console=error_console,
            verbose=verbose,
            quiet=quiet,
            project_root=loaded_config.project_root or Path.cwd(),
            logger=cli_logger,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `provenant` CLI."""
    app = create_app()
    app.meta()
