"""Provenant CLI commands."""
# pyright: reportUnusedCallResult=false

from cyclopts import App

from ._bundle import app as bundle_app
from ._context import CLIContext, OutputFormat
from ._registry import (
    closure_command,
    hash_command,
    latest_command,
    list_command,
    prune_command,
    register_command,
    show_command,
    validate_command,
    verify_command,
)
from ._shared import (
    ExitCode,
    FormattableData,
    exit_code_for,
    exit_with_error,
    format_json,
    format_yaml,
    reported_errors,
)

__all__ = [
    "CLIContext",
    "ExitCode",
    "FormattableData",
    "OutputFormat",
    "bundle_app",
    "exit_code_for",
    "exit_with_error",
    "format_json",
    "format_yaml",
    "register_commands",
    "reported_errors",
]


def register_commands(app: App) -> None:
    app.command(register_command, name="register")
    app.command(list_command, name="list")
    app.command(show_command, name="show")
    app.command(latest_command, name="latest")
    app.command(verify_command, name="verify")
    app.command(validate_command, name="validate")
    app.command(closure_command, name="closure")
    app.command(prune_command, name="prune")
    app.command(hash_command, name="hash")
    app.command(bundle_app)
