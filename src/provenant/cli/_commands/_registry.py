# pyright: reportUnusedCallResult=false, reportExplicitAny=false, reportAny=false
# ruff: noqa: D415, FBT002, TC003
"""Commands that read and change the artifact registry."""

from pathlib import Path
from typing import Annotated, Any

import polars as pl
from cyclopts import Parameter
from rich.markup import escape
from rich.table import Table

from provenant.bundle import find_dependents, resolve_closure
from provenant.config import parse_string_value, set_nested_key
from provenant.hashing import hash_file, hash_tabular
from provenant.registry import (
    Registry,
    get_latest,
    get_or_raise,
    list_artifacts,
    load,
    prune,
    register,
    update_registry,
    validate_registry,
    verify_all,
)

from ._context import CLIContext, OutputFormat
from ._output import (
    artifact_to_dict,
    print_artifacts,
    print_structured,
    short_hash,
    verification_to_dict,
)
from ._shared import ExitCode, exit_with_error, reported_errors

__all__ = [
    "closure_command",
    "hash_command",
    "latest_command",
    "list_command",
    "prune_command",
    "register_command",
    "show_command",
    "validate_command",
    "verify_command",
]

FormatOption = Annotated[
    OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
]


def _load_registry(ctx: CLIContext) -> Registry:
    return load(ctx.registry_path, root=ctx.project_root, logger=ctx.logger)


def _parse_metadata(pairs: list[str] | None) -> dict[str, Any]:
    """Parse ``key=value`` pairs; dotted keys build nested mappings."""
    metadata: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            msg = f"Invalid metadata '{pair}': expected KEY=VALUE"
            raise ValueError(msg)
        set_nested_key(metadata, key.strip(), parse_string_value(value))
    return metadata


def read_table(path: Path) -> pl.DataFrame:
    """Read a CSV or Parquet file into a DataFrame."""
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pl.read_csv(path)
    if suffix in {".parquet", ".pq"}:
        return pl.read_parquet(path)
    msg = f"Cannot read {path} as a table: expected a .csv or .parquet file"
    raise ValueError(msg)


def register_command(
    name: str,
    path: Path,
    /,
    *,
    type: Annotated[  # noqa: A002
        str, Parameter(name=["--type", "-t"], help="Artifact type")
    ],
    inputs: Annotated[
        list[str] | None,
        Parameter(name=["--input", "-i"], help="Name of an input artifact (repeatable)"),
    ] = None,
    meta: Annotated[
        list[str] | None,
        Parameter(name=["--meta", "-m"], help="Metadata as KEY=VALUE (repeatable)"),
    ] = None,
    tabular: Annotated[
        bool,
        Parameter(help="Also record a row and column order independent data hash"),
    ] = False,
    sort_keys: Annotated[
        list[str] | None,
        Parameter(name=["--sort-key"], help="Column to sort rows by for --tabular"),
    ] = None,
) -> None:
    """Register an existing file as an artifact

    Args:
        name: Unique artifact name
        path: The artifact's file, relative to the project root or absolute
        type: Artifact type
        inputs: Artifacts this one was derived from
        meta: Metadata entries
        tabular: Hash the file's logical table content as well
        sort_keys: Columns that order rows before hashing
    """
    ctx = CLIContext.get_current()
    config = ctx.config.registry

    with reported_errors(ctx.error_console):
        metadata = _parse_metadata(meta)
        absolute = path if path.is_absolute() else ctx.project_root / path
        data_hash = None
        if tabular and absolute.is_file():
            data_hash = hash_tabular(read_table(absolute), sort_keys=sort_keys or ())

        saved = update_registry(
            ctx.registry_path,
            lambda registry: register(
                registry,
                name,
                type,
                absolute,
                allowed_types=config.types,
                input_artifacts=inputs or (),
                metadata=metadata,
                data_hash=data_hash,
                logger=ctx.logger,
            ),
            root=ctx.project_root,
            max_attempts=config.max_retries,
            logger=ctx.logger,
        )

    artifact = saved.artifacts[name]
    if not ctx.quiet:
        ctx.console.print(
            f"[green]Registered[/green] {escape(name)} ({escape(artifact.type)}) "
            f"sha256:{short_hash(artifact.content_hash)}"
        )


def list_command(
    *,
    type: Annotated[  # noqa: A002
        str | None, Parameter(name=["--type", "-t"], help="Filter by type")
    ] = None,
    workflow: Annotated[
        str | None, Parameter(name=["--workflow", "-w"], help="Filter by workflow")
    ] = None,
    format: FormatOption = OutputFormat.TABLE,  # noqa: A002
) -> None:
    """List registered artifacts in registration order"""
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        registry = _load_registry(ctx)
    artifacts = list_artifacts(registry, artifact_type=type, workflow=workflow)

    if format == OutputFormat.TABLE and not artifacts:
        ctx.console.print("[dim]No artifacts found.[/dim]")
        return
    print_artifacts(ctx.console, artifacts, format)


def show_command(
    name: str,
    /,
    *,
    format: FormatOption = OutputFormat.TABLE,  # noqa: A002
) -> None:
    """Show one artifact with its inputs and dependents"""
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        registry = _load_registry(ctx)
        artifact = get_or_raise(registry, name)
        dependents = [a.name for a in find_dependents(registry, name)]

    if format != OutputFormat.TABLE:
        data = artifact_to_dict(artifact)
        data["path"] = str(registry.resolve(artifact))
        data["dependents"] = dependents
        print_structured(ctx.console, data, format)
        return

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Name", escape(artifact.name))
    table.add_row("Type", escape(artifact.type))
    table.add_row("Path", escape(str(registry.resolve(artifact))))
    table.add_row("SHA-256", artifact.content_hash)
    if artifact.data_hash is not None:
        table.add_row("Data hash", artifact.data_hash)
    table.add_row("Size", f"{artifact.size_bytes} bytes")
    table.add_row("Created", artifact.created_at.isoformat())
    table.add_row("Inputs", escape(", ".join(artifact.input_artifacts)) or "-")
    table.add_row("Dependents", escape(", ".join(dependents)) or "-")
    for key, value in artifact.metadata.items():
        table.add_row(f"meta.{escape(str(key))}", escape(str(value)))
    ctx.console.print(table)


def latest_command(
    type: str,  # noqa: A002
    /,
    *,
    format: FormatOption = OutputFormat.TABLE,  # noqa: A002
) -> None:
    """Show the most recently created artifact of a type"""
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        registry = _load_registry(ctx)
    artifact = get_latest(registry, type)
    if artifact is None:
        exit_with_error(
            f"No artifact of type '{escape(type)}'",
            ExitCode.NOT_FOUND,
            console=ctx.error_console,
        )
    print_artifacts(ctx.console, [artifact], format)


def verify_command(
    names: list[str] | None = None,
    /,
    *,
    format: FormatOption = OutputFormat.TABLE,  # noqa: A002
) -> None:
    """Check artifact files against their recorded hashes

    Exits with a validation error when any file is missing or changed.

    Args:
        names: Artifacts to check (all when omitted)
        format: Output format
    """
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        registry = _load_registry(ctx)
        results = verify_all(registry, names=names or None, logger=ctx.logger)

    failed = [r for r in results if not r.valid]
    if format != OutputFormat.TABLE:
        print_structured(ctx.console, [verification_to_dict(r) for r in results], format)
    else:
        for result in results:
            if result.valid:
                if not ctx.quiet:
                    ctx.console.print(f"[green]OK[/green]       {escape(result.name)}")
            elif result.missing:
                ctx.console.print(
                    f"[red]MISSING[/red]  {escape(result.name)}: {escape(str(result.path))}"
                )
            else:
                ctx.console.print(
                    f"[red]CHANGED[/red]  {escape(result.name)}: expected "
                    f"{short_hash(result.expected)}, found {short_hash(result.actual)}"
                )
        if not ctx.quiet:
            ctx.console.print(f"{len(results) - len(failed)}/{len(results)} verified")

    if failed:
        raise SystemExit(ExitCode.VALIDATION_ERROR)


def validate_command(
    *,
    require: Annotated[
        list[str] | None,
        Parameter(name=["--require", "-r"], help="Type that must be present (repeatable)"),
    ] = None,
    check_hashes: Annotated[
        bool, Parameter(help="Also rehash every file (slow for large artifacts)")
    ] = False,
    strict: Annotated[bool, Parameter(help="Treat warnings as errors")] = False,
) -> None:
    """Validate the registry's integrity

    Args:
        require: Artifact types that must have at least one artifact
        check_hashes: Report files whose content changed
        strict: Fail on warnings too
    """
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        registry = _load_registry(ctx)
        result = validate_registry(
            registry, required_types=require or (), check_hashes=check_hashes
        )

    for issue in result.issues:
        label = "[red]error[/red]" if issue.level == "error" else "[yellow]warning[/yellow]"
        subject = f"{escape(issue.artifact)}: " if issue.artifact else ""
        ctx.console.print(f"{label}: {subject}{escape(issue.message)}")

    if not result.valid or (strict and result.warnings):
        raise SystemExit(ExitCode.VALIDATION_ERROR)
    if not ctx.quiet:
        ctx.console.print("[green]Registry is valid[/green]")


def closure_command(
    roots: list[str],
    /,
    *,
    format: FormatOption = OutputFormat.TABLE,  # noqa: A002
) -> None:
    """List the artifacts a release of the given roots would contain"""
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        registry = _load_registry(ctx)
        closure = resolve_closure(registry, roots)
    print_artifacts(ctx.console, closure, format, title="Provenance closure")


def prune_command(
    type: str,  # noqa: A002
    /,
    *,
    keep: Annotated[
        int, Parameter(name=["--keep", "-k"], help="Number of newest artifacts to keep")
    ],
    delete_files: Annotated[
        bool, Parameter(help="Delete the pruned artifacts' files from disk")
    ] = False,
    dry_run: Annotated[
        bool, Parameter(help="Show what would be pruned without saving")
    ] = False,
) -> None:
    """Remove all but the newest artifacts of a type

    Artifacts still used as inputs by a kept artifact are retained.

    Args:
        type: Artifact type to prune
        keep: How many of the newest artifacts to keep
        delete_files: Unlink the pruned files after saving
        dry_run: Only report what would be removed
    """
    ctx = CLIContext.get_current()
    removed: list[Path] = []
    pruned_artifacts: list[tuple[str, Path]] = []

    def _prune(registry: Registry) -> Registry:
        pruned, paths = prune(registry, type, keep, logger=ctx.logger)
        removed[:] = paths
        pruned_artifacts[:] = [
            (a.name, registry.resolve(a))
            for a in sorted(registry.artifacts.values(), key=lambda a: a.created_at)
            if a.name not in pruned.artifacts
        ]
        return pruned

    with reported_errors(ctx.error_console):
        if dry_run:
            _prune(_load_registry(ctx))
        else:
            update_registry(
                ctx.registry_path,
                _prune,
                root=ctx.project_root,
                max_attempts=ctx.config.registry.max_retries,
                logger=ctx.logger,
            )

    if not pruned_artifacts:
        ctx.console.print("[dim]Nothing to prune.[/dim]")
        return

    verb = "Would remove" if dry_run else "Removed"
    for name, path in pruned_artifacts:
        ctx.console.print(f"{verb} {escape(name)} ({escape(str(path))})")

    if delete_files and not dry_run:
        for path in removed:
            path.unlink(missing_ok=True)
            ctx.logger.info("artifact_file_deleted", path=str(path))


def hash_command(
    path: Path,
    /,
    *,
    tabular: Annotated[
        bool, Parameter(help="Hash the logical table content of a CSV or Parquet file")
    ] = False,
    sort_keys: Annotated[
        list[str] | None,
        Parameter(name=["--sort-key"], help="Column to sort rows by for --tabular"),
    ] = None,
) -> None:
    """Print the SHA-256 digest of a file"""
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        if tabular:
            digest = hash_tabular(read_table(path), sort_keys=sort_keys or ())
        else:
            digest = hash_file(path)
    ctx.console.print(f"{digest}  {escape(str(path))}", highlight=False)
