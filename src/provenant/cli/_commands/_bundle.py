# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: D415, FBT002, TC003
"""Release bundle commands."""

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.markup import escape
from rich.table import Table

from provenant.bundle import (
    BundleResult,
    create_bundle,
    manifest_to_document,
    read_manifest,
    verify_bundle,
)
from provenant.registry import (
    RELEASE_BUNDLE_TYPE,
    Registry,
    default_artifact_name,
    update_registry,
)
from provenant.registry import load as load_registry
from provenant.utils import parse_timestamp

from ._context import CLIContext, OutputFormat
from ._output import print_structured, short_hash
from ._shared import ExitCode, reported_errors

app = App(
    name="bundle",
    help="Build and check release bundles",
    help_on_error=True,
)


def _output_path(ctx: CLIContext, output: Path | None, name: str | None) -> Path:
    filename = f"{name or default_artifact_name(RELEASE_BUNDLE_TYPE)}.zip"
    if output is None:
        return ctx.config.bundle_output_dir / filename
    if output.is_dir():
        return output / filename
    return output


@app.command(name="create")
def _create(
    roots: list[str],
    /,
    *,
    output: Annotated[
        Path | None,
        Parameter(
            name=["--output", "-o"],
            help="Archive file or directory (default: the configured output_dir)",
        ),
    ] = None,
    name: Annotated[
        str | None, Parameter(name=["--name", "-n"], help="Bundle name")
    ] = None,
    register: Annotated[
        bool, Parameter(help="Register the archive as a release_bundle artifact")
    ] = False,
    no_metadata: Annotated[
        bool,
        Parameter(
            name=["--no-metadata"], help="Leave artifact metadata out of the manifest"
        ),
    ] = False,
    verify_hashes: Annotated[
        bool, Parameter(help="Refuse to bundle files that changed since registration")
    ] = False,
    created_at: Annotated[
        str | None,
        Parameter(help="Manifest timestamp (ISO 8601), for reproducible archives"),
    ] = None,
) -> None:
    """Bundle artifacts and everything they were derived from

    Args:
        roots: Artifacts to release
        output: Where to write the zip archive
        name: Name of the bundle directory inside the archive
        register: Record the archive in the registry
        no_metadata: Omit metadata from the manifest
        verify_hashes: Rehash every file before bundling
        created_at: Fixed manifest timestamp
    """
    ctx = CLIContext.get_current()
    settings = ctx.config.bundle
    result: list[BundleResult] = []

    def _build(registry: Registry) -> Registry:
        built = create_bundle(
            registry,
            roots,
            output_path,
            include_metadata=settings.include_metadata and not no_metadata,
            bundle_name=name,
            created_at=timestamp,
            register=register,
            allowed_types=ctx.config.registry.types,
            verify_hashes=settings.verify_hashes or verify_hashes,
            logger=ctx.logger,
        )
        result[:] = [built]
        return built.registry

    with reported_errors(ctx.error_console):
        timestamp = parse_timestamp(created_at) if created_at else None
        output_path = _output_path(ctx, output, name)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if register:
            try:
                update_registry(
                    ctx.registry_path,
                    _build,
                    root=ctx.project_root,
                    max_attempts=ctx.config.registry.max_retries,
                    logger=ctx.logger,
                )
            except Exception:
                if result:
                    result[0].path.unlink(missing_ok=True)
                raise
        else:
            _build(load_registry(ctx.registry_path, root=ctx.project_root, logger=ctx.logger))

    bundle = result[0]
    if not ctx.quiet:
        ctx.console.print(
            f"[green]Created bundle[/green] {escape(bundle.manifest.bundle_name)} with "
            f"{bundle.manifest.artifact_count} artifacts: {escape(str(bundle.path))}"
        )


@app.command(name="show")
def _show(
    archive: Path,
    /,
    *,
    format: Annotated[  # noqa: A002
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """Show the manifest of a release bundle"""
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        manifest = read_manifest(archive)

    if format != OutputFormat.TABLE:
        print_structured(ctx.console, manifest_to_document(manifest), format)
        return

    ctx.console.print(
        f"[bold]{escape(manifest.bundle_name)}[/bold] created "
        f"{manifest.created_at.isoformat()} (roots: {escape(', '.join(manifest.roots))})"
    )
    table = Table()
    table.add_column("Name", no_wrap=True)
    table.add_column("Type")
    table.add_column("Archive path")
    table.add_column("SHA-256")
    for entry in manifest.artifacts:
        table.add_row(
            escape(entry.name),
            escape(entry.type),
            escape(entry.archive_path),
            short_hash(entry.content_hash),
        )
    ctx.console.print(table)


@app.command(name="verify")
def _verify(archive: Path, /) -> None:
    """Check a release bundle's files against its manifest"""
    ctx = CLIContext.get_current()
    with reported_errors(ctx.error_console):
        mismatches = verify_bundle(archive)

    for mismatch in mismatches:
        ctx.console.print(
            f"[red]{mismatch.reason.upper()}[/red] {escape(mismatch.archive_path)}"
        )
    if mismatches:
        raise SystemExit(ExitCode.VALIDATION_ERROR)
    if not ctx.quiet:
        ctx.console.print(f"[green]Bundle intact:[/green] {escape(str(archive))}")
