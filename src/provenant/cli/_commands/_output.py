# pyright: reportExplicitAny=false
"""Rendering of registry values for the terminal."""

from collections.abc import Iterable
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from provenant.cli._commands._context import OutputFormat
from provenant.cli._commands._shared import FormattableData, format_json, format_yaml
from provenant.registry import Artifact, VerificationResult
from provenant.registry._serialization import to_plain
from provenant.utils import format_timestamp

_SHORT_HASH_LENGTH = 12


def artifact_to_dict(artifact: Artifact) -> dict[str, Any]:
    """Plain representation of an artifact for JSON and YAML output."""
    data: dict[str, Any] = {
        "name": artifact.name,
        "type": artifact.type,
        "file_path": artifact.file_path,
        "content_hash": artifact.content_hash,
        "size_bytes": artifact.size_bytes,
        "created_at": format_timestamp(artifact.created_at),
        "input_artifacts": list(artifact.input_artifacts),
    }
    if artifact.data_hash is not None:
        data["data_hash"] = artifact.data_hash
    data["metadata"] = to_plain(artifact.metadata)
    return data


def verification_to_dict(result: VerificationResult) -> dict[str, Any]:
    return {
        "name": result.name,
        "valid": result.valid,
        "expected": result.expected,
        "actual": result.actual,
        "path": str(result.path),
    }


def short_hash(value: str | None) -> str:
    if value is None:
        return "-"
    return value[:_SHORT_HASH_LENGTH]


def print_structured(console: Console, data: FormattableData, fmt: OutputFormat) -> None:
    """Print data as JSON or YAML without markup or wrapping."""
    text = format_json(data) if fmt == OutputFormat.JSON else format_yaml(data)
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def artifact_table(artifacts: Iterable[Artifact], *, title: str | None = None) -> Table:
    table = Table(title=title)
    table.add_column("Name", no_wrap=True)
    table.add_column("Type")
    table.add_column("Created")
    table.add_column("Size", justify="right")
    table.add_column("SHA-256")
    table.add_column("Inputs")
    for artifact in artifacts:
        table.add_row(
            escape(artifact.name),
            escape(artifact.type),
            artifact.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(artifact.size_bytes),
            short_hash(artifact.content_hash),
            escape(", ".join(artifact.input_artifacts)) or "-",
        )
    return table


def print_artifacts(
    console: Console,
    artifacts: list[Artifact],
    fmt: OutputFormat,
    *,
    title: str | None = None,
) -> None:
    if fmt == OutputFormat.TABLE:
        console.print(artifact_table(artifacts, title=title))
    else:
        print_structured(console, [artifact_to_dict(a) for a in artifacts], fmt)
