"""Shared test fixtures for provenant tests."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from rich.console import Console

from provenant.registry import DEFAULT_ARTIFACT_TYPES, Registry, register


@dataclass(frozen=True, slots=True)
class ProvenantProject:
    """Paths for a provenant-enabled test project."""

    root: Path
    provenant_dir: Path
    registry_path: Path


@pytest.fixture
def project(tmp_path: Path) -> ProvenantProject:
    """Create a project directory with a `.provenant/` marker.

    Structure:
        tmp_path/
            project/
                .provenant/
                data/
    """
    root = tmp_path / "project"
    provenant_dir = root / ".provenant"
    provenant_dir.mkdir(parents=True)
    (root / "data").mkdir()
    return ProvenantProject(
        root=root,
        provenant_dir=provenant_dir,
        registry_path=provenant_dir / "registry.yaml",
    )


@pytest.fixture
def empty_registry(project: ProvenantProject) -> Registry:
    return Registry(root=project.root)


BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


def at(minutes: int) -> datetime:
    """Return a fixed timestamp ``minutes`` after BASE_TIME."""
    return BASE_TIME + timedelta(minutes=minutes)


def write_file(root: Path, relative: str, content: str | bytes = "data") -> Path:
    """Create a file under ``root`` with the given content."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    return path


AddArtifact = Callable[..., Registry]


@pytest.fixture
def add_artifact() -> AddArtifact:
    """Return a function that writes a file and registers it in one step."""

    def _add(  # noqa: PLR0913
        registry: Registry,
        name: str,
        artifact_type: str = "raw_data",
        *,
        inputs: tuple[str, ...] = (),
        content: str | bytes | None = None,
        relative: str | None = None,
        minutes: int = 0,
        metadata: dict[str, object] | None = None,
    ) -> Registry:
        path = write_file(
            registry.root,
            relative or f"data/{name}.txt",
            content if content is not None else f"content of {name}",
        )
        return register(
            registry,
            name,
            artifact_type,
            path,
            allowed_types=DEFAULT_ARTIFACT_TYPES,
            input_artifacts=inputs,
            metadata=metadata,
            now=at(minutes),
        )

    return _add


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )
