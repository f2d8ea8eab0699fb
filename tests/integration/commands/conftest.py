import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from rich.console import Console

from provenant.cli import CLIContext, create_app
from tests.conftest import ProvenantProject

ProvenantCLI = Callable[..., int]


@pytest.fixture
def console() -> Console:
    """A console wide enough that tables never truncate names or hashes."""
    return Console(
        width=200,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def cli_env(
    project: ProvenantProject,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[ProvenantProject]:
    """Isolate the CLI from the user's config file and PROVENANT_ variables.

    Creates:
        tmp_path/
            project/
                .provenant/
                data/
            user_config/
    """
    user_config = tmp_path / "user_config" / "config.toml"
    monkeypatch.setattr(
        "provenant.config._discovery.get_user_config_path", lambda: user_config
    )
    for key in list(os.environ):
        if key.startswith("PROVENANT_"):
            monkeypatch.delenv(key)

    yield project

    CLIContext.reset()


@pytest.fixture
def provenant_cli(console: Console, cli_env: ProvenantProject) -> ProvenantCLI:
    """Create the CLI app and return a runner that reports the exit code.

    Every invocation is rooted at the test project.
    """
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app.meta(["--project-root", str(cli_env.root), *args])
        except SystemExit as e:
            if e.code is None:
                return 0
            return e.code if isinstance(e.code, int) else 1
        return 0

    return _run
