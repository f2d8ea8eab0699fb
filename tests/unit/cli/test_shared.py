from pathlib import Path

import pytest
import yaml
from rich.console import Console

from provenant.cli import ExitCode
from provenant.cli._commands import (
    exit_code_for,
    exit_with_error,
    format_json,
    format_yaml,
    reported_errors,
)
from provenant.exceptions import (
    ArtifactFileNotFoundError,
    ArtifactNotFoundError,
    BundleError,
    ConcurrentModificationError,
    ConfigLoadError,
    ConfigValidationError,
    CorruptRegistryError,
    DuplicateNameError,
    HashMismatchError,
    InvalidTypeError,
    RegistryStoreError,
)

_PATH = Path("/project/.provenant/registry.yaml")


class TestExitCodeFor:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (
                ConcurrentModificationError(
                    "conflict", path=_PATH, expected_revision=1, actual_revision=2
                ),
                ExitCode.CONCURRENT_MODIFICATION,
            ),
            (ConfigLoadError("bad toml"), ExitCode.LOAD_ERROR),
            (ConfigValidationError("bad value"), ExitCode.LOAD_ERROR),
            (CorruptRegistryError("bad yaml", path=_PATH), ExitCode.LOAD_ERROR),
            (ArtifactNotFoundError("missing", name="x"), ExitCode.NOT_FOUND),
            (
                ArtifactFileNotFoundError("gone", name="x", path=_PATH),
                ExitCode.NOT_FOUND,
            ),
            (
                RegistryStoreError("disk", path=_PATH, operation="write"),
                ExitCode.IO_ERROR,
            ),
            (DuplicateNameError("dup", name="x"), ExitCode.VALIDATION_ERROR),
            (InvalidTypeError("type"), ExitCode.VALIDATION_ERROR),
            (
                HashMismatchError("changed", name="x", expected="a", actual="b"),
                ExitCode.VALIDATION_ERROR,
            ),
            (BundleError("collision"), ExitCode.VALIDATION_ERROR),
            (ValueError("bad"), ExitCode.VALIDATION_ERROR),
            (TypeError("bad"), ExitCode.VALIDATION_ERROR),
            (FileNotFoundError("nope"), ExitCode.NOT_FOUND),
            (PermissionError("denied"), ExitCode.IO_ERROR),
            (RuntimeError("boom"), ExitCode.INTERNAL_ERROR),
        ],
    )
    def test_maps_error(self, error: BaseException, expected: ExitCode) -> None:
        assert exit_code_for(error) == expected


class TestExitWithError:
    def test_prints_and_exits(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            exit_with_error("it broke", ExitCode.IO_ERROR, console=console)

        assert exc_info.value.code == ExitCode.IO_ERROR
        assert "Error: it broke" in capsys.readouterr().out


class TestReportedErrors:
    def test_converts_library_error(
        self, console: Console, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info, reported_errors(console):
            raise ArtifactNotFoundError("Artifact not found: [ghost]", name="[ghost]")

        assert exc_info.value.code == ExitCode.NOT_FOUND
        assert "Artifact not found: [ghost]" in capsys.readouterr().out

    def test_other_errors_propagate(self, console: Console) -> None:
        with pytest.raises(RuntimeError), reported_errors(console):
            raise RuntimeError("bug")

    def test_no_error(self, console: Console) -> None:
        with reported_errors(console):
            pass


class TestFormatters:
    def test_json_indented(self) -> None:
        assert format_json({"a": [1, 2]}) == '{\n  "a": [\n    1,\n    2\n  ]\n}'

    def test_json_compact(self) -> None:
        assert format_json({"a": 1}, indent=False) == '{"a":1}'

    def test_json_stringifies_unknown_types(self) -> None:
        assert format_json({"p": Path("/x")}, indent=False) == '{"p":"/x"}'

    def test_yaml_keeps_key_order(self) -> None:
        text = format_yaml({"z": 1, "a": 2})

        assert text == "z: 1\na: 2\n"
        assert yaml.safe_load(text) == {"z": 1, "a": 2}
