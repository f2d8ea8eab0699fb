from pathlib import Path
from typing import TYPE_CHECKING

import polars as pl
import pytest

from provenant.exceptions import (
    ArtifactNotFoundError,
    DuplicateNameError,
    InvalidTypeError,
)
from provenant.hashing import hash_bytes, hash_tabular
from provenant.registry import DEFAULT_ARTIFACT_TYPES, Registry, save_and_register
from tests.conftest import BASE_TIME, AddArtifact, ProvenantProject, write_file

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture
def frame() -> pl.DataFrame:
    return pl.DataFrame({"id": [2, 1], "value": ["b", "a"]})


class TestSupportedObjects:
    def test_bytes(self, project: ProvenantProject, empty_registry: Registry) -> None:
        registry = save_and_register(
            b"\x00\xff",
            "out/blob.bin",
            "intermediate",
            empty_registry,
            name="blob",
            allowed_types=DEFAULT_ARTIFACT_TYPES,
        )

        assert (project.root / "out" / "blob.bin").read_bytes() == b"\x00\xff"
        assert registry.artifacts["blob"].content_hash == hash_bytes(b"\x00\xff")
        assert registry.artifacts["blob"].file_path == "out/blob.bin"

    def test_str_written_as_utf8(
        self, project: ProvenantProject, empty_registry: Registry
    ) -> None:
        registry = save_and_register(
            "naïve",
            "out/notes.txt",
            "report",
            empty_registry,
            name="notes",
            allowed_types=DEFAULT_ARTIFACT_TYPES,
        )

        assert registry.artifacts["notes"].content_hash == hash_bytes("naïve".encode())
        assert (project.root / "out" / "notes.txt").read_text(encoding="utf-8") == "naïve"
        assert registry.artifacts["notes"].data_hash is None

    def test_path_is_copied(
        self, project: ProvenantProject, empty_registry: Registry
    ) -> None:
        source = write_file(project.root, "scratch/fig.png", b"PNG")

        registry = save_and_register(
            source,
            "plots/fig.png",
            "plot_object",
            empty_registry,
            name="fig",
            allowed_types=DEFAULT_ARTIFACT_TYPES,
        )

        assert source.exists()
        assert (project.root / "plots" / "fig.png").read_bytes() == b"PNG"
        assert registry.artifacts["fig"].file_path == "plots/fig.png"

    def test_missing_source_path(
        self, project: ProvenantProject, empty_registry: Registry
    ) -> None:
        with pytest.raises(FileNotFoundError):
            save_and_register(
                project.root / "nope.png",
                "plots/fig.png",
                "plot_object",
                empty_registry,
                name="fig",
                allowed_types=DEFAULT_ARTIFACT_TYPES,
            )

    def test_dataframe_csv_records_data_hash(
        self, project: ProvenantProject, empty_registry: Registry, frame: pl.DataFrame
    ) -> None:
        registry = save_and_register(
            frame,
            "data/table.csv",
            "processed_data",
            empty_registry,
            name="table",
            allowed_types=DEFAULT_ARTIFACT_TYPES,
        )

        written = pl.read_csv(project.root / "data" / "table.csv")
        assert written.equals(frame)
        assert registry.artifacts["table"].data_hash == hash_tabular(frame)

    def test_dataframe_parquet(
        self, project: ProvenantProject, empty_registry: Registry, frame: pl.DataFrame
    ) -> None:
        registry = save_and_register(
            frame,
            "data/table.parquet",
            "processed_data",
            empty_registry,
            name="table",
            allowed_types=DEFAULT_ARTIFACT_TYPES,
        )

        assert pl.read_parquet(project.root / "data" / "table.parquet").equals(frame)
        assert registry.artifacts["table"].data_hash == hash_tabular(frame)

    def test_explicit_data_hash_wins(
        self, empty_registry: Registry, frame: pl.DataFrame
    ) -> None:
        registry = save_and_register(
            frame,
            "data/table.csv",
            "processed_data",
            empty_registry,
            name="table",
            allowed_types=DEFAULT_ARTIFACT_TYPES,
            data_hash="given",
        )

        assert registry.artifacts["table"].data_hash == "given"

    def test_dataframe_unknown_suffix(
        self, project: ProvenantProject, empty_registry: Registry, frame: pl.DataFrame
    ) -> None:
        with pytest.raises(ValueError, match=r"\.xlsx"):
            save_and_register(
                frame,
                "data/table.xlsx",
                "processed_data",
                empty_registry,
                name="table",
                allowed_types=DEFAULT_ARTIFACT_TYPES,
            )

        assert not (project.root / "data" / "table.xlsx").exists()

    def test_unsupported_object(self, empty_registry: Registry) -> None:
        with pytest.raises(TypeError, match="dict"):
            save_and_register(
                {"a": 1},
                "out/thing",
                "results",
                empty_registry,
                name="thing",
                allowed_types=DEFAULT_ARTIFACT_TYPES,
            )


class TestRegistration:
    def test_default_name_from_type_and_time(self, empty_registry: Registry) -> None:
        registry = save_and_register(
            b"x",
            "out/results.bin",
            "results",
            empty_registry,
            allowed_types=DEFAULT_ARTIFACT_TYPES,
            now=BASE_TIME,
        )

        assert registry.names == ("results_20240501_120000",)
        assert registry.artifacts["results_20240501_120000"].created_at == BASE_TIME

    def test_naive_timestamp_taken_as_utc(self, empty_registry: Registry) -> None:
        registry = save_and_register(
            b"x",
            "out/results.bin",
            "results",
            empty_registry,
            allowed_types=DEFAULT_ARTIFACT_TYPES,
            now=BASE_TIME.replace(tzinfo=None),
        )

        assert registry.artifacts["results_20240501_120000"].created_at == BASE_TIME
        assert registry.last_modified_at == BASE_TIME

    def test_records_inputs_and_metadata(
        self, empty_registry: Registry, add_artifact: AddArtifact
    ) -> None:
        registry = add_artifact(empty_registry, "raw")

        registry = save_and_register(
            "summary",
            "out/summary.txt",
            "results",
            registry,
            name="summary",
            allowed_types=DEFAULT_ARTIFACT_TYPES,
            input_artifacts=["raw"],
            metadata={"workflow": "analysis"},
        )

        assert registry.artifacts["summary"].input_artifacts == ("raw",)
        assert registry.artifacts["summary"].workflow == "analysis"

    def test_invalid_type_writes_nothing(
        self, project: ProvenantProject, empty_registry: Registry
    ) -> None:
        with pytest.raises(InvalidTypeError):
            save_and_register(
                b"x",
                "out/x.bin",
                "bogus",
                empty_registry,
                name="x",
                allowed_types=DEFAULT_ARTIFACT_TYPES,
            )

        assert not (project.root / "out" / "x.bin").exists()

    def test_duplicate_name_keeps_existing_file(
        self, project: ProvenantProject, empty_registry: Registry, add_artifact: AddArtifact
    ) -> None:
        registry = add_artifact(empty_registry, "raw", content="original")

        with pytest.raises(DuplicateNameError):
            save_and_register(
                "overwrite",
                "data/raw.txt",
                "raw_data",
                registry,
                name="raw",
                allowed_types=DEFAULT_ARTIFACT_TYPES,
            )

        assert (project.root / "data" / "raw.txt").read_text() == "original"

    def test_unknown_input_writes_nothing(
        self, project: ProvenantProject, empty_registry: Registry
    ) -> None:
        with pytest.raises(ArtifactNotFoundError):
            save_and_register(
                b"x",
                "out/x.bin",
                "results",
                empty_registry,
                name="x",
                allowed_types=DEFAULT_ARTIFACT_TYPES,
                input_artifacts=["ghost"],
            )

        assert not (project.root / "out").exists()

    def test_failed_write_leaves_no_partial_file(
        self, project: ProvenantProject, empty_registry: Registry, mocker: "MockerFixture"
    ) -> None:
        mocker.patch.object(Path, "write_bytes", side_effect=OSError("disk full"))

        with pytest.raises(OSError, match="disk full"):
            save_and_register(
                b"x",
                "out/x.bin",
                "results",
                empty_registry,
                name="x",
                allowed_types=DEFAULT_ARTIFACT_TYPES,
            )

        assert list((project.root / "out").iterdir()) == []
