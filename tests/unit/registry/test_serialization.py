"""Tests for the registry YAML document format."""

from pathlib import Path

import pytest
import yaml

from provenant.registry import Artifact, Registry, dump_registry, parse_registry
from provenant.registry._serialization import registry_to_document, to_plain
from tests.conftest import BASE_TIME, at


@pytest.fixture
def registry(tmp_path: Path) -> Registry:
    raw = Artifact(
        name="raw",
        type="raw_data",
        file_path="data/raw.csv",
        content_hash="a" * 64,
        size_bytes=12,
        created_at=BASE_TIME,
        metadata={"workflow": "ingest", "source": {"url": "https://example.org"}},
    )
    clean = Artifact(
        name="clean",
        type="processed_data",
        file_path="data/clean.parquet",
        content_hash="b" * 64,
        size_bytes=99,
        created_at=at(5),
        input_artifacts=("raw",),
        data_hash="c" * 64,
    )
    return Registry(
        root=tmp_path,
        artifacts={"raw": raw, "clean": clean},
        created_at=BASE_TIME,
        last_modified_at=at(5),
        revision=4,
    )


class TestDump:
    def test_top_level_key_order(self, registry: Registry) -> None:
        document = registry_to_document(registry)

        assert list(document) == [
            "version",
            "revision",
            "created_at",
            "last_modified_at",
            "artifacts",
        ]

    def test_artifact_key_order(self, registry: Registry) -> None:
        entry = registry_to_document(registry)["artifacts"]["clean"]

        assert list(entry) == [
            "type",
            "file_path",
            "content_hash",
            "size_bytes",
            "created_at",
            "input_artifacts",
            "data_hash",
            "metadata",
        ]

    def test_data_hash_omitted_when_absent(self, registry: Registry) -> None:
        entry = registry_to_document(registry)["artifacts"]["raw"]

        assert "data_hash" not in entry

    def test_timestamps_are_iso_strings(self, registry: Registry) -> None:
        document = yaml.safe_load(dump_registry(registry))

        assert document["created_at"] == "2024-05-01T12:00:00+00:00"
        assert document["artifacts"]["clean"]["created_at"] == "2024-05-01T12:05:00+00:00"

    def test_artifacts_keep_registration_order(self, registry: Registry) -> None:
        text = dump_registry(registry)

        assert text.index("raw:") < text.index("clean:")

    def test_dump_is_stable(self, registry: Registry) -> None:
        assert dump_registry(registry) == dump_registry(registry)


class TestParse:
    def test_round_trip(self, registry: Registry, tmp_path: Path) -> None:
        parsed = parse_registry(dump_registry(registry), root=tmp_path)

        assert parsed == registry

    def test_root_is_not_persisted(self, registry: Registry, tmp_path: Path) -> None:
        other_root = tmp_path / "other"

        parsed = parse_registry(dump_registry(registry), root=other_root)

        assert parsed.root == other_root
        assert "root" not in dump_registry(registry)

    def test_unquoted_version_accepted(self, tmp_path: Path) -> None:
        parsed = parse_registry("version: 1.0\nartifacts: {}\n", root=tmp_path)

        assert parsed.version == "1.0"
        assert parsed.revision == 0

    def test_minor_version_accepted(self, tmp_path: Path) -> None:
        parsed = parse_registry("version: '1.3'\n", root=tmp_path)

        assert parsed.artifacts == {}

    def test_unsupported_major_version(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unsupported registry schema version"):
            parse_registry("version: '2.0'\n", root=tmp_path)

    def test_missing_version(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="version"):
            parse_registry("artifacts: {}\n", root=tmp_path)

    @pytest.mark.parametrize("text", ["", "- a\n- b\n", "just text\n"])
    def test_non_mapping_document(self, tmp_path: Path, text: str) -> None:
        with pytest.raises(ValueError, match="mapping"):
            parse_registry(text, root=tmp_path)

    @pytest.mark.parametrize("revision", ["-1", "true", "'3'"])
    def test_invalid_revision(self, tmp_path: Path, revision: str) -> None:
        with pytest.raises(ValueError, match="revision"):
            parse_registry(f"version: '1.0'\nrevision: {revision}\n", root=tmp_path)

    def test_artifact_missing_field(self, tmp_path: Path) -> None:
        text = """\
version: '1.0'
artifacts:
  raw:
    type: raw_data
    file_path: data/raw.csv
    size_bytes: 3
    created_at: '2024-05-01T12:00:00+00:00'
"""
        with pytest.raises(ValueError, match="content_hash"):
            parse_registry(text, root=tmp_path)

    def test_artifact_wrong_field_type(self, tmp_path: Path) -> None:
        text = """\
version: '1.0'
artifacts:
  raw:
    type: raw_data
    file_path: data/raw.csv
    content_hash: abc
    size_bytes: many
    created_at: '2024-05-01T12:00:00+00:00'
"""
        with pytest.raises(ValueError, match="size_bytes"):
            parse_registry(text, root=tmp_path)

    def test_inputs_must_be_names(self, tmp_path: Path) -> None:
        text = """\
version: '1.0'
artifacts:
  raw:
    type: raw_data
    file_path: data/raw.csv
    content_hash: abc
    size_bytes: 3
    created_at: '2024-05-01T12:00:00+00:00'
    input_artifacts: {a: 1}
"""
        with pytest.raises(ValueError, match="input_artifacts"):
            parse_registry(text, root=tmp_path)

    def test_yaml_timestamp_values_accepted(self, tmp_path: Path) -> None:
        text = """\
version: '1.0'
artifacts:
  raw:
    type: raw_data
    file_path: data/raw.csv
    content_hash: abc
    size_bytes: 3
    created_at: 2024-05-01 12:00:00
"""
        parsed = parse_registry(text, root=tmp_path)

        assert parsed.artifacts["raw"].created_at == BASE_TIME


class TestToPlain:
    def test_converts_tuples_and_paths(self) -> None:
        assert to_plain({"a": (1, 2), "p": Path("x/y")}) == {"a": [1, 2], "p": "x/y"}

    def test_non_string_keys(self) -> None:
        assert to_plain({1: "one"}) == {"1": "one"}
