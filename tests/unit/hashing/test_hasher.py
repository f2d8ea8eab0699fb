"""Tests for content hashing."""

import hashlib
import io
from pathlib import Path

import polars as pl
import pytest
from pyfakefs.fake_filesystem import FakeFilesystem

from provenant.hashing import CHUNK_SIZE, hash_bytes, hash_file, hash_stream, hash_tabular

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class TestHashFile:
    def test_matches_hashlib(self, fs: FakeFilesystem) -> None:
        fs.create_file("/data/a.csv", contents="id,value\n1,2\n")

        assert hash_file("/data/a.csv") == hashlib.sha256(b"id,value\n1,2\n").hexdigest()

    def test_empty_file(self, fs: FakeFilesystem) -> None:
        fs.create_file("/data/empty.bin", contents="")

        assert hash_file(Path("/data/empty.bin")) == EMPTY_SHA256

    def test_stable_across_calls(self, fs: FakeFilesystem) -> None:
        fs.create_file("/data/a.bin", contents="same bytes")

        assert hash_file("/data/a.bin") == hash_file("/data/a.bin")

    def test_changes_with_content(self, fs: FakeFilesystem) -> None:
        fs.create_file("/data/a.bin", contents="one")
        before = hash_file("/data/a.bin")
        Path("/data/a.bin").write_text("two")

        assert hash_file("/data/a.bin") != before

    def test_file_larger_than_chunk(self, tmp_path: Path) -> None:
        content = b"x" * (CHUNK_SIZE * 3 + 17)
        path = tmp_path / "big.bin"
        path.write_bytes(content)

        assert hash_file(path) == hashlib.sha256(content).hexdigest()

    def test_missing_file_raises(self, fs: FakeFilesystem) -> None:
        with pytest.raises(FileNotFoundError):
            hash_file("/data/missing.bin")

    def test_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):  # noqa: PT011
            hash_file(tmp_path)


class TestHashStreamAndBytes:
    def test_stream_reads_to_end(self) -> None:
        assert hash_stream(io.BytesIO(b"abc")) == hashlib.sha256(b"abc").hexdigest()

    def test_bytes(self) -> None:
        assert hash_bytes(b"") == EMPTY_SHA256

    def test_stream_and_bytes_agree(self) -> None:
        data = bytes(range(256)) * 1000

        assert hash_stream(io.BytesIO(data)) == hash_bytes(data)


class TestHashTabular:
    def test_row_order_independent(self) -> None:
        a = [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}]
        b = [{"id": 2, "v": "b"}, {"id": 1, "v": "a"}]

        assert hash_tabular(a, ["id"]) == hash_tabular(b, ["id"])

    def test_column_order_independent(self) -> None:
        a = pl.DataFrame({"id": [1, 2], "v": ["a", "b"]})
        b = pl.DataFrame({"v": ["a", "b"], "id": [1, 2]})

        assert hash_tabular(a) == hash_tabular(b)

    def test_row_order_independent_without_sort_keys(self) -> None:
        a = pl.DataFrame({"id": [1, 2, 3], "v": ["a", "b", "c"]})

        assert hash_tabular(a) == hash_tabular(a.reverse())

    def test_accepts_mapping_of_columns(self) -> None:
        columns = {"id": [1, 2], "v": ["a", "b"]}
        rows = [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}]

        assert hash_tabular(columns) == hash_tabular(rows)

    def test_dataframe_matches_rows(self) -> None:
        frame = pl.DataFrame({"id": [1, 2], "v": ["a", "b"]})
        rows = [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}]

        assert hash_tabular(frame) == hash_tabular(rows)

    def test_value_change_changes_hash(self) -> None:
        a = [{"id": 1, "v": "a"}]
        b = [{"id": 1, "v": "b"}]

        assert hash_tabular(a) != hash_tabular(b)

    def test_column_name_change_changes_hash(self) -> None:
        assert hash_tabular({"a": [1]}) != hash_tabular({"b": [1]})

    def test_duplicate_rows_count(self) -> None:
        once = [{"id": 1}]
        twice = [{"id": 1}, {"id": 1}]

        assert hash_tabular(once) != hash_tabular(twice)

    def test_unknown_sort_key_raises(self) -> None:
        with pytest.raises(ValueError, match="missing_col"):
            hash_tabular([{"id": 1}], ["missing_col"])

    def test_empty_input(self) -> None:
        assert hash_tabular([]) == hash_tabular(pl.DataFrame())

    def test_returns_hex_digest(self) -> None:
        digest = hash_tabular([{"id": 1}])

        assert len(digest) == 64
        assert int(digest, 16) >= 0
