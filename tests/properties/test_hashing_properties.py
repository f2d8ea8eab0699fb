"""Property-based tests for content fingerprints."""

import tempfile
from pathlib import Path

from hypothesis import given, settings, strategies as st

from provenant.hashing import CHUNK_SIZE, hash_bytes, hash_file, hash_tabular

# =============================================================================
# Strategies
# =============================================================================

@st.composite
def tables(draw: st.DrawFn) -> list[dict[str, object]]:
    """Rows with a unique integer ``id`` and a fixed set of value columns."""
    columns = draw(
        st.lists(
            st.sampled_from(["alpha", "beta", "gamma", "delta"]),
            min_size=1,
            max_size=3,
            unique=True,
        )
    )
    ids = draw(st.lists(st.integers(0, 1000), min_size=1, max_size=15, unique=True))
    kind = {column: draw(st.sampled_from(["int", "str"])) for column in columns}
    rows: list[dict[str, object]] = []
    for row_id in ids:
        row: dict[str, object] = {"id": row_id}
        for column in columns:
            if kind[column] == "int":
                row[column] = draw(st.integers(-1000, 1000))
            else:
                row[column] = draw(st.text(max_size=8))
        rows.append(row)
    return rows


# =============================================================================
# File Hash Properties
# =============================================================================


@given(content=st.binary(max_size=CHUNK_SIZE * 3))
@settings(max_examples=30, deadline=None)
def test_file_hash_equals_bytes_hash(content: bytes) -> None:
    """Property: streaming a file in chunks gives the in-memory digest."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "blob.bin"
        path.write_bytes(content)

        assert hash_file(path) == hash_bytes(content)


@given(first=st.binary(max_size=64), second=st.binary(max_size=64))
def test_different_bytes_different_hash(first: bytes, second: bytes) -> None:
    """Property: distinct inputs give distinct digests."""
    if first != second:
        assert hash_bytes(first) != hash_bytes(second)


# =============================================================================
# Tabular Hash Properties
# =============================================================================


@given(rows=tables(), data=st.data())
@settings(max_examples=50, deadline=None)
def test_tabular_hash_ignores_row_order(
    rows: list[dict[str, object]], data: st.DataObject
) -> None:
    """Property: permuting rows does not change the tabular digest."""
    shuffled = data.draw(st.permutations(rows), label="shuffled")

    assert hash_tabular(shuffled, ["id"]) == hash_tabular(rows, ["id"])


@given(rows=tables())
@settings(max_examples=50, deadline=None)
def test_tabular_hash_ignores_column_order(rows: list[dict[str, object]]) -> None:
    """Property: reordering columns within rows does not change the digest."""
    reversed_rows = [dict(reversed(list(row.items()))) for row in rows]

    assert hash_tabular(reversed_rows, ["id"]) == hash_tabular(rows, ["id"])


@given(rows=tables(), data=st.data())
@settings(max_examples=30, deadline=None)
def test_tabular_hash_sees_value_changes(
    rows: list[dict[str, object]], data: st.DataObject
) -> None:
    """Property: changing one row's id changes the digest."""
    index = data.draw(st.integers(0, len(rows) - 1), label="index")
    changed = [dict(row) for row in rows]
    changed[index]["id"] = max(int(str(r["id"])) for r in rows) + 1

    assert hash_tabular(changed, ["id"]) != hash_tabular(rows, ["id"])
