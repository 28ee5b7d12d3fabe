"""Tests for the sparse cell store."""

import pytest

from heightmap.cell_store import CellStore, decode_cell_key, encode_cell_key
from heightmap.types import TerrainEntry


def _entry(type_id="wall", height=1, elevation=0):
    return TerrainEntry(type_id, height, elevation)


class TestCellKeys:
    def test_encode(self):
        """Keys are "row|col", negatives included."""
        assert encode_cell_key(3, -2) == "3|-2"

    def test_decode(self):
        """Decoding gives back an integer (row, col) pair."""
        assert decode_cell_key("3|-2") == (3, -2)

    def test_round_trip(self):
        for cell in [(0, 0), (12, 7), (-5, 40)]:
            assert decode_cell_key(encode_cell_key(*cell)) == cell

    def test_malformed(self):
        """Keys that are not two integers are rejected."""
        with pytest.raises(ValueError):
            decode_cell_key("3,2")
        with pytest.raises(ValueError):
            decode_cell_key("a|b")


class TestCellStore:
    def test_absent_cell_is_empty(self):
        """A cell never written reads as an empty stack."""
        store = CellStore()
        assert store.get(1, 1) == []
        assert (1, 1) not in store
        assert len(store) == 0

    def test_set_and_get(self):
        store = CellStore()
        store.set(1, 2, [_entry(), _entry("water", 2)])
        assert store.get(1, 2) == [_entry(), _entry("water", 2)]
        assert (1, 2) in store
        assert store.has_entry(1, 2, _entry("water", 2))
        assert not store.has_entry(1, 2, _entry("water", 3))

    def test_get_returns_copy(self):
        """Mutating a returned stack leaves the store alone."""
        store = CellStore()
        store.set(0, 0, [_entry()])
        store.get(0, 0).append(_entry("water"))
        assert store.get(0, 0) == [_entry()]

    def test_set_empty_deletes(self):
        """Writing an empty stack removes the cell."""
        store = CellStore()
        store.set(0, 0, [_entry()])
        store.set(0, 0, [])
        assert (0, 0) not in store
        assert len(store) == 0

    def test_delete(self):
        store = CellStore()
        store.set(0, 0, [_entry()])
        assert store.delete(0, 0) is True
        assert store.delete(0, 0) is False

    def test_for_each_non_empty(self):
        """Iteration visits only cells with terrain."""
        store = CellStore()
        store.set(0, 0, [_entry()])
        store.set(4, 5, [_entry("water")])
        store.set(9, 9, [])
        assert dict(store.for_each_non_empty()) == {
            (0, 0): [_entry()],
            (4, 5): [_entry("water")],
        }

    def test_copy_is_independent(self):
        """Edits to a copy do not reach the original."""
        store = CellStore()
        store.set(0, 0, [_entry()])
        other = store.copy()
        other.set(0, 0, [_entry("water")])
        assert store.get(0, 0) == [_entry()]
        assert other != store

    def test_equal_entries_with_int_and_float(self):
        """1 and 1.0 heights compare equal."""
        assert _entry(height=1) == _entry(height=1.0)
        assert hash(_entry(height=1)) == hash(_entry(height=1.0))

    def test_clear(self):
        store = CellStore()
        store.set(0, 0, [_entry()])
        store.clear()
        assert len(store) == 0

    def test_data_round_trip(self):
        """to_data then from_data gives an equal store."""
        store = CellStore()
        store.set(0, 1, [_entry(elevation=2)])
        store.set(-3, 4, [_entry("water", 0.5), _entry()])
        data = store.to_data()
        assert data == {
            "-3|4": [
                {"terrainTypeId": "water", "height": 0.5, "elevation": 0},
                {"terrainTypeId": "wall", "height": 1, "elevation": 0},
            ],
            "0|1": [{"terrainTypeId": "wall", "height": 1, "elevation": 2}],
        }
        assert CellStore.from_data(data) == store
