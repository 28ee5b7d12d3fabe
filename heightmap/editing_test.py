"""Tests for per-cell edit rules, flood fill and input validation."""

import pytest

from heightmap.cell_store import CellStore
from heightmap.editing import (
    ADDITIVE_MERGE,
    DESTRUCTIVE_MERGE,
    TOTAL_REPLACE,
    apply_paint_mode,
    erase_terrain_between,
    flood_fill,
    validate_cells,
    validate_entry,
    validate_mode,
)
from heightmap.errors import InvalidCellsError, InvalidTerrainError
from heightmap.grid import Grid
from heightmap.types import GridConfig, TerrainEntry, TerrainType


def _e(type_id, elevation, height):
    return TerrainEntry(type_id, height, elevation)


def _make_grid(rows=None, cols=None):
    return Grid(GridConfig(rows=rows, cols=cols))


TERRAIN_TYPES = {
    "wall": TerrainType("wall"),
    "zone": TerrainType("zone", uses_height=False, is_solid=False),
}


class TestApplyPaintMode:
    def test_total_replace(self):
        """totalReplace discards the whole existing stack."""
        stack = [_e("a", 0, 1), _e("b", 2, 2)]
        assert apply_paint_mode(stack, _e("c", 0, 3), TOTAL_REPLACE) == [
            _e("c", 0, 3)
        ]

    def test_total_replace_is_idempotent(self):
        """Painting the same entry twice changes nothing."""
        once = apply_paint_mode([_e("a", 0, 1)], _e("c", 0, 3), TOTAL_REPLACE)
        twice = apply_paint_mode(once, _e("c", 0, 3), TOTAL_REPLACE)
        assert once == twice

    def test_additive_appends(self):
        """additiveMerge keeps existing entries."""
        stack = [_e("a", 0, 1)]
        assert apply_paint_mode(stack, _e("a", 5, 1), ADDITIVE_MERGE) == [
            _e("a", 0, 1),
            _e("a", 5, 1),
        ]

    def test_additive_skips_identical(self):
        """An exact duplicate is not stacked again."""
        stack = [_e("a", 0, 1)]
        assert apply_paint_mode(stack, _e("a", 0, 1.0), ADDITIVE_MERGE) == [
            _e("a", 0, 1)
        ]

    def test_destructive_removes_overlapping_same_type(self):
        """Only same-type entries overlapping the new one go."""
        stack = [_e("a", 0, 2), _e("b", 0, 10), _e("a", 8, 2)]
        result = apply_paint_mode(stack, _e("a", 1, 3), DESTRUCTIVE_MERGE)
        assert result == [_e("b", 0, 10), _e("a", 8, 2), _e("a", 1, 3)]

    def test_destructive_keeps_touching_same_type(self):
        """Entries that only touch do not overlap."""
        stack = [_e("a", 0, 2)]
        result = apply_paint_mode(stack, _e("a", 2, 3), DESTRUCTIVE_MERGE)
        assert result == [_e("a", 0, 2), _e("a", 2, 3)]

    def test_input_not_modified(self):
        """The stack passed in is never mutated."""
        stack = [_e("a", 0, 2)]
        apply_paint_mode(stack, _e("a", 1, 1), DESTRUCTIVE_MERGE)
        assert stack == [_e("a", 0, 2)]

    def test_unknown_mode(self):
        with pytest.raises(InvalidTerrainError):
            apply_paint_mode([], _e("a", 0, 1), "sideways")


class TestEraseTerrainBetween:
    def test_clip_top(self):
        """Entry reaching into the range from below."""
        stack = [_e("a", 1, 9)]
        assert erase_terrain_between(stack, 5, 10) == [_e("a", 1, 4)]

    def test_clip_bottom(self):
        """Entry reaching into the range from above."""
        stack = [_e("a", 2, 2)]
        assert erase_terrain_between(stack, 1, 3) == [_e("a", 3, 1)]

    def test_remove_contained(self):
        """Entry wholly inside the range."""
        assert erase_terrain_between([_e("a", 5, 10)], 0, 100) == []

    def test_remove_contained_inclusive(self):
        """Entry exactly filling the range."""
        assert erase_terrain_between([_e("a", 5, 3)], 5, 8) == []

    def test_split_containing(self):
        """Entry spanning the range is split in two."""
        stack = [_e("a", 2, 9)]
        assert erase_terrain_between(stack, 4, 6) == [
            _e("a", 2, 2),
            _e("a", 6, 5),
        ]

    def test_outside_range_untouched(self):
        """Entry clear of the range."""
        stack = [_e("a", 10, 5)]
        assert erase_terrain_between(stack, 3, 6) == stack

    def test_excluded_types_untouched(self):
        """Excluded terrain types survive the erase."""
        stack = [_e("a", 0, 10), _e("b", 4, 2)]
        assert erase_terrain_between(stack, 2, 8, ["a", "b"]) == stack

    def test_empty_range_removes_nothing(self):
        """A range with no thickness leaves entries whole."""
        stack = [_e("a", 0, 5), _e("b", 2, 1)]
        assert erase_terrain_between(stack, 2, 2) == stack
        assert erase_terrain_between(stack, 3, 2) == stack

    def test_unbounded_range_empties(self):
        """An infinite range clears the stack."""
        stack = [_e("a", 0, 10), _e("b", -4, 2)]
        result = erase_terrain_between(stack, float("-inf"), float("inf"))
        assert result == []


class TestFloodFill:
    def test_same_signature_region(self):
        """Fill stops at cells with different terrain."""
        store = CellStore()
        for c in range(3):
            store.set(0, c, [_e("a", 0, 1)])
        store.set(0, 3, [_e("b", 0, 1)])
        store.set(0, 4, [_e("a", 0, 1)])
        region = flood_fill(store, _make_grid(), (0, 1))
        assert region == [(0, 0), (0, 1), (0, 2)]

    def test_stack_signature_ignores_order(self):
        """Stacks match regardless of entry order."""
        store = CellStore()
        store.set(0, 0, [_e("a", 0, 1), _e("b", 0, 1)])
        store.set(0, 1, [_e("b", 0, 1), _e("a", 0, 1)])
        store.set(0, 2, [_e("a", 0, 1)])
        region = flood_fill(store, _make_grid(), (0, 0))
        assert region == [(0, 0), (0, 1)]

    def test_empty_region_on_bounded_grid(self):
        """Empty regions are walked up to the grid edge."""
        store = CellStore()
        store.set(0, 1, [_e("a", 0, 1)])
        store.set(1, 0, [_e("a", 0, 1)])
        region = flood_fill(store, _make_grid(rows=3, cols=3), (2, 2))
        assert len(region) == 6
        assert (0, 0) not in region

    def test_empty_region_on_unbounded_grid_rejected(self):
        """An empty seed on an unbounded grid is refused."""
        with pytest.raises(InvalidCellsError):
            flood_fill(CellStore(), _make_grid(), (0, 0))


class TestValidation:
    def test_cells_normalised(self):
        """Cells become unique (row, col) tuples in order."""
        grid = _make_grid()
        assert validate_cells([[1, 2], (1, 2), (3, 4)], grid) == [
            (1, 2),
            (3, 4),
        ]

    @pytest.mark.parametrize(
        "cells",
        [
            [(1,)],
            [(1, 2, 3)],
            [(1.5, 2)],
            [(True, 2)],
            ["1|2"],
            "12",
            5,
        ],
    )
    def test_malformed_cells(self, cells):
        """Anything but integer pairs is rejected."""
        with pytest.raises(InvalidCellsError):
            validate_cells(cells, _make_grid())

    def test_out_of_bounds(self):
        """Cells outside a bounded grid are rejected."""
        with pytest.raises(InvalidCellsError):
            validate_cells([(0, 0), (5, 0)], _make_grid(rows=5, cols=5))

    def test_entry(self):
        entry = validate_entry(TERRAIN_TYPES, "wall", 2, 1)
        assert entry == TerrainEntry("wall", 2, 1)

    def test_unknown_terrain_type(self):
        """Terrain ids must exist in the lookup table."""
        with pytest.raises(InvalidTerrainError):
            validate_entry(TERRAIN_TYPES, "lava", 1, 0)

    def test_height_required_for_height_types(self):
        """Height types need a positive height."""
        with pytest.raises(InvalidTerrainError):
            validate_entry(TERRAIN_TYPES, "wall", 0, 0)

    def test_zero_height_allowed_without_height(self):
        """No-height types may have zero height."""
        assert validate_entry(TERRAIN_TYPES, "zone", 0, 0).height == 0

    @pytest.mark.parametrize(
        "height,elevation",
        [(-1, 0), ("2", 0), (1, None), (float("nan"), 0), (True, 0)],
    )
    def test_bad_numbers(self, height, elevation):
        """Negative, non-numeric and non-finite values."""
        with pytest.raises(InvalidTerrainError):
            validate_entry(TERRAIN_TYPES, "zone", height, elevation)

    def test_mode(self):
        assert validate_mode(ADDITIVE_MERGE) == ADDITIVE_MERGE
        with pytest.raises(InvalidTerrainError):
            validate_mode("replace")
