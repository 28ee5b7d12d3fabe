"""Per-cell edit rules, flood fill and the undo token.

The functions here are pure: they take a terrain stack (or a store to read
from) and return new values, leaving the caller to commit the result. The
``HeightMap`` session in ``height_map.py`` validates input, applies these
rules to every target cell, and records an ``EditUndo`` for the cells that
actually changed.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from .cell_store import CellStore
from .errors import InvalidCellsError, InvalidTerrainError
from .grid import Grid
from .types import TerrainEntry, TerrainType

Cell = tuple[int, int]

TOTAL_REPLACE = "totalReplace"
ADDITIVE_MERGE = "additiveMerge"
DESTRUCTIVE_MERGE = "destructiveMerge"
PAINT_MODES = (TOTAL_REPLACE, ADDITIVE_MERGE, DESTRUCTIVE_MERGE)


@dataclass
class EditUndo:
    """Pre-edit stacks of every cell an edit changed.

    An empty list means the cell was empty before the edit. Restoring is a
    plain write of each stack back into the store.
    """

    action: str  # "paint", "fill", "erase", "erase_fill", "clear"
    previous: dict[Cell, list[TerrainEntry]] = field(default_factory=dict)


def _overlaps(a: TerrainEntry, b: TerrainEntry) -> bool:
    return a.bottom < b.top and b.bottom < a.top


def apply_paint_mode(
    stack: list[TerrainEntry], entry: TerrainEntry, mode: str
) -> list[TerrainEntry]:
    """Return the stack that results from painting ``entry`` with ``mode``."""
    if mode == TOTAL_REPLACE:
        return [entry]
    if mode == ADDITIVE_MERGE:
        if entry in stack:
            return list(stack)
        return [*stack, entry]
    if mode == DESTRUCTIVE_MERGE:
        kept = [
            e
            for e in stack
            if e.terrain_type_id != entry.terrain_type_id
            or not _overlaps(e, entry)
        ]
        return [*kept, entry]
    raise InvalidTerrainError(f"Unknown paint mode: {mode!r}")


def erase_terrain_between(
    stack: list[TerrainEntry],
    bottom: float,
    top: float,
    excluding_terrain_type_ids: Iterable[str] = (),
) -> list[TerrainEntry]:
    """Remove the part of every entry that lies within ``[bottom, top]``.

    Entries reaching into the range from below are clipped at ``bottom``,
    entries reaching in from above start again at ``top``, entries inside the
    range are removed and entries spanning the whole range are split in two.
    Entries whose type is excluded are left as they are. An empty range
    (``top <= bottom``) removes nothing.
    """
    if top - bottom <= 0:
        return list(stack)
    excluded = set(excluding_terrain_type_ids)
    result: list[TerrainEntry] = []
    for e in stack:
        if (
            e.terrain_type_id in excluded
            or e.top <= bottom
            or e.bottom >= top
        ):
            result.append(e)
            continue
        if e.bottom < bottom:
            result.append(
                TerrainEntry(e.terrain_type_id, bottom - e.bottom, e.bottom)
            )
        if e.top > top:
            result.append(TerrainEntry(e.terrain_type_id, e.top - top, top))
    return result


def cell_signature(store: CellStore, cell: Cell) -> frozenset[TerrainEntry]:
    return frozenset(store.get(*cell))


def flood_fill(store: CellStore, grid: Grid, seed: Cell) -> list[Cell]:
    """Cells connected to ``seed`` that carry exactly the seed's terrain.

    Filling an empty region is only possible on a bounded grid; on an
    unbounded one it would never stop, so it is rejected.
    """
    signature = cell_signature(store, seed)
    if not signature and not grid.is_bounded:
        raise InvalidCellsError(
            "Cannot fill an empty region on a grid without rows/cols bounds"
        )
    visited = {seed}
    pending = [seed]
    while pending:
        row, col = pending.pop()
        for neighbour in grid.neighbours(row, col):
            if neighbour in visited:
                continue
            if cell_signature(store, neighbour) == signature:
                visited.add(neighbour)
                pending.append(neighbour)
    return sorted(visited)


def _as_cell(value: object) -> Cell:
    if isinstance(value, (tuple, list)) and len(value) == 2:
        row, col = value
        if (
            isinstance(row, int)
            and isinstance(col, int)
            and not isinstance(row, bool)
            and not isinstance(col, bool)
        ):
            return row, col
    raise InvalidCellsError(
        f"Cells must be (row, col) integer pairs, got {value!r}"
    )


def validate_cells(cells: Iterable, grid: Grid) -> list[Cell]:
    """Normalise ``cells`` to a de-duplicated list of (row, col) tuples.

    Raises InvalidCellsError for malformed or out-of-bounds cells.
    """
    if isinstance(cells, (str, bytes)):
        raise InvalidCellsError("Cells must be a list of (row, col) pairs")
    try:
        items = list(cells)
    except TypeError:
        raise InvalidCellsError(
            "Cells must be a list of (row, col) pairs"
        ) from None
    result: list[Cell] = []
    seen: set[Cell] = set()
    for item in items:
        cell = _as_cell(item)
        if not grid.in_bounds(*cell):
            raise InvalidCellsError(f"Cell {cell} is outside the grid")
        if cell not in seen:
            seen.add(cell)
            result.append(cell)
    return result


def _is_number(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def validate_entry(
    terrain_types: dict[str, TerrainType],
    terrain_type_id: str,
    height: float,
    elevation: float,
) -> TerrainEntry:
    """Build a TerrainEntry, rejecting unknown types and bad numbers."""
    terrain_type = terrain_types.get(terrain_type_id)
    if terrain_type is None:
        raise InvalidTerrainError(
            f"Unknown terrain type: {terrain_type_id!r}"
        )
    if not _is_number(height) or not _is_number(elevation):
        raise InvalidTerrainError(
            "Height and elevation must be finite numbers, "
            f"got height={height!r} elevation={elevation!r}"
        )
    if height < 0:
        raise InvalidTerrainError(f"Height must not be negative: {height}")
    if terrain_type.uses_height and height <= 0:
        raise InvalidTerrainError(
            f"Terrain type {terrain_type_id!r} needs a positive height"
        )
    return TerrainEntry(terrain_type_id, height, elevation)


def validate_mode(mode: str) -> str:
    if mode not in PAINT_MODES:
        raise InvalidTerrainError(
            f"Unknown paint mode: {mode!r} (expected one of {PAINT_MODES})"
        )
    return mode
