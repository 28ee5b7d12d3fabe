"""Edit session for one scene's height map.

``HeightMap`` owns the cell store, the derived shapes and the undo stack.
Every command follows the same sequence: validate all input, work out the
new stack for each target cell, and commit only the cells whose stack
actually changes. A commit records one ``EditUndo`` with the previous
stacks of those cells, writes the new stacks, and rebuilds the shapes around
them. A command that fails validation or changes nothing leaves the store,
the shapes and the undo stack untouched and returns False.

Queries (``get``, ``get_shapes``, line of sight) only read the current
shape tuple, which is replaced on every commit and never mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from .cell_store import CellStore
from .editing import (
    TOTAL_REPLACE,
    EditUndo,
    apply_paint_mode,
    erase_terrain_between,
    flood_fill,
    validate_cells,
    validate_entry,
    validate_mode,
)
from .errors import InvalidTerrainError
from .grid import Grid
from .line_of_sight import (
    PointLike,
    ShapeIntersection,
    calculate_line_of_sight_by_shape,
    flatten_line_of_sight_regions,
)
from .migrations import DATA_VERSION, migrate_data
from .shapes import HeightMapShape, build_shapes, rebuild_shapes
from .types import (
    FlatRegion,
    GridConfig,
    HeightMapConfig,
    TerrainEntry,
    TerrainType,
)

logger = logging.getLogger(__name__)

Cell = tuple[int, int]


class HeightMap:
    def __init__(
        self,
        grid: Grid | GridConfig,
        terrain_types: Iterable[TerrainType],
        store: CellStore | None = None,
        undo_limit: int | None = None,
    ) -> None:
        self.grid = grid if isinstance(grid, Grid) else Grid(grid)
        self._terrain_types = {t.id: t for t in terrain_types}
        self._store = store.copy() if store is not None else CellStore()
        self._shapes = build_shapes(self._store, self.grid)
        self.undo_limit = undo_limit
        self._undo_stack: list[EditUndo] = []

    @staticmethod
    def from_config(
        config: HeightMapConfig, store: CellStore | None = None
    ) -> HeightMap:
        return HeightMap(
            config.grid,
            config.terrain_types,
            store=store,
            undo_limit=config.undo_limit,
        )

    @staticmethod
    def from_persisted(raw: object, config: HeightMapConfig) -> HeightMap:
        """Load a persisted document of any known version."""
        doc = migrate_data(raw)
        return HeightMap.from_config(
            config, store=CellStore.from_data(doc["data"])
        )

    def to_persisted(self) -> dict:
        return {"v": DATA_VERSION, "data": self._store.to_data()}

    # -- queries ---------------------------------------------------------

    @property
    def terrain_types(self) -> dict[str, TerrainType]:
        return dict(self._terrain_types)

    def get_terrain_type(self, terrain_type_id: str) -> TerrainType | None:
        return self._terrain_types.get(terrain_type_id)

    @property
    def store(self) -> CellStore:
        """A copy of the current cell store."""
        return self._store.copy()

    @property
    def shapes(self) -> tuple[HeightMapShape, ...]:
        return self._shapes

    def get(self, row: int, col: int) -> list[TerrainEntry]:
        return self._store.get(row, col)

    def get_shapes(self, row: int, col: int) -> list[HeightMapShape]:
        """Shapes that include the cell, one per entry in its stack."""
        return [s for s in self._shapes if s.contains_cell(row, col)]

    def calculate_line_of_sight_by_shape(
        self,
        p1: PointLike,
        p2: PointLike,
        include_no_height_terrain: bool = False,
    ) -> list[ShapeIntersection]:
        return calculate_line_of_sight_by_shape(
            self._shapes,
            self._terrain_types,
            p1,
            p2,
            include_no_height_terrain=include_no_height_terrain,
        )

    def calculate_line_of_sight(
        self,
        p1: PointLike,
        p2: PointLike,
        include_no_height_terrain: bool = False,
    ) -> list[FlatRegion]:
        return flatten_line_of_sight_regions(
            self.calculate_line_of_sight_by_shape(
                p1, p2, include_no_height_terrain=include_no_height_terrain
            )
        )

    # -- commands --------------------------------------------------------

    def paint_cells(
        self,
        cells: Iterable,
        terrain_type_id: str,
        height: float = 1,
        elevation: float = 0,
        mode: str = TOTAL_REPLACE,
    ) -> bool:
        """Paint the terrain onto every cell using ``mode``."""
        targets = validate_cells(cells, self.grid)
        entry = validate_entry(
            self._terrain_types, terrain_type_id, height, elevation
        )
        validate_mode(mode)
        return self._commit(
            "paint",
            {
                cell: apply_paint_mode(self._store.get(*cell), entry, mode)
                for cell in targets
            },
        )

    def fill_cells(
        self,
        seed: Cell | list[int],
        terrain_type_id: str,
        height: float = 1,
        elevation: float = 0,
        mode: str = TOTAL_REPLACE,
    ) -> bool:
        """Paint the region of cells that look like ``seed``.

        The region is every cell connected to the seed whose stack holds
        exactly the same entries as the seed's, or that is empty when the
        seed is empty.
        """
        (start,) = validate_cells([seed], self.grid)
        entry = validate_entry(
            self._terrain_types, terrain_type_id, height, elevation
        )
        validate_mode(mode)
        region = flood_fill(self._store, self.grid, start)
        return self._commit(
            "fill",
            {
                cell: apply_paint_mode(self._store.get(*cell), entry, mode)
                for cell in region
            },
        )

    def erase_cells(
        self,
        cells: Iterable,
        bottom: float | None = None,
        top: float | None = None,
        excluding_terrain_type_ids: Iterable[str] = (),
    ) -> bool:
        """Erase terrain from every cell.

        Without ``bottom``/``top`` each cell is emptied (apart from excluded
        terrain types). With a range, only the part of each entry between
        ``bottom`` and ``top`` is removed; either bound may be omitted.
        """
        targets = validate_cells(cells, self.grid)
        excluded = frozenset(excluding_terrain_type_ids)
        low = float("-inf") if bottom is None else bottom
        high = float("inf") if top is None else top
        if low > high:
            raise InvalidTerrainError(
                f"Erase range bottom {bottom} is above top {top}"
            )
        return self._commit(
            "erase",
            {
                cell: erase_terrain_between(
                    self._store.get(*cell), low, high, excluded
                )
                for cell in targets
            },
        )

    def erase_fill_cells(self, seed: Cell | list[int]) -> bool:
        """Erase the connected region of cells that look like ``seed``."""
        (start,) = validate_cells([seed], self.grid)
        if start not in self._store:
            return False
        region = flood_fill(self._store, self.grid, start)
        return self._commit("erase_fill", {cell: [] for cell in region})

    def clear(self) -> bool:
        """Erase every cell. Undoable like any other edit."""
        return self._commit("clear", {cell: [] for cell in self._store})

    # -- undo ------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    def undo(self) -> bool:
        """Revert the most recent edit. Returns False if there is none."""
        if not self._undo_stack:
            return False
        undo = self._undo_stack.pop()
        for (row, col), entries in undo.previous.items():
            self._store.set(row, col, entries)
        self._shapes = rebuild_shapes(
            self._shapes, self._store, self.grid, undo.previous
        )
        logger.debug(
            "Undid %s on %d cells", undo.action, len(undo.previous)
        )
        return True

    def clear_history(self) -> None:
        self._undo_stack.clear()

    def _commit(
        self, action: str, new_stacks: Mapping[Cell, list[TerrainEntry]]
    ) -> bool:
        previous: dict[Cell, list[TerrainEntry]] = {}
        for cell, entries in new_stacks.items():
            current = self._store.get(*cell)
            if current != entries:
                previous[cell] = current
        if not previous:
            return False

        self._undo_stack.append(EditUndo(action, previous))
        if (
            self.undo_limit is not None
            and len(self._undo_stack) > self.undo_limit
        ):
            del self._undo_stack[: len(self._undo_stack) - self.undo_limit]

        for cell in previous:
            self._store.set(*cell, new_stacks[cell])
        self._shapes = rebuild_shapes(
            self._shapes, self._store, self.grid, previous
        )
        logger.debug(
            "%s changed %d cells; %d shapes, undo depth %d",
            action,
            len(previous),
            len(self._shapes),
            len(self._undo_stack),
        )
        return True

