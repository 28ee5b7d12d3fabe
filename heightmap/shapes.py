"""Merging painted cells into polygonal height map shapes.

A shape is a maximal set of edge-connected cells that all carry one identical
terrain entry (same type, height and elevation). A cell with N entries in its
stack takes part in up to N shapes, one per entry.

The boundary of a shape is found without a polygon-union library:

  1. Every member cell contributes its polygon edges, directed in the grid's
     common winding. An edge shared by two member cells shows up once in each
     direction, so it is interior and both copies cancel out.
  2. The remaining directed edges are chained into closed loops. Where two
     loops touch at a single vertex (only possible on square grids), the
     tracer takes the sharpest turn away from the shape interior, which
     keeps the outside and each hole in separate simple loops.
  3. Loops wound like the cells (positive area) are outer boundaries; loops
     wound the other way are holes. Straight-through vertices are dropped.

``rebuild_shapes`` is the incremental entry point used after edits: shapes
that touch the edited cells (or their neighbours) are rebuilt from the
current store, every other shape object is carried over unchanged. Output
order and every loop's starting vertex are canonical, so equal store content
always produces equal shapes whatever the edit history.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from functools import cached_property

import numpy as np

from .cell_store import CellStore
from .geometry import Polygon, edge_array, remove_collinear, signed_area
from .grid import Grid
from .types import TerrainEntry

logger = logging.getLogger(__name__)

Cell = tuple[int, int]
Point = tuple[float, float]


@dataclass(frozen=True)
class HeightMapShape:
    entry: TerrainEntry
    polygon: Polygon
    holes: tuple[Polygon, ...]
    cells: frozenset[Cell]

    @property
    def terrain_type_id(self) -> str:
        return self.entry.terrain_type_id

    @property
    def height(self) -> float:
        return self.entry.height

    @property
    def elevation(self) -> float:
        return self.entry.elevation

    @property
    def top(self) -> float:
        return self.entry.top

    @property
    def bottom(self) -> float:
        return self.entry.bottom

    def contains_cell(self, row: int, col: int) -> bool:
        return (row, col) in self.cells

    @cached_property
    def edges(self) -> np.ndarray:
        """(E, 4) edge array over the outer polygon and all holes."""
        return edge_array(
            [self.polygon.vertices, *(h.vertices for h in self.holes)]
        )

    def to_dict(self) -> dict:
        return {
            "terrainTypeId": self.terrain_type_id,
            "height": self.height,
            "elevation": self.elevation,
            "polygon": [list(v) for v in self.polygon.vertices],
            "holes": [[list(v) for v in h.vertices] for h in self.holes],
            "cells": [list(c) for c in sorted(self.cells)],
        }


def _find_component(
    store: CellStore, grid: Grid, entry: TerrainEntry, start: Cell
) -> set[Cell]:
    """Flood fill from ``start`` over neighbours carrying ``entry``."""
    component = {start}
    pending = [start]
    while pending:
        row, col = pending.pop()
        for neighbour in grid.neighbours(row, col):
            if neighbour in component:
                continue
            if store.has_entry(*neighbour, entry):
                component.add(neighbour)
                pending.append(neighbour)
    return component


def _turn_angle(
    prev: Point, vertex: Point, nxt: Point
) -> float:
    """Signed turn at ``vertex``; negative turns away from the interior."""
    d1x, d1y = vertex[0] - prev[0], vertex[1] - prev[1]
    d2x, d2y = nxt[0] - vertex[0], nxt[1] - vertex[1]
    return math.atan2(d1x * d2y - d1y * d2x, d1x * d2x + d1y * d2y)


def _boundary_loops(grid: Grid, cells: Iterable[Cell]) -> list[list[Point]]:
    # Directed boundary edges; a shared edge appears reversed in the
    # neighbouring cell, so adding its reverse cancels both.
    boundary: set[tuple[Point, Point]] = set()
    for row, col in cells:
        pts = grid.cell_polygon(row, col)
        for i in range(len(pts)):
            p, q = pts[i], pts[(i + 1) % len(pts)]
            if (q, p) in boundary:
                boundary.remove((q, p))
            else:
                boundary.add((p, q))

    outgoing: dict[Point, list[Point]] = {}
    for p, q in boundary:
        outgoing.setdefault(p, []).append(q)

    loops: list[list[Point]] = []
    remaining = set(boundary)
    while remaining:
        start = min(remaining)
        remaining.discard(start)
        outgoing[start[0]].remove(start[1])
        loop = [start[0]]
        prev, vertex = start
        while vertex != start[0]:
            loop.append(vertex)
            candidates = outgoing[vertex]
            if len(candidates) == 1:
                nxt = candidates[0]
            else:
                nxt = min(
                    candidates,
                    key=lambda c, p=prev, v=vertex: _turn_angle(p, v, c),
                )
            candidates.remove(nxt)
            remaining.discard((vertex, nxt))
            prev, vertex = vertex, nxt
        loops.append(loop)
    return loops


def _canonical_loop(loop: list[Point]) -> list[Point]:
    loop = remove_collinear(loop)
    i = loop.index(min(loop))
    return loop[i:] + loop[:i]


def _build_shape(
    grid: Grid, entry: TerrainEntry, cells: set[Cell]
) -> HeightMapShape:
    outers: list[list[Point]] = []
    holes: list[list[Point]] = []
    for loop in _boundary_loops(grid, cells):
        if signed_area(loop) > 0:
            outers.append(_canonical_loop(loop))
        else:
            holes.append(_canonical_loop(loop))

    outers.sort(key=lambda loop: -signed_area(loop))
    if len(outers) > 1:
        logger.warning(
            "Shape for %s traced %d outer boundaries; keeping the largest",
            entry,
            len(outers),
        )
    holes.sort()
    return HeightMapShape(
        entry=entry,
        polygon=Polygon(outers[0]),
        holes=tuple(Polygon(h) for h in holes),
        cells=frozenset(cells),
    )


def _shape_sort_key(shape: HeightMapShape) -> tuple:
    return (
        shape.terrain_type_id,
        shape.elevation,
        shape.height,
        min(shape.cells),
    )


def _build_from_seeds(
    store: CellStore,
    grid: Grid,
    seeds: Iterable[tuple[Cell, TerrainEntry]],
) -> list[HeightMapShape]:
    visited: dict[TerrainEntry, set[Cell]] = {}
    shapes: list[HeightMapShape] = []
    for cell, entry in sorted(
        seeds, key=lambda s: (s[0], s[1].terrain_type_id)
    ):
        seen = visited.setdefault(entry, set())
        if cell in seen or not store.has_entry(*cell, entry):
            continue
        component = _find_component(store, grid, entry, cell)
        seen.update(component)
        shapes.append(_build_shape(grid, entry, component))
    return shapes


def build_shapes(store: CellStore, grid: Grid) -> tuple[HeightMapShape, ...]:
    """Build every shape for the store from scratch."""
    seeds = [
        (cell, entry)
        for cell, entries in store.for_each_non_empty()
        for entry in entries
    ]
    shapes = _build_from_seeds(store, grid, seeds)
    return tuple(sorted(shapes, key=_shape_sort_key))


def rebuild_shapes(
    shapes: Iterable[HeightMapShape],
    store: CellStore,
    grid: Grid,
    dirty_cells: Iterable[Cell],
) -> tuple[HeightMapShape, ...]:
    """Return a new shape set after the cells in ``dirty_cells`` changed.

    ``shapes`` must be the shape set for the store as it was before the
    edit. Shapes that contain a dirty cell or one of its neighbours are
    recomputed; the rest are returned as the same objects.
    """
    dirty = set(dirty_cells)
    affected = set(dirty)
    for row, col in dirty:
        affected.update(grid.neighbours(row, col))

    kept: list[HeightMapShape] = []
    seeds: list[tuple[Cell, TerrainEntry]] = [
        (cell, entry) for cell in dirty for entry in store.get(*cell)
    ]
    for shape in shapes:
        if shape.cells.isdisjoint(affected):
            kept.append(shape)
        else:
            seeds.extend((cell, shape.entry) for cell in shape.cells)

    rebuilt = _build_from_seeds(store, grid, seeds)
    logger.debug(
        "Rebuilt %d shapes for %d dirty cells (%d kept)",
        len(rebuilt),
        len(dirty),
        len(kept),
    )
    return tuple(sorted(kept + rebuilt, key=_shape_sort_key))
