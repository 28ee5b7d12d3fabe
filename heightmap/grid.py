"""Grid geometry: converts (row, col) grid cells to pixel-space polygons.

Supports square grids and the four hex layouts (pointy-top with odd or even
rows shifted, flat-top with odd or even columns shifted). Gridless scenes and
unknown grid types are rejected when the ``Grid`` is constructed.

Hex cells are not generated with a generic per-cell polygon routine: the hex
width and height are derived once from the pixel distance between adjacent
cell origins, and every cell polygon is regenerated from that fixed size.
Vertices are then rounded to ``VERTEX_PRECISION`` decimal places, so a vertex
shared by neighbouring cells has exactly the same coordinates in both cells.
The shape builder relies on this to match shared edges by value, and the
line-of-sight calculator relies on it to avoid slivers between cells.

All polygons are wound the same way: clockwise on screen (y pointing down),
which gives a positive shoelace area in pixel space.
"""

from __future__ import annotations

import math

from .errors import UnsupportedGridError
from .types import GridConfig, GridType

VERTEX_PRECISION = 6

Point = tuple[float, float]
Cell = tuple[int, int]

_SQRT3 = math.sqrt(3.0)

_POINTY_TYPES = (GridType.HEXODDR, GridType.HEXEVENR)
_FLAT_TYPES = (GridType.HEXODDQ, GridType.HEXEVENQ)
_SUPPORTED_TYPES = (GridType.SQUARE, *_POINTY_TYPES, *_FLAT_TYPES)

# Neighbour offsets (drow, dcol). Hex tables are indexed by whether the
# cell's row (pointy) or column (flat) is one of the shifted ones.
_SQUARE_NEIGHBOURS = ((-1, 0), (0, 1), (1, 0), (0, -1))
_POINTY_NEIGHBOURS = {
    False: ((-1, -1), (-1, 0), (0, 1), (1, 0), (1, -1), (0, -1)),
    True: ((-1, 0), (-1, 1), (0, 1), (1, 1), (1, 0), (0, -1)),
}
_FLAT_NEIGHBOURS = {
    False: ((-1, 0), (-1, 1), (0, 1), (1, 0), (0, -1), (-1, -1)),
    True: ((-1, 0), (0, 1), (1, 1), (1, 0), (1, -1), (0, -1)),
}


def _round_point(x: float, y: float) -> Point:
    # Adding 0.0 turns -0.0 into 0.0 so equal vertices also hash equal.
    return (
        round(x, VERTEX_PRECISION) + 0.0,
        round(y, VERTEX_PRECISION) + 0.0,
    )


class Grid:
    def __init__(self, config: GridConfig) -> None:
        if config.grid_type == GridType.GRIDLESS:
            raise UnsupportedGridError("Gridless scenes are not supported.")
        if config.grid_type not in _SUPPORTED_TYPES:
            raise UnsupportedGridError(
                f"Unsupported grid type: {config.grid_type!r}"
            )
        if not config.size or config.size <= 0:
            raise UnsupportedGridError(
                f"Grid size must be positive, got {config.size!r}"
            )

        self.grid_type = GridType(config.grid_type)
        self.size = float(config.size)
        self.rows = config.rows
        self.cols = config.cols

        if self.grid_type in _POINTY_TYPES:
            # Nominal size: flat-to-flat width, point-to-point height.
            self._hex_w = self.size
            self._hex_h = self.size * 2.0 / _SQRT3
        elif self.grid_type in _FLAT_TYPES:
            self._hex_w = self.size * 2.0 / _SQRT3
            self._hex_h = self.size
        else:
            self._hex_w = self._hex_h = self.size

        self.cell_width, self.cell_height = self._aligned_cell_size()

    @property
    def is_hex(self) -> bool:
        return self.grid_type != GridType.SQUARE

    def _is_shifted(self, row: int, col: int) -> bool:
        if self.grid_type == GridType.HEXODDR:
            return row % 2 == 1
        if self.grid_type == GridType.HEXEVENR:
            return row % 2 == 0
        if self.grid_type == GridType.HEXODDQ:
            return col % 2 == 1
        if self.grid_type == GridType.HEXEVENQ:
            return col % 2 == 0
        return False

    def _cell_origin(self, row: int, col: int) -> Point:
        """Top-left pixel of the cell's bounding box (unrounded)."""
        if self.grid_type in _POINTY_TYPES:
            x = col * self._hex_w
            if self._is_shifted(row, col):
                x += self._hex_w / 2.0
            return x, row * self._hex_h * 0.75
        if self.grid_type in _FLAT_TYPES:
            y = row * self._hex_h
            if self._is_shifted(row, col):
                y += self._hex_h / 2.0
            return col * self._hex_w * 0.75, y
        return col * self.size, row * self.size

    def _aligned_cell_size(self) -> tuple[float, float]:
        """Cell width/height measured from the distance between adjacent
        cell origins."""
        x0, y0 = self._cell_origin(0, 0)
        right_x, _ = self._cell_origin(0, 1)
        _, below_y = self._cell_origin(1, 0)
        if self.grid_type in _POINTY_TYPES:
            return right_x - x0, (below_y - y0) / 0.75
        if self.grid_type in _FLAT_TYPES:
            return (right_x - x0) / 0.75, below_y - y0
        return right_x - x0, below_y - y0

    def cell_polygon(self, row: int, col: int) -> list[Point]:
        """Vertices of the cell at (row, col), clockwise on screen."""
        x, y = self._cell_origin(row, col)
        w, h = self.cell_width, self.cell_height
        if self.grid_type in _POINTY_TYPES:
            pts = [
                (x + w / 2, y),
                (x + w, y + h / 4),
                (x + w, y + h * 3 / 4),
                (x + w / 2, y + h),
                (x, y + h * 3 / 4),
                (x, y + h / 4),
            ]
        elif self.grid_type in _FLAT_TYPES:
            pts = [
                (x + w / 4, y),
                (x + w * 3 / 4, y),
                (x + w, y + h / 2),
                (x + w * 3 / 4, y + h),
                (x + w / 4, y + h),
                (x, y + h / 2),
            ]
        else:
            pts = [(x, y), (x + w, y), (x + w, y + h), (x, y + h)]
        return [_round_point(px, py) for px, py in pts]

    def cell_center(self, row: int, col: int) -> Point:
        x, y = self._cell_origin(row, col)
        return _round_point(x + self.cell_width / 2, y + self.cell_height / 2)

    def point_to_cell(self, x: float, y: float) -> Cell:
        """Grid cell containing the pixel point (x, y)."""
        if not self.is_hex:
            return (
                math.floor(y / self.cell_height),
                math.floor(x / self.cell_width),
            )

        # The cell containing a point on a hex grid is the one with the
        # nearest centre; estimate, then check the surrounding cells.
        if self.grid_type in _POINTY_TYPES:
            row = math.floor(y / (self.cell_height * 0.75))
            col = math.floor(x / self.cell_width)
        else:
            col = math.floor(x / (self.cell_width * 0.75))
            row = math.floor(y / self.cell_height)

        def distance_sq(cell: Cell) -> tuple[float, Cell]:
            cx, cy = self.cell_center(*cell)
            return (cx - x) ** 2 + (cy - y) ** 2, cell

        return min(
            (
                (r, c)
                for r in range(row - 1, row + 2)
                for c in range(col - 1, col + 2)
            ),
            key=distance_sq,
        )

    def neighbours(self, row: int, col: int) -> list[Cell]:
        """Cells sharing an edge with (row, col), within the grid bounds."""
        if self.grid_type in _POINTY_TYPES:
            offsets = _POINTY_NEIGHBOURS[self._is_shifted(row, col)]
        elif self.grid_type in _FLAT_TYPES:
            offsets = _FLAT_NEIGHBOURS[self._is_shifted(row, col)]
        else:
            offsets = _SQUARE_NEIGHBOURS
        return [
            (row + dr, col + dc)
            for dr, dc in offsets
            if self.in_bounds(row + dr, col + dc)
        ]

    def in_bounds(self, row: int, col: int) -> bool:
        if self.rows is not None and not 0 <= row < self.rows:
            return False
        if self.cols is not None and not 0 <= col < self.cols:
            return False
        return True

    @property
    def is_bounded(self) -> bool:
        return self.rows is not None and self.cols is not None
