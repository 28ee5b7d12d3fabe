"""Polygon helpers shared by the shape builder and line of sight.

Point containment uses the crossing-number test with a fixed tie-break: a
point lying on an edge is inside when that edge is on the minimum-y or
minimum-x side of the region, outside otherwise. Polygons that share edges
(grid cells, or shapes built from them) therefore partition the plane: every
point belongs to exactly one of them. Rings are combined by parity, so a
point inside a hole ring of a shape is outside the shape.

Comparisons use ``EPSILON``, which is well above the rounding error of grid
vertices (see ``grid.VERTEX_PRECISION``) and well below a pixel.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

import numpy as np

EPSILON = 1e-6

Point = tuple[float, float]


def signed_area(vertices: Sequence[Point]) -> float:
    """Shoelace area. Positive for polygons wound clockwise on screen
    (y pointing down), negative for the opposite winding."""
    n = len(vertices)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += vertices[i][0] * vertices[j][1]
        area -= vertices[j][0] * vertices[i][1]
    return area / 2.0


def edge_array(rings: Iterable[Sequence[Point]]) -> np.ndarray:
    """(E, 4) array of (x1, y1, x2, y2) for every edge of every ring."""
    rows: list[tuple[float, float, float, float]] = []
    for ring in rings:
        n = len(ring)
        for i in range(n):
            j = (i + 1) % n
            rows.append((*ring[i], *ring[j]))
    if not rows:
        return np.empty((0, 4), dtype=np.float64)
    return np.array(rows, dtype=np.float64)


def points_in_rings(
    xs: np.ndarray, ys: np.ndarray, edges: np.ndarray
) -> np.ndarray:
    """Vectorised crossing-number test of P points against E ring edges.

    Returns a (P,) bool array. Uses the minimum-side-inclusive tie-break
    described in the module docstring.
    """
    if len(edges) == 0:
        return np.zeros(len(xs), dtype=bool)
    px = xs[:, None]
    py = ys[:, None]
    x1 = edges[None, :, 0]
    y1 = edges[None, :, 1]
    x2 = edges[None, :, 2]
    y2 = edges[None, :, 3]

    crosses = (y1 > py + EPSILON) != (y2 > py + EPSILON)
    safe_dy = np.where(crosses, y2 - y1, 1.0)
    intersect_x = (x2 - x1) * (py - y1) / safe_dy + x1
    hits = crosses & (px < intersect_x - EPSILON)
    return (np.count_nonzero(hits, axis=1) % 2) == 1


def point_in_rings(
    x: float, y: float, rings: Iterable[Sequence[Point]]
) -> bool:
    """Scalar convenience wrapper around ``points_in_rings``."""
    edges = edge_array(rings)
    return bool(points_in_rings(np.array([x]), np.array([y]), edges)[0])


def remove_collinear(vertices: list[Point]) -> list[Point]:
    """Drop vertices where the boundary carries straight on."""
    result = list(vertices)
    changed = True
    while changed and len(result) > 3:
        changed = False
        n = len(result)
        for i in range(n):
            ax, ay = result[i - 1]
            bx, by = result[i]
            cx, cy = result[(i + 1) % n]
            d1x, d1y = bx - ax, by - ay
            d2x, d2y = cx - bx, cy - by
            cross = d1x * d2y - d1y * d2x
            dot = d1x * d2x + d1y * d2y
            scale = math.hypot(d1x, d1y) * math.hypot(d2x, d2y)
            if dot > 0 and abs(cross) <= EPSILON * scale:
                del result[i]
                changed = True
                break
    return result


class Polygon:
    """Closed polygon with a cached bounding box.

    Vertices are stored as a tuple so polygons compare and hash by value.
    """

    __slots__ = ("vertices", "min_x", "min_y", "max_x", "max_y")

    def __init__(self, vertices: Iterable[Point]) -> None:
        self.vertices: tuple[Point, ...] = tuple(
            (float(x), float(y)) for x, y in vertices
        )
        if self.vertices:
            xs = [v[0] for v in self.vertices]
            ys = [v[1] for v in self.vertices]
            self.min_x, self.max_x = min(xs), max(xs)
            self.min_y, self.max_y = min(ys), max(ys)
        else:
            self.min_x = self.min_y = self.max_x = self.max_y = 0.0

    @property
    def signed_area(self) -> float:
        return signed_area(self.vertices)

    @property
    def area(self) -> float:
        return abs(self.signed_area)

    def edges(self) -> list[tuple[Point, Point]]:
        n = len(self.vertices)
        return [
            (self.vertices[i], self.vertices[(i + 1) % n]) for i in range(n)
        ]

    def contains_point(self, x: float, y: float) -> bool:
        return point_in_rings(x, y, [self.vertices])

    def __len__(self) -> int:
        return len(self.vertices)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Polygon):
            return NotImplemented
        return self.vertices == other.vertices

    def __hash__(self) -> int:
        return hash(self.vertices)

    def __repr__(self) -> str:
        return f"Polygon({list(self.vertices)!r})"
