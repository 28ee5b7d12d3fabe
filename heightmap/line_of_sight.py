"""3-D line of sight against height map shapes.

A ray from ``p1`` to ``p2`` is parametrised by ``t`` in ``[0, 1]``. For each
occluding shape the calculation runs in two stages:

  1. **Footprint.** The ray's 2-D projection is cut at every ``t`` where it
     crosses or touches one of the shape's edges (outer boundary and holes).
     All edges are tested at once with numpy. Between two consecutive cuts
     the ray is either wholly inside or wholly outside the shape, so testing
     the midpoint of each piece with the crossing-number rule (see
     ``geometry.py``) classifies it. Adjacent inside pieces are merged.
  2. **Height.** The ray height ``h(t) = h1 + t * (h2 - h1)`` is linear, so
     the part of ``[0, 1]`` where it lies within the shape's vertical extent
     is a single interval. Each footprint interval is clipped to it.

Finally, wherever the ray hugs one of the shape's edges (an edge within
``SKIM_ANGLE`` of parallel to the ray with both ends within ``SKIM_DISTANCE``
of its line) that stretch is reported as a separate skimmed region, cutting
into any region it overlaps. Whatever survives, minus zero-length leftovers,
is reported as the shape's regions. ``flatten_line_of_sight_regions`` then
merges the regions of all shapes into maximal blocked runs for simple "is
anything in the way" checks.

Shapes whose terrain type is missing from the lookup table or is not solid
never occlude. Terrain types that do not use height only take part when
``include_no_height_terrain`` is set, and are then treated as reaching
infinitely high above their elevation.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from .geometry import EPSILON, points_in_rings
from .shapes import HeightMapShape
from .types import (
    FlatRegion,
    LineOfSightPoint,
    LineOfSightRegion,
    Point3D,
    TerrainType,
)

logger = logging.getLogger(__name__)

LOS_EPSILON = EPSILON

# Edges count as hugged by the ray when within this angle (radians) of
# parallel to it and both their ends are within this distance of its line.
SKIM_ANGLE = 0.05
SKIM_DISTANCE = 4.0

# Regions closer than this in ``t`` count as touching when flattening.
_MERGE_EPSILON = 1e-9

PointLike = Point3D | Mapping | Sequence


@dataclass(frozen=True)
class ShapeIntersection:
    shape: HeightMapShape
    regions: tuple[LineOfSightRegion, ...]

    def to_dict(self) -> dict:
        return {
            "shape": self.shape.to_dict(),
            "regions": [r.to_dict() for r in self.regions],
        }


def _point_at(p1: Point3D, p2: Point3D, t: float) -> LineOfSightPoint:
    return LineOfSightPoint(
        x=p1.x + t * (p2.x - p1.x),
        y=p1.y + t * (p2.y - p1.y),
        h=p1.h + t * (p2.h - p1.h),
        t=t,
    )


def _height_interval(
    bottom: float, top: float, h1: float, h2: float
) -> tuple[float, float] | None:
    """Range of ``t`` (unclipped) where the ray height is within
    ``[bottom, top]``, or None when it never is."""
    dh = h2 - h1
    if dh == 0:
        if bottom - LOS_EPSILON <= h1 <= top + LOS_EPSILON:
            return 0.0, 1.0
        return None
    ta = (bottom - h1) / dh
    tb = (top - h1) / dh
    return min(ta, tb), max(ta, tb)


def _critical_ts(
    edges: np.ndarray, p1: Point3D, dx: float, dy: float
) -> np.ndarray:
    """Sorted ``t`` values in [0, 1] where the 2-D ray meets an edge."""
    length = math.hypot(dx, dy)
    ax = edges[:, 0] - p1.x
    ay = edges[:, 1] - p1.y
    bx = edges[:, 2] - p1.x
    by = edges[:, 3] - p1.y
    ex = bx - ax
    ey = by - ay
    edge_len = np.hypot(ex, ey)

    denom = dx * ey - dy * ex
    crossing = np.abs(denom) > LOS_EPSILON * length * edge_len
    safe = np.where(crossing, denom, 1.0)
    t = (ax * ey - ay * ex) / safe
    u = (ax * dy - ay * dx) / safe
    tol_u = LOS_EPSILON / np.maximum(edge_len, LOS_EPSILON)
    hits = crossing & (u >= -tol_u) & (u <= 1.0 + tol_u)

    # Edges lying on the ray's line contribute both endpoints.
    dist_a = np.abs(ax * dy - ay * dx) / length
    dist_b = np.abs(bx * dy - by * dx) / length
    collinear = ~crossing & (dist_a <= LOS_EPSILON) & (dist_b <= LOS_EPSILON)
    len_sq = length * length
    ta = (ax * dx + ay * dy) / len_sq
    tb = (bx * dx + by * dy) / len_sq

    ts = np.concatenate(
        ([0.0, 1.0], t[hits], ta[collinear], tb[collinear])
    )
    ts = np.clip(ts, 0.0, 1.0)
    ts.sort()

    t_eps = LOS_EPSILON / length
    keep = np.empty(len(ts), dtype=bool)
    keep[0] = True
    keep[1:] = np.diff(ts) > t_eps
    ts = ts[keep]
    if len(ts) > 1:
        # A cut just short of 1 may have absorbed the end of the ray.
        ts[-1] = 1.0
    return ts


def _footprint_intervals(
    shape: HeightMapShape, p1: Point3D, p2: Point3D
) -> list[tuple[float, float]]:
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    edges = shape.edges

    if dx == 0 and dy == 0:
        inside = points_in_rings(np.array([p1.x]), np.array([p1.y]), edges)
        return [(0.0, 1.0)] if inside[0] else []

    # Bounding box early-out.
    poly = shape.polygon
    if (
        max(p1.x, p2.x) < poly.min_x - LOS_EPSILON
        or min(p1.x, p2.x) > poly.max_x + LOS_EPSILON
        or max(p1.y, p2.y) < poly.min_y - LOS_EPSILON
        or min(p1.y, p2.y) > poly.max_y + LOS_EPSILON
    ):
        return []

    ts = _critical_ts(edges, p1, dx, dy)
    if len(ts) < 2:
        return []
    mids = (ts[:-1] + ts[1:]) / 2.0
    inside = points_in_rings(p1.x + mids * dx, p1.y + mids * dy, edges)

    intervals: list[tuple[float, float]] = []
    for i in np.flatnonzero(inside):
        start, end = float(ts[i]), float(ts[i + 1])
        if intervals and intervals[-1][1] == start:
            intervals[-1] = (intervals[-1][0], end)
        else:
            intervals.append((start, end))
    return intervals


def _skim_intervals(
    shape: HeightMapShape, p1: Point3D, p2: Point3D, lo: float, hi: float
) -> list[tuple[float, float]]:
    """Merged ``t`` intervals in ``[lo, hi]`` where the ray hugs an edge."""
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    length = math.hypot(dx, dy)
    if length == 0 or hi - lo <= 0:
        return []
    poly = shape.polygon
    if (
        max(p1.x, p2.x) < poly.min_x - SKIM_DISTANCE
        or min(p1.x, p2.x) > poly.max_x + SKIM_DISTANCE
        or max(p1.y, p2.y) < poly.min_y - SKIM_DISTANCE
        or min(p1.y, p2.y) > poly.max_y + SKIM_DISTANCE
    ):
        return []
    t_eps = LOS_EPSILON / length

    edges = shape.edges
    ax = edges[:, 0] - p1.x
    ay = edges[:, 1] - p1.y
    bx = edges[:, 2] - p1.x
    by = edges[:, 3] - p1.y
    ex = bx - ax
    ey = by - ay

    # Angle between the edge and the ray's line, whichever way each runs.
    angle = np.arctan2(np.abs(dx * ey - dy * ex), np.abs(dx * ex + dy * ey))
    dist_a = np.abs(ax * dy - ay * dx) / length
    dist_b = np.abs(bx * dy - by * dx) / length
    len_sq = length * length
    ta = np.clip((ax * dx + ay * dy) / len_sq, lo, hi)
    tb = np.clip((bx * dx + by * dy) / len_sq, lo, hi)
    hugged = (
        (angle < SKIM_ANGLE)
        & (dist_a <= SKIM_DISTANCE)
        & (dist_b <= SKIM_DISTANCE)
        & (np.abs(ta - tb) > t_eps)
    )

    starts = np.minimum(ta, tb)[hugged]
    ends = np.maximum(ta, tb)[hugged]
    merged: list[tuple[float, float]] = []
    for i in np.argsort(starts, kind="stable"):
        start, end = float(starts[i]), float(ends[i])
        if merged and start <= merged[-1][1] + t_eps:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def _splice_skims(
    intervals: list[tuple[float, float, bool]],
    skims: list[tuple[float, float]],
) -> list[tuple[float, float, bool]]:
    """Overlay skimmed stretches onto ``(start, end, skimmed)`` intervals.

    Parts of an interval covered by a skim are replaced by the skim; the
    rest of the interval keeps its own flag.
    """
    result = list(intervals)
    for skim_start, skim_end in skims:
        kept: list[tuple[float, float, bool]] = []
        for start, end, skimmed in result:
            if end <= skim_start or start >= skim_end:
                kept.append((start, end, skimmed))
                continue
            if start < skim_start:
                kept.append((start, skim_start, skimmed))
            if end > skim_end:
                kept.append((skim_end, end, skimmed))
        kept.append((skim_start, skim_end, True))
        kept.sort()
        result = kept
    return result


def _shape_regions(
    shape: HeightMapShape,
    uses_height: bool,
    p1: Point3D,
    p2: Point3D,
) -> list[LineOfSightRegion]:
    top = shape.top if uses_height else math.inf
    span = _height_interval(shape.bottom, top, p1.h, p2.h)
    if span is None:
        return []
    lo, hi = max(span[0], 0.0), min(span[1], 1.0)

    length = math.hypot(p2.x - p1.x, p2.y - p1.y, p2.h - p1.h)
    t_eps = LOS_EPSILON / length
    on_face = (
        uses_height
        and p1.h == p2.h
        and (
            abs(p1.h - shape.top) <= LOS_EPSILON
            or abs(p1.h - shape.bottom) <= LOS_EPSILON
        )
    )

    intervals = [
        (max(start, lo), min(end, hi), on_face)
        for start, end in _footprint_intervals(shape, p1, p2)
    ]
    intervals = _splice_skims(
        [i for i in intervals if i[1] - i[0] > t_eps],
        _skim_intervals(shape, p1, p2, lo, hi),
    )
    return [
        LineOfSightRegion(
            start=_point_at(p1, p2, start),
            end=_point_at(p1, p2, end),
            skimmed=skimmed,
        )
        for start, end, skimmed in intervals
        if end - start > t_eps
    ]


def calculate_line_of_sight_by_shape(
    shapes: Iterable[HeightMapShape],
    terrain_types: Mapping[str, TerrainType],
    p1: PointLike,
    p2: PointLike,
    include_no_height_terrain: bool = False,
) -> list[ShapeIntersection]:
    """Regions of the ray ``p1 -> p2`` blocked by each shape.

    Only shapes with at least one region are returned, in the order given.
    """
    p1 = Point3D.coerce(p1)
    p2 = Point3D.coerce(p2)
    if p1 == p2:
        return []

    results: list[ShapeIntersection] = []
    for shape in shapes:
        terrain_type = terrain_types.get(shape.terrain_type_id)
        if terrain_type is None or not terrain_type.is_solid:
            continue
        if not terrain_type.uses_height and not include_no_height_terrain:
            continue
        regions = _shape_regions(shape, terrain_type.uses_height, p1, p2)
        if regions:
            results.append(ShapeIntersection(shape, tuple(regions)))

    logger.debug(
        "Line of sight %s -> %s blocked by %d shapes", p1, p2, len(results)
    )
    return results


def flatten_line_of_sight_regions(
    results: Iterable[ShapeIntersection],
) -> list[FlatRegion]:
    """Merge per-shape regions into maximal blocked runs, sorted by ``t``.

    Each run reports the lowest elevation and the overall height of the
    shapes involved and the terrain type of the first shape in the run. A
    run is skimmed only if every region in it is skimmed and no two of them
    overlap: two regions active at once mean the ray ran between two shapes
    and is blocked.
    """
    pieces = sorted(
        (
            (region, intersection.shape)
            for intersection in results
            for region in intersection.regions
        ),
        key=lambda p: (p[0].start.t, p[0].end.t),
    )

    flat: list[FlatRegion] = []
    run_start = run_end = None
    run_type = ""
    run_bottom = run_top = 0.0
    run_skimmed = True
    for region, shape in pieces:
        touching = (
            run_end is not None
            and region.start.t <= run_end.t + _MERGE_EPSILON
        )
        if touching:
            overlapping = region.start.t < run_end.t - _MERGE_EPSILON
            if region.end.t > run_end.t:
                run_end = region.end
            run_bottom = min(run_bottom, shape.bottom)
            run_top = max(run_top, shape.top)
            run_skimmed = run_skimmed and region.skimmed and not overlapping
            continue
        if run_end is not None:
            flat.append(
                FlatRegion(
                    run_start,
                    run_end,
                    run_type,
                    run_bottom,
                    run_top - run_bottom,
                    run_skimmed,
                )
            )
        run_start, run_end = region.start, region.end
        run_type = shape.terrain_type_id
        run_bottom, run_top = shape.bottom, shape.top
        run_skimmed = region.skimmed

    if run_end is not None:
        flat.append(
            FlatRegion(
                run_start,
                run_end,
                run_type,
                run_bottom,
                run_top - run_bottom,
                run_skimmed,
            )
        )
    return flat
