"""Data types for the height map engine and its JSON documents.

Persisted terrain entries use the camelCase keys of the scene data
(``terrainTypeId``); configuration documents use snake_case, with camelCase
accepted where the scene settings historically used it (``usesHeight``).
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import IntEnum

from .errors import InvalidPointError, UnsupportedGridError


class GridType(IntEnum):
    GRIDLESS = 0
    SQUARE = 1
    HEXODDR = 2  # pointy top, odd rows shifted right
    HEXEVENR = 3  # pointy top, even rows shifted right
    HEXODDQ = 4  # flat top, odd columns shifted down
    HEXEVENQ = 5  # flat top, even columns shifted down


@dataclass
class GridConfig:
    """Grid layout of a scene.

    ``size`` is the grid size in pixels: the cell width and height on square
    grids, the flat-to-flat distance on hex grids. ``rows``/``cols`` bound
    the grid; ``None`` means unbounded in that direction.
    """

    grid_type: int = GridType.SQUARE
    size: float = 100.0
    rows: int | None = None
    cols: int | None = None

    @staticmethod
    def from_dict(d: dict | None) -> GridConfig:
        if not d:
            return GridConfig()
        raw_type = d.get("type", GridType.SQUARE)
        if isinstance(raw_type, str):
            try:
                grid_type = int(GridType[raw_type.upper()])
            except KeyError:
                raise UnsupportedGridError(
                    f"Unknown grid type: {raw_type!r}"
                ) from None
        else:
            grid_type = int(raw_type)
        return GridConfig(
            grid_type=grid_type,
            size=d.get("size", 100.0),
            rows=d.get("rows"),
            cols=d.get("cols"),
        )

    def to_dict(self) -> dict:
        d: dict = {"type": int(self.grid_type), "size": self.size}
        if self.rows is not None:
            d["rows"] = self.rows
        if self.cols is not None:
            d["cols"] = self.cols
        return d


@dataclass(frozen=True)
class TerrainType:
    id: str
    name: str = ""
    uses_height: bool = True
    is_solid: bool = True

    @staticmethod
    def from_dict(d: dict) -> TerrainType:
        return TerrainType(
            id=d["id"],
            name=d.get("name", ""),
            uses_height=d.get("usesHeight", d.get("uses_height", True)),
            is_solid=d.get("isSolid", d.get("is_solid", True)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "usesHeight": self.uses_height,
            "isSolid": self.is_solid,
        }


@dataclass(frozen=True)
class TerrainEntry:
    """One layer of terrain at a cell.

    Entries compare and hash by value, so identical entries in a stack (or
    across cells) are interchangeable.
    """

    terrain_type_id: str
    height: float
    elevation: float = 0.0

    @property
    def bottom(self) -> float:
        return self.elevation

    @property
    def top(self) -> float:
        return self.elevation + self.height

    @staticmethod
    def from_dict(d: dict) -> TerrainEntry:
        return TerrainEntry(
            terrain_type_id=d["terrainTypeId"],
            height=d["height"],
            elevation=d.get("elevation") or 0,
        )

    def to_dict(self) -> dict:
        return {
            "terrainTypeId": self.terrain_type_id,
            "height": self.height,
            "elevation": self.elevation,
        }


@dataclass
class HeightMapConfig:
    grid: GridConfig = field(default_factory=GridConfig)
    terrain_types: list[TerrainType] = field(default_factory=list)
    undo_limit: int | None = None

    @staticmethod
    def from_dict(d: dict) -> HeightMapConfig:
        types_d = d.get("terrain_types", d.get("terrainTypes", []))
        return HeightMapConfig(
            grid=GridConfig.from_dict(d.get("grid")),
            terrain_types=[TerrainType.from_dict(t) for t in types_d],
            undo_limit=d.get("undo_limit"),
        )

    def to_dict(self) -> dict:
        d: dict = {
            "grid": self.grid.to_dict(),
            "terrain_types": [t.to_dict() for t in self.terrain_types],
        }
        if self.undo_limit is not None:
            d["undo_limit"] = self.undo_limit
        return d


@dataclass(frozen=True)
class Point3D:
    """A point in pixel space (``x``, ``y``) with a height ``h``."""

    x: float
    y: float
    h: float

    @staticmethod
    def coerce(value: Point3D | Mapping | Sequence) -> Point3D:
        """Build a Point3D from a Point3D, an ``{x, y, h}`` mapping or an
        ``(x, y, h)`` sequence."""
        if isinstance(value, Point3D):
            coords = (value.x, value.y, value.h)
        elif isinstance(value, Mapping):
            try:
                coords = (value["x"], value["y"], value["h"])
            except KeyError as ex:
                raise InvalidPointError(
                    f"Point is missing the {ex.args[0]!r} coordinate"
                ) from None
        elif isinstance(value, Sequence) and not isinstance(value, str):
            if len(value) != 3:
                raise InvalidPointError(
                    f"Expected (x, y, h), got {len(value)} values"
                )
            coords = tuple(value)
        else:
            raise InvalidPointError(
                f"Expected a 3-D point with x, y and h, got {value!r}"
            )
        for c in coords:
            if (
                isinstance(c, bool)
                or not isinstance(c, (int, float))
                or not math.isfinite(c)
            ):
                raise InvalidPointError(
                    f"Point coordinates must be finite numbers, got {c!r}"
                )
        return Point3D(float(coords[0]), float(coords[1]), float(coords[2]))


@dataclass(frozen=True)
class LineOfSightPoint:
    x: float
    y: float
    h: float
    t: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "h": self.h, "t": self.t}


@dataclass(frozen=True)
class LineOfSightRegion:
    """Closed ``t`` interval along a ray where one shape occludes it."""

    start: LineOfSightPoint
    end: LineOfSightPoint
    skimmed: bool = False

    def to_dict(self) -> dict:
        return {
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "skimmed": self.skimmed,
        }


@dataclass(frozen=True)
class FlatRegion:
    """Maximal blocked run along a ray, merged across all shapes."""

    start: LineOfSightPoint
    end: LineOfSightPoint
    terrain_type_id: str
    elevation: float
    height: float
    skimmed: bool = False

    def to_dict(self) -> dict:
        return {
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "terrainTypeId": self.terrain_type_id,
            "elevation": self.elevation,
            "height": self.height,
            "skimmed": self.skimmed,
        }
