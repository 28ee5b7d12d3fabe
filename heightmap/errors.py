"""Exceptions raised by the height map engine.

Input validation errors subclass ``ValueError`` as well as ``HeightMapError``
so callers that only care about "bad argument" can catch either. Geometry
degeneracies (zero-length rays, coincident vertices) are never raised; they
are handled as ordinary cases by the line-of-sight calculator.
"""

from __future__ import annotations


class HeightMapError(Exception):
    """Base error for height map operations."""


class InvalidCellsError(HeightMapError, ValueError):
    """Cell list is malformed or refers to cells outside the grid."""


class InvalidTerrainError(HeightMapError, ValueError):
    """Terrain type, height, elevation or paint mode is invalid."""


class InvalidPointError(HeightMapError, ValueError):
    """A line of sight query point is not a valid 3-D point."""


class UnsupportedGridError(HeightMapError):
    """Grid type is gridless or not one of the supported grid types."""


class MigrationError(HeightMapError):
    """A persisted data migration step failed.

    Attributes:
        from_version: Version the failing step migrates from, or None when
            the version tag could not be read.
        to_version: Version the failing step migrates to.
    """

    def __init__(
        self, from_version: int | None, to_version: int, reason: str
    ):
        self.from_version = from_version
        self.to_version = to_version
        source = "?" if from_version is None else from_version
        super().__init__(
            f"Error occurred migrating data "
            f"(v{source} -> v{to_version}): {reason}"
        )
