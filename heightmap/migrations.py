"""Versioned persisted height map documents.

Current layout (v1)::

    {"v": 1, "data": {"row|col": [{"terrainTypeId", "height", "elevation"}]}}

Documents without a ``v`` tag are v0: a flat list of
``{terrainTypeId, height, elevation, position: [row, col]}``, one entry per
cell. ``migrate_data`` runs the steps in ``_MIGRATIONS`` in order, each one
turning version ``i`` into ``i + 1``.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable

from .errors import MigrationError

logger = logging.getLogger(__name__)

DATA_VERSION = 1


def _v0_to_v1(data: object) -> dict:
    # Keys are built inline rather than with encode_cell_key so this step
    # keeps producing v1 keys if the current key format ever changes.
    if isinstance(data, dict):
        data = data.get("data", [])
    if not isinstance(data, list):
        raise TypeError(f"expected a list of cells, got {type(data).__name__}")
    cells: dict[str, list[dict]] = {}
    for d in data:
        row, col = d["position"]
        cells[f"{row}|{col}"] = [
            {
                "terrainTypeId": d["terrainTypeId"],
                "height": d["height"],
                "elevation": d.get("elevation") or 0,
            }
        ]
    return {"v": 1, "data": cells}


_MIGRATIONS: list[Callable[[object], dict]] = [_v0_to_v1]


def detect_version(raw: object) -> int:
    if not (isinstance(raw, dict) and "v" in raw):
        return 0
    tag = raw["v"]
    try:
        return int(tag)
    except (TypeError, ValueError) as ex:
        raise MigrationError(
            None, DATA_VERSION, f"malformed version tag {tag!r}"
        ) from ex


def migrate_data(raw: object, target_version: int = DATA_VERSION) -> dict:
    """Bring ``raw`` up to ``target_version``.

    ``None`` or an empty document yields an empty current document. The
    input is never modified. Raises MigrationError if a step fails, the
    version tag is malformed, the target is beyond the known versions, or
    the data is already newer than the target (there are no downgrades).
    """
    if target_version > len(_MIGRATIONS) or target_version < 0:
        raise MigrationError(
            detect_version(raw),
            target_version,
            f"unknown target version (latest is v{DATA_VERSION})",
        )
    if not raw:
        return {"v": DATA_VERSION, "data": {}}

    data = copy.deepcopy(raw)
    version = detect_version(data)
    if version > len(_MIGRATIONS) or version < 0:
        raise MigrationError(
            version, target_version, f"unknown data version v{version}"
        )
    if version > target_version:
        raise MigrationError(
            version, target_version, "data is newer than the target version"
        )
    while version < target_version:
        try:
            data = _MIGRATIONS[version](data)
        except (KeyError, TypeError, ValueError) as ex:
            logger.error(
                "Error occurred migrating data (v%d -> v%d): %s",
                version,
                version + 1,
                ex,
            )
            raise MigrationError(version, version + 1, str(ex)) from ex
        version += 1
    return data
