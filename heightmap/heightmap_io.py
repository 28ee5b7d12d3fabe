"""Load and save height map configuration and data from/to JSON files.

Configuration files hold a ``HeightMapConfig`` (grid layout, terrain types,
optional undo limit). Data files hold the persisted height map document;
they are migrated to the current version when loaded, so older files can be
read but are always written back in the current layout.

Used by:
  - ``scripts/line_of_sight.py``: loads a scene for command-line queries.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .height_map import HeightMap
from .migrations import migrate_data
from .types import HeightMapConfig

logger = logging.getLogger(__name__)


def load_config(path: Path) -> HeightMapConfig:
    """Load a JSON configuration file as a typed ``HeightMapConfig``."""
    with open(path) as f:
        data = json.load(f)
    return HeightMapConfig.from_dict(data)


def load_height_map_data(path: Path) -> dict:
    """Load a persisted height map document, migrated to the current version.

    A missing file yields an empty document.
    """
    if not path.exists():
        logger.info("No height map data at %s; starting empty", path)
        return migrate_data(None)
    with open(path) as f:
        raw = json.load(f)
    return migrate_data(raw)


def save_height_map_data(data: dict, path: Path) -> None:
    """Write a height map document to a JSON file.

    Creates parent directories if they don't exist.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def load_height_map(config_path: Path, data_path: Path) -> HeightMap:
    """Build a ``HeightMap`` from a configuration file and a data file."""
    config = load_config(config_path)
    return HeightMap.from_persisted(load_height_map_data(data_path), config)
