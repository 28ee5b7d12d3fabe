"""Sparse per-cell terrain storage.

Maps (row, col) to the ordered stack of terrain entries painted there. An
absent cell has no terrain; an empty stack is never stored. The store does no
validation and knows nothing about shapes: the edit session in
``height_map.py`` is responsible for producing valid stacks.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .types import TerrainEntry

Cell = tuple[int, int]


def encode_cell_key(row: int, col: int) -> str:
    """Persisted key for a cell: ``"row|col"``."""
    return f"{row}|{col}"


def decode_cell_key(key: str) -> Cell:
    """Inverse of ``encode_cell_key``. Raises ValueError on malformed keys."""
    row, sep, col = key.partition("|")
    if not sep:
        raise ValueError(f"Malformed cell key: {key!r}")
    return int(row), int(col)


class CellStore:
    def __init__(
        self, cells: Iterable[tuple[Cell, list[TerrainEntry]]] = ()
    ) -> None:
        self._cells: dict[Cell, list[TerrainEntry]] = {}
        for (row, col), entries in cells:
            self.set(row, col, entries)

    def get(self, row: int, col: int) -> list[TerrainEntry]:
        """Terrain stack at the cell (a copy), or an empty list."""
        return list(self._cells.get((row, col), ()))

    def has_entry(self, row: int, col: int, entry: TerrainEntry) -> bool:
        return entry in self._cells.get((row, col), ())

    def set(self, row: int, col: int, entries: Iterable[TerrainEntry]) -> None:
        entries = list(entries)
        if entries:
            self._cells[(row, col)] = entries
        else:
            self._cells.pop((row, col), None)

    def delete(self, row: int, col: int) -> bool:
        """Remove the cell's stack. Returns True if there was one."""
        return self._cells.pop((row, col), None) is not None

    def clear(self) -> None:
        self._cells.clear()

    def for_each_non_empty(self) -> Iterator[tuple[Cell, list[TerrainEntry]]]:
        """Yield ((row, col), entries) for every painted cell."""
        for cell, entries in self._cells.items():
            yield cell, list(entries)

    def cells(self) -> list[Cell]:
        return list(self._cells)

    def copy(self) -> CellStore:
        return CellStore(self.for_each_non_empty())

    def __contains__(self, cell: object) -> bool:
        return cell in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(list(self._cells))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellStore):
            return NotImplemented
        return self._cells == other._cells

    def to_data(self) -> dict[str, list[dict]]:
        """Current-schema ``data`` mapping for the persisted document."""
        return {
            encode_cell_key(row, col): [e.to_dict() for e in entries]
            for (row, col), entries in sorted(self._cells.items())
        }

    @staticmethod
    def from_data(data: dict[str, list[dict]]) -> CellStore:
        store = CellStore()
        for key, entries in data.items():
            row, col = decode_cell_key(key)
            store.set(row, col, [TerrainEntry.from_dict(e) for e in entries])
        return store
