from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .results import BoardShapeError

Coord = Tuple[int, int]
BLOCKER_MARK = 'B'


class Direction(str, Enum):
    UP = 'up'
    DOWN = 'down'
    LEFT = 'left'
    RIGHT = 'right'

    @classmethod
    def parse(cls, text: str) -> Optional['Direction']:
        """Maps 'left', 'a', 'h', etc. to a Direction; None if unrecognised."""
        key = str(text).strip().lower()
        return _DIRECTION_ALIASES.get(key)


# Full names, WASD and vi keys.
_DIRECTION_ALIASES: Dict[str, Direction] = {
    'up': Direction.UP, 'w': Direction.UP, 'k': Direction.UP,
    'down': Direction.DOWN, 's': Direction.DOWN, 'j': Direction.DOWN,
    'left': Direction.LEFT, 'a': Direction.LEFT, 'h': Direction.LEFT,
    'right': Direction.RIGHT, 'd': Direction.RIGHT, 'l': Direction.RIGHT,
}


@dataclass(frozen=True)
class Tile:
    """A single tile. Blockers carry value 0; their id and position still matter."""
    id: int
    value: int
    row: int
    col: int
    is_blocker: bool = False

    @property
    def position(self) -> Coord:
        return (self.row, self.col)

    def moved_to(self, row: int, col: int) -> 'Tile':
        if (row, col) == (self.row, self.col):
            return self
        return replace(self, row=row, col=col)

    def doubled(self) -> 'Tile':
        return replace(self, value=self.value * 2)

    def as_blocker(self) -> 'Tile':
        return replace(self, value=0, is_blocker=True)

    def label(self) -> str:
        return BLOCKER_MARK if self.is_blocker else str(self.value)


Cell = Optional[Tile]


@dataclass(frozen=True)
class Board:
    """Immutable N x N grid of optional tiles, stored row-major."""
    size: int
    grid: Tuple[Cell, ...]  # length == size * size

    def __post_init__(self) -> None:
        if self.size < 1 or len(self.grid) != self.size * self.size:
            raise BoardShapeError(
                f'grid of length {len(self.grid)} does not fit a {self.size}x{self.size} board'
            )
        for i, tile in enumerate(self.grid):
            if tile is not None and (tile.row, tile.col) != divmod(i, self.size):
                raise BoardShapeError(f'tile {tile.id} records {tile.position} but sits at {divmod(i, self.size)}')

    @classmethod
    def empty(cls, size: int) -> 'Board':
        return cls(size=size, grid=(None,) * (size * size))

    @classmethod
    def from_values(cls, rows: Sequence[Sequence[Union[int, str, None]]], first_id: int = 1) -> 'Board':
        """Builds a board from rows of ints, with 0/None for empty and 'B' for blockers.

        Ids are assigned row-major starting at first_id.
        """
        size = len(rows)
        cells: List[Cell] = []
        next_id = first_id
        for r, row in enumerate(rows):
            if len(row) != size:
                raise BoardShapeError(f'row {r} has {len(row)} cells, expected {size}')
            for c, raw in enumerate(row):
                if raw is None or raw == 0 or raw == '.':
                    cells.append(None)
                    continue
                if raw == BLOCKER_MARK:
                    cells.append(Tile(id=next_id, value=0, row=r, col=c, is_blocker=True))
                else:
                    cells.append(Tile(id=next_id, value=int(raw), row=r, col=c))
                next_id += 1
        return cls(size=size, grid=tuple(cells))

    def index(self, r: int, c: int) -> int:
        """Calculates the 1D index for a given row and column."""
        return r * self.size + c

    def in_bounds(self, r: int, c: int) -> bool:
        return 0 <= r < self.size and 0 <= c < self.size

    def at(self, r: int, c: int) -> Cell:
        """Gets the tile at a cell, or None for an empty or out-of-range cell."""
        if not self.in_bounds(r, c):
            return None
        return self.grid[self.index(r, c)]

    def coords(self) -> Iterable[Coord]:
        """Iterates over all coordinates on the board."""
        for r in range(self.size):
            for c in range(self.size):
                yield (r, c)

    def tiles(self) -> List[Tile]:
        return [t for t in self.grid if t is not None]

    def empty_cells(self) -> List[Coord]:
        return [coord for coord, cell in zip(self.coords(), self.grid) if cell is None]

    def is_full(self) -> bool:
        return all(cell is not None for cell in self.grid)

    def highest_value(self) -> int:
        return max((t.value for t in self.grid if t is not None and not t.is_blocker), default=0)

    def values(self) -> Tuple[Tuple[Union[int, str, None], ...], ...]:
        """Rows of plain values ('B' for blockers, None for empty); handy for comparisons."""
        return tuple(
            tuple(None if t is None else (BLOCKER_MARK if t.is_blocker else t.value) for t in self.row(r))
            for r in range(self.size)
        )

    def row(self, r: int) -> Tuple[Cell, ...]:
        start = r * self.size
        return self.grid[start:start + self.size]

    def line_coords(self, direction: Direction) -> List[List[Coord]]:
        """Coordinates of every line, each ordered from the edge tiles travel towards."""
        n = self.size
        if direction == Direction.LEFT:
            return [[(r, c) for c in range(n)] for r in range(n)]
        if direction == Direction.RIGHT:
            return [[(r, c) for c in reversed(range(n))] for r in range(n)]
        if direction == Direction.UP:
            return [[(r, c) for r in range(n)] for c in range(n)]
        return [[(r, c) for r in reversed(range(n))] for c in range(n)]

    def with_cells(self, updates: Dict[Coord, Cell]) -> 'Board':
        """Returns a copy with the given cells replaced; tiles are re-positioned to their cell."""
        cells = list(self.grid)
        for (r, c), tile in updates.items():
            if not self.in_bounds(r, c):
                raise BoardShapeError(f'cell {(r, c)} is outside a {self.size}x{self.size} board')
            cells[self.index(r, c)] = tile.moved_to(r, c) if tile is not None else None
        return Board(size=self.size, grid=tuple(cells))

    def pretty(self) -> str:
        """Generates a human-readable string representation of the board."""
        width = max([len(t.label()) for t in self.tiles()] + [1])
        lines: List[str] = []
        for r in range(self.size):
            row: List[str] = []
            for cell in self.row(r):
                row.append(('.' if cell is None else cell.label()).rjust(width))
            lines.append(' '.join(row))
        return '\n'.join(lines)
