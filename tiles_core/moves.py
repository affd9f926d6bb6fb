from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .board import Board, Cell, Coord, Direction, Tile


@dataclass(frozen=True)
class Merge:
    """A numeric merge produced by a move: where it landed and the value it reached."""
    row: int
    col: int
    value: int
    tile_id: int

    @property
    def position(self) -> Coord:
        return (self.row, self.col)


@dataclass(frozen=True)
class MoveResult:
    board: Board
    score_delta: int
    moved: bool
    merges: Tuple[Merge, ...] = ()
    blockers_cleared: int = 0


def can_merge(a: Tile, b: Tile) -> bool:
    """Blockers pair only with blockers; numeric tiles only with an equal value."""
    if a.is_blocker or b.is_blocker:
        return a.is_blocker and b.is_blocker
    return a.value == b.value


def _collapse_line(board: Board, line: Sequence[Coord]) -> Tuple[Dict[Coord, Cell], int, List[Merge], int, bool]:
    """
    Slides and merges one line. `line` is ordered from the edge the tiles travel towards,
    so the scan runs in the direction of travel and a tile produced by a merge is never
    looked at again in this pass.
    """
    packed: List[Tile] = [t for t in (board.at(r, c) for r, c in line) if t is not None]
    out: List[Tile] = []
    merges: List[Merge] = []
    score = 0
    cleared = 0
    moved = False

    i = 0
    while i < len(packed):
        current = packed[i]
        following: Optional[Tile] = packed[i + 1] if i + 1 < len(packed) else None
        if following is not None and can_merge(current, following):
            i += 2
            moved = True
            if current.is_blocker:
                # Blocker pairs vanish and score nothing.
                cleared += 2
                continue
            r, c = line[len(out)]
            merged = current.doubled().moved_to(r, c)
            out.append(merged)
            score += merged.value
            merges.append(Merge(row=r, col=c, value=merged.value, tile_id=merged.id))
            continue
        r, c = line[len(out)]
        if (r, c) != current.position:
            moved = True
        out.append(current.moved_to(r, c))
        i += 1

    cells: Dict[Coord, Cell] = {coord: None for coord in line}
    for tile in out:
        cells[tile.position] = tile
    return cells, score, merges, cleared, moved


def move(board: Board, direction: Direction) -> MoveResult:
    """Slides every line of the board towards `direction`, merging equal neighbours once."""
    updates: Dict[Coord, Cell] = {}
    score = 0
    merges: List[Merge] = []
    cleared = 0
    moved = False
    for line in board.line_coords(direction):
        cells, line_score, line_merges, line_cleared, line_moved = _collapse_line(board, line)
        updates.update(cells)
        score += line_score
        merges.extend(line_merges)
        cleared += line_cleared
        moved = moved or line_moved

    if not moved:
        return MoveResult(board=board, score_delta=0, moved=False)
    return MoveResult(
        board=board.with_cells(updates),
        score_delta=score,
        moved=True,
        merges=tuple(merges),
        blockers_cleared=cleared,
    )


def has_moves(board: Board) -> bool:
    """True while there is an empty cell or any orthogonally adjacent mergeable pair."""
    if not board.is_full():
        return True
    n = board.size
    for r in range(n):
        for c in range(n):
            here = board.at(r, c)
            if here is None:
                return True
            right = board.at(r, c + 1)
            below = board.at(r + 1, c)
            if right is not None and can_merge(here, right):
                return True
            if below is not None and can_merge(here, below):
                return True
    return False


def legal_directions(board: Board) -> List[Direction]:
    """Directions that would change the board."""
    return [d for d in Direction if move(board, d).moved]
