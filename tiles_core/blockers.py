from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .board import Board, Cell, Coord, Tile
from .config import GameConfig
from .moves import Merge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockerOutcome:
    board: Board
    blockers_added: int
    next_tile_id: int


def triggering_merges(merges: Sequence[Merge], threshold: int) -> List[Merge]:
    """Merges whose resulting value reached the blocker threshold."""
    return [m for m in merges if m.value >= threshold]


def convert_merged_tiles(board: Board, merges: Sequence[Merge]) -> Board:
    """Turns each merged tile into a blocker, keeping its id and cell."""
    updates: Dict[Coord, Cell] = {}
    for m in merges:
        tile = board.at(m.row, m.col)
        if tile is None or tile.id != m.tile_id or tile.is_blocker:
            continue
        updates[m.position] = tile.as_blocker()
    if not updates:
        return board
    return board.with_cells(updates)


def place_blockers(board: Board, count: int, rng: random.Random, first_id: int) -> BlockerOutcome:
    """Drops up to `count` blockers into random empty cells."""
    empties = board.empty_cells()
    placed = min(count, len(empties))
    if placed <= 0:
        return BlockerOutcome(board=board, blockers_added=0, next_tile_id=first_id)
    updates: Dict[Coord, Cell] = {}
    next_id = first_id
    for r, c in rng.sample(empties, placed):
        updates[(r, c)] = Tile(id=next_id, value=0, row=r, col=c, is_blocker=True)
        next_id += 1
    return BlockerOutcome(board=board.with_cells(updates), blockers_added=placed, next_tile_id=next_id)


def apply_blocker_rules(
    board: Board,
    merges: Sequence[Merge],
    config: GameConfig,
    shielded: bool,
    rng: random.Random,
    next_tile_id: int,
) -> BlockerOutcome:
    """
    Applies the configured conversion policy to the merges of one move.

    'replace' swaps each triggering merged tile for a blocker in place.
    'spawn' leaves the merged tile alone and adds one blocker per trigger elsewhere.
    An active shield suppresses both.
    """
    triggers = triggering_merges(merges, config.blocker_threshold)
    if not triggers:
        return BlockerOutcome(board=board, blockers_added=0, next_tile_id=next_tile_id)
    if shielded:
        logger.debug('blocker shield suppressed %d conversion(s)', len(triggers))
        return BlockerOutcome(board=board, blockers_added=0, next_tile_id=next_tile_id)
    if config.blocker_policy == 'spawn':
        outcome = place_blockers(board, len(triggers), rng, next_tile_id)
        logger.debug('placed %d blocker(s) for %d trigger(s)', outcome.blockers_added, len(triggers))
        return outcome
    converted = convert_merged_tiles(board, triggers)
    logger.debug('converted %d merged tile(s) into blockers', len(triggers))
    return BlockerOutcome(board=converted, blockers_added=len(triggers), next_tile_id=next_tile_id)
