from __future__ import annotations

import logging
import random

from .board import Board, Tile

logger = logging.getLogger(__name__)


def spawn_tile(board: Board, rng: random.Random, tile_id: int, value: int = 2) -> Board:
    """Places a tile of `value` in a uniformly chosen empty cell. A full board comes back unchanged."""
    empties = board.empty_cells()
    if not empties:
        logger.debug('no empty cell for tile %d', tile_id)
        return board
    r, c = rng.choice(empties)
    logger.debug('spawned %d at (%d,%d) id=%d, %d empty before', value, r, c, tile_id, len(empties))
    return board.with_cells({(r, c): Tile(id=tile_id, value=value, row=r, col=c)})
