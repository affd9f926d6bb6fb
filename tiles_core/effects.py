from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .board import Board, Cell, Coord
from .catalog import PowerupType
from .config import DEFAULT_CONFIG, GameConfig
from .results import Diagnostic
from .state import GameState, Snapshot, refresh_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectResult:
    state: GameState
    diagnostic: Optional[Diagnostic] = None

    @property
    def applied(self) -> bool:
        return self.diagnostic is None


@dataclass(frozen=True)
class EffectContext:
    """Everything a resolver may need besides the state itself."""
    config: GameConfig = DEFAULT_CONFIG
    rng: Optional[random.Random] = None
    target: Optional[Coord] = None
    snapshot: Optional[Snapshot] = None


def percent_of(value: int, percent: int) -> int:
    """`value * percent / 100` rounded half up, in integer arithmetic."""
    return (value * percent + 50) // 100


def _rejected(state: GameState, diagnostic: Diagnostic, message: str, *args: object) -> EffectResult:
    logger.warning(message, *args)
    return EffectResult(state=state, diagnostic=diagnostic)


def _clear_cells(state: GameState, cells: Dict[Coord, Cell], percent: int, config: GameConfig) -> GameState:
    bonus = sum(percent_of(t.value, percent) for t in cells.values() if t is not None)
    board = state.board.with_cells({coord: None for coord in cells})
    return refresh_status(state.evolve(board=board, score=state.score + bonus), config.win_value)


def tile_destroyer(state: GameState, row: int, col: int, config: GameConfig = DEFAULT_CONFIG) -> EffectResult:
    """Removes the tile at (row, col) for 10% of its value."""
    if not state.board.in_bounds(row, col):
        return _rejected(state, Diagnostic.INVALID_TARGET, 'destroyer target (%s,%s) is off the board', row, col)
    tile = state.board.at(row, col)
    if tile is None:
        return _rejected(state, Diagnostic.INVALID_TARGET, 'no tile to destroy at (%s,%s)', row, col)
    return EffectResult(_clear_cells(state, {(row, col): tile}, 10, config))


def row_clear(state: GameState, row: int, config: GameConfig = DEFAULT_CONFIG) -> EffectResult:
    """Clears a whole row for 5% of each cleared tile. An empty row clears for nothing."""
    n = state.board.size
    if not 0 <= row < n:
        return _rejected(state, Diagnostic.INVALID_TARGET, 'row %s is off the board', row)
    cells = {(row, c): state.board.at(row, c) for c in range(n)}
    return EffectResult(_clear_cells(state, cells, 5, config))


def column_clear(state: GameState, col: int, config: GameConfig = DEFAULT_CONFIG) -> EffectResult:
    """Clears a whole column for 5% of each cleared tile."""
    n = state.board.size
    if not 0 <= col < n:
        return _rejected(state, Diagnostic.INVALID_TARGET, 'column %s is off the board', col)
    cells = {(r, col): state.board.at(r, col) for r in range(n)}
    return EffectResult(_clear_cells(state, cells, 5, config))


def value_upgrade(state: GameState, config: GameConfig = DEFAULT_CONFIG) -> EffectResult:
    """Doubles every numbered tile; blockers stay as they are."""
    updates: Dict[Coord, Cell] = {}
    bonus = 0
    for tile in state.board.tiles():
        if tile.is_blocker:
            continue
        updates[tile.position] = tile.doubled()
        bonus += percent_of(tile.value, 10)
    board = state.board.with_cells(updates) if updates else state.board
    upgraded = refresh_status(state.evolve(board=board, score=state.score + bonus), config.win_value)
    logger.info('value upgrade: %d tile(s), +%d', len(updates), bonus)
    return EffectResult(upgraded)


def undo_move(state: GameState, snapshot: Optional[Snapshot]) -> EffectResult:
    """
    Rolls the board back to the snapshot taken before the last move.

    Powerup bookkeeping (inventory, one-shot history, pending awards, unlock count) is
    taken from the current state so that spending the undo cannot itself be undone;
    running effects are cancelled.
    """
    if snapshot is None:
        return _rejected(state, Diagnostic.UNDO_UNAVAILABLE, 'nothing to undo')
    if snapshot.board.size != state.board.size:
        return _rejected(state, Diagnostic.UNDO_UNAVAILABLE, 'undo snapshot is for a different board size')
    restored = state.evolve(
        board=snapshot.board,
        score=snapshot.score,
        has_won=snapshot.has_won or state.has_won,
        is_game_over=snapshot.is_game_over or state.time_expired,
        moves_made=snapshot.moves_made,
        next_tile_id=max(snapshot.next_tile_id, state.next_tile_id),
        active_powerups=(),
    )
    logger.info('undo: score %d -> %d', state.score, restored.score)
    return EffectResult(restored)


def shuffle_board(state: GameState, rng: random.Random, config: GameConfig = DEFAULT_CONFIG) -> EffectResult:
    """Scatters the existing tiles over all N*N cells, uniformly at random."""
    tiles = state.board.tiles()
    if not tiles:
        return _rejected(state, Diagnostic.EMPTY_BOARD, 'cannot shuffle an empty board')
    cells = list(state.board.coords())
    chosen = rng.sample(cells, len(tiles))
    updates: Dict[Coord, Cell] = dict(zip(chosen, tiles))
    board = Board.empty(state.board.size).with_cells(updates)
    return EffectResult(refresh_status(state.evolve(board=board), config.win_value))


def _needs_target(ctx: EffectContext, state: GameState, ptype: PowerupType) -> Optional[EffectResult]:
    if ctx.target is None:
        return _rejected(state, Diagnostic.INVALID_TARGET, '%s needs a target cell', ptype.value)
    return None


def _resolve_destroyer(state: GameState, ctx: EffectContext) -> EffectResult:
    missing = _needs_target(ctx, state, PowerupType.TILE_DESTROYER)
    if missing is not None:
        return missing
    row, col = ctx.target  # type: ignore[misc]
    return tile_destroyer(state, row, col, ctx.config)


def _resolve_row_clear(state: GameState, ctx: EffectContext) -> EffectResult:
    missing = _needs_target(ctx, state, PowerupType.ROW_CLEAR)
    if missing is not None:
        return missing
    row, col = ctx.target  # type: ignore[misc]
    if not state.board.in_bounds(row, col):
        return _rejected(state, Diagnostic.INVALID_TARGET, 'row clear target (%s,%s) is off the board', row, col)
    return row_clear(state, row, ctx.config)


def _resolve_column_clear(state: GameState, ctx: EffectContext) -> EffectResult:
    missing = _needs_target(ctx, state, PowerupType.COLUMN_CLEAR)
    if missing is not None:
        return missing
    row, col = ctx.target  # type: ignore[misc]
    if not state.board.in_bounds(row, col):
        return _rejected(state, Diagnostic.INVALID_TARGET, 'column clear target (%s,%s) is off the board', row, col)
    return column_clear(state, col, ctx.config)


def _resolve_value_upgrade(state: GameState, ctx: EffectContext) -> EffectResult:
    return value_upgrade(state, ctx.config)


def _resolve_undo(state: GameState, ctx: EffectContext) -> EffectResult:
    return undo_move(state, ctx.snapshot)


def _resolve_shuffle(state: GameState, ctx: EffectContext) -> EffectResult:
    return shuffle_board(state, ctx.rng or random.Random(), ctx.config)


Resolver = Callable[[GameState, EffectContext], EffectResult]

# One resolver per instant powerup. Continuous types have no resolver; they only tick.
RESOLVERS: Dict[PowerupType, Resolver] = {
    PowerupType.TILE_DESTROYER: _resolve_destroyer,
    PowerupType.ROW_CLEAR: _resolve_row_clear,
    PowerupType.COLUMN_CLEAR: _resolve_column_clear,
    PowerupType.VALUE_UPGRADE: _resolve_value_upgrade,
    PowerupType.UNDO_MOVE: _resolve_undo,
    PowerupType.SHUFFLE_BOARD: _resolve_shuffle,
}
