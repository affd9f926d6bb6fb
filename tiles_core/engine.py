from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Optional, Tuple, Union

from .blockers import apply_blocker_rules
from .board import Board, Coord, Direction
from .catalog import PowerupType
from .config import DEFAULT_CONFIG, GameConfig
from .moves import move
from .powerups import (
    ActivationResult,
    AwardOutcome,
    activate,
    add_powerup,
    check_award,
    discard_powerup,
    grant_awards,
    process_effects,
    replace_powerup,
)
from .results import AddPowerupResult, Diagnostic
from .spawn import spawn_tile
from .state import GameMode, GameState, GameStatus, Snapshot, refresh_status

logger = logging.getLogger(__name__)

DirectionLike = Union[Direction, str]
PowerupLike = Union[PowerupType, str]


@dataclass(frozen=True)
class MoveOutcome:
    state: GameState
    moved: bool
    score_delta: int = 0
    snapshot: Optional[Snapshot] = None  # pre-move state, for the caller's undo history
    awards: Tuple[AwardOutcome, ...] = ()
    blockers_added: int = 0
    spawned: bool = False
    diagnostic: Optional[Diagnostic] = None

    @property
    def inventory_full(self) -> Tuple[PowerupType, ...]:
        """Awards that found no free slot; the host must offer replace-or-discard."""
        return tuple(a.type for a in self.awards if a.result == AddPowerupResult.INVENTORY_FULL)


def _rng(rng: Optional[random.Random]) -> random.Random:
    return rng if rng is not None else random.Random()


def _spawn(state: GameState, rng: random.Random, config: GameConfig) -> Tuple[GameState, bool]:
    board = spawn_tile(state.board, rng, state.next_tile_id, config.spawn_value)
    if board is state.board:
        return state, False
    return state.evolve(board=board, next_tile_id=state.next_tile_id + 1), True


def new_game(
    rng: Optional[random.Random] = None,
    config: GameConfig = DEFAULT_CONFIG,
    best_score: int = 0,
    mode: GameMode = GameMode.CLASSIC,
    time_limit: Optional[int] = None,
    scenic_background: Optional[int] = None,
) -> GameState:
    """Creates an empty board and spawns the opening tiles."""
    rng = _rng(rng)
    state = GameState(
        board=Board.empty(config.size),
        best_score=max(0, int(best_score)),
        mode=mode,
        time_limit=time_limit if mode == GameMode.TIME_ATTACK else None,
        scenic_background=scenic_background if mode == GameMode.SCENIC else None,
    )
    for _ in range(config.initial_tiles):
        state, _spawned = _spawn(state, rng, config)
    logger.debug('new %s game on %dx%d board', mode.value, config.size, config.size)
    return state


def apply_move(
    state: GameState,
    direction: DirectionLike,
    rng: Optional[random.Random] = None,
    config: GameConfig = DEFAULT_CONFIG,
) -> MoveOutcome:
    """
    Runs one directional command.

    Order on an accepted move: blocker conversion, effect tick, spawn (unless frozen),
    powerup awards, game-over/win recompute. A move that changes nothing returns the
    same board with refreshed flags and no snapshot.
    """
    parsed = direction if isinstance(direction, Direction) else Direction.parse(direction)
    if parsed is None:
        logger.warning('unknown direction %r', direction)
        return MoveOutcome(state=state, moved=False, diagnostic=Diagnostic.UNKNOWN_DIRECTION)
    if state.is_game_over:
        logger.warning('move %s ignored, game is over', parsed.value)
        return MoveOutcome(state=state, moved=False, diagnostic=Diagnostic.GAME_OVER)

    result = move(state.board, parsed)
    if not result.moved:
        logger.info('move %s changed nothing', parsed.value)
        return MoveOutcome(
            state=refresh_status(state, config.win_value),
            moved=False,
            diagnostic=Diagnostic.NO_MOVE,
        )

    rng = _rng(rng)
    blockers = apply_blocker_rules(
        result.board, result.merges, config, state.blocker_shield_active, rng, state.next_tile_id,
    )
    nxt = state.evolve(
        board=blockers.board,
        score=state.score + result.score_delta,
        next_tile_id=blockers.next_tile_id,
        moves_made=state.moves_made + 1,
    )
    nxt = process_effects(nxt)

    spawned = False
    if nxt.tile_freeze_active:
        logger.debug('tile freeze active, no spawn')
    else:
        nxt, spawned = _spawn(nxt, rng, config)

    nxt, awards = grant_awards(nxt, check_award(nxt, rng, config), config)

    reached = max((m.value for m in result.merges), default=0)
    nxt = refresh_status(nxt, config.win_value, reached)
    logger.debug(
        'move %s: +%d score=%d tiles=%d over=%s won=%s',
        parsed.value, result.score_delta, nxt.score, len(nxt.board.tiles()), nxt.is_game_over, nxt.has_won,
    )
    return MoveOutcome(
        state=nxt,
        moved=True,
        score_delta=result.score_delta,
        snapshot=state.snapshot(),
        awards=awards,
        blockers_added=blockers.blockers_added,
        spawned=spawned,
    )


def _parse_powerup(ptype: PowerupLike) -> Optional[PowerupType]:
    return ptype if isinstance(ptype, PowerupType) else PowerupType.parse(ptype)


def apply_instant_powerup(
    state: GameState,
    ptype: PowerupLike,
    rng: Optional[random.Random] = None,
    snapshot: Optional[Snapshot] = None,
    config: GameConfig = DEFAULT_CONFIG,
) -> ActivationResult:
    """Activates a powerup that needs no target: instant effects and continuous ones."""
    parsed = _parse_powerup(ptype)
    if parsed is None:
        logger.warning('unknown powerup %r', ptype)
        return ActivationResult(state=state, diagnostic=Diagnostic.UNKNOWN_POWERUP)
    if parsed.is_interactive:
        logger.warning('%s needs a target cell', parsed.value)
        return ActivationResult(state=state, diagnostic=Diagnostic.INVALID_TARGET)
    return activate(state, parsed, snapshot=snapshot, rng=_rng(rng), config=config)


def apply_interactive_powerup(
    state: GameState,
    ptype: PowerupLike,
    row: int,
    col: int,
    config: GameConfig = DEFAULT_CONFIG,
) -> ActivationResult:
    """Activates a targeted powerup (destroyer, row clear, column clear) at (row, col)."""
    parsed = _parse_powerup(ptype)
    if parsed is None:
        logger.warning('unknown powerup %r', ptype)
        return ActivationResult(state=state, diagnostic=Diagnostic.UNKNOWN_POWERUP)
    if not parsed.is_interactive:
        logger.warning('%s does not take a target', parsed.value)
        return ActivationResult(state=state, diagnostic=Diagnostic.INVALID_TARGET)
    return activate(state, parsed, target=(row, col), config=config)


def restart(
    state: GameState,
    rng: Optional[random.Random] = None,
    config: GameConfig = DEFAULT_CONFIG,
    stored_best: int = 0,
) -> GameState:
    """Starts over in the same mode, carrying the best score forward."""
    return new_game(
        rng=rng,
        config=config,
        best_score=max(stored_best, state.best_score, state.score),
        mode=state.mode,
        time_limit=state.time_limit,
        scenic_background=state.scenic_background,
    )


def expire_time(state: GameState) -> GameState:
    """Ends a time-attack game; the host calls this when its clock runs out."""
    if state.mode != GameMode.TIME_ATTACK:
        logger.warning('expire_time ignored for %s game', state.mode.value)
        return state
    if state.time_expired:
        return state
    logger.info('time expired at score %d', state.score)
    return state.evolve(time_expired=True, is_game_over=True)


def summarize(state: GameState) -> Dict[str, Any]:
    """Read-only digest of a game for statistics and leaderboards."""
    return {
        'score': state.score,
        'bestScore': state.best_score,
        'mode': state.mode.value,
        'status': state.status.value,
        'won': state.has_won,
        'moves': state.moves_made,
        'highestTile': state.board.highest_value(),
        'powerupsUsed': [p.value for p in state.used_powerup_types],
        'timeLimit': state.time_limit,
        'timeExpired': state.time_expired,
    }


class GameSession:
    """
    Holds one player's current state, the RNG and a bounded undo history.

    Commands are applied one at a time. Only accepted moves push a snapshot; an applied
    undo empties the history, so there is exactly one level of undo.
    """

    def __init__(
        self,
        config: GameConfig = DEFAULT_CONFIG,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        state: Optional[GameState] = None,
        history: Optional[Snapshot] = None,
        history_depth: int = 1,
    ) -> None:
        self.config = config
        self.rng = rng if rng is not None else random.Random(seed)
        self.state: Optional[GameState] = state
        self.history: Deque[Snapshot] = deque(maxlen=history_depth)
        if history is not None:
            self.history.append(history)

    @property
    def status(self) -> GameStatus:
        return GameStatus.IDLE if self.state is None else self.state.status

    @property
    def can_undo(self) -> bool:
        return bool(self.history)

    @property
    def last_snapshot(self) -> Optional[Snapshot]:
        return self.history[-1] if self.history else None

    def _current(self) -> GameState:
        if self.state is None:
            raise RuntimeError('no game in progress; call start() first')
        return self.state

    def start(
        self,
        mode: GameMode = GameMode.CLASSIC,
        best_score: int = 0,
        time_limit: Optional[int] = None,
        scenic_background: Optional[int] = None,
    ) -> GameState:
        self.history.clear()
        self.state = new_game(
            rng=self.rng,
            config=self.config,
            best_score=best_score,
            mode=mode,
            time_limit=time_limit,
            scenic_background=scenic_background,
        )
        return self.state

    def move(self, direction: DirectionLike) -> MoveOutcome:
        outcome = apply_move(self._current(), direction, self.rng, self.config)
        if outcome.snapshot is not None:
            self.history.append(outcome.snapshot)
        self.state = outcome.state
        return outcome

    def activate(self, ptype: PowerupLike, target: Optional[Coord] = None) -> ActivationResult:
        state = self._current()
        if target is not None:
            result = apply_interactive_powerup(state, ptype, target[0], target[1], self.config)
        else:
            result = apply_instant_powerup(state, ptype, self.rng, self.last_snapshot, self.config)
        if result.consumed_snapshot:
            self.history.clear()
        self.state = result.state
        return result

    def add_powerup(self, ptype: PowerupType) -> AddPowerupResult:
        self.state, result = add_powerup(self._current(), ptype, self.config)
        return result

    def replace_powerup(self, old: PowerupType, new: PowerupType) -> Optional[Diagnostic]:
        self.state, diagnostic = replace_powerup(self._current(), old, new)
        return diagnostic

    def discard_powerup(self, ptype: PowerupType) -> Optional[Diagnostic]:
        self.state, diagnostic = discard_powerup(self._current(), ptype)
        return diagnostic

    def restart(self, stored_best: int = 0) -> GameState:
        self.history.clear()
        self.state = restart(self._current(), self.rng, self.config, stored_best)
        return self.state

    def expire_time(self) -> GameState:
        self.state = expire_time(self._current())
        return self.state
