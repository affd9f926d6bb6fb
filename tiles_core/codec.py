from __future__ import annotations

from typing import Any, Dict, List, Optional

from .board import Board, Cell, Tile
from .catalog import ActivePowerup, PowerupType
from .results import BoardShapeError, CorruptStateError
from .state import GameMode, GameState, Snapshot

FORMAT_VERSION = 1


def tile_to_json(t: Tile) -> Dict[str, Any]:
    return {'id': t.id, 'value': t.value, 'row': t.row, 'col': t.col, 'blocker': t.is_blocker}


def board_to_json(b: Board) -> Dict[str, Any]:
    return {'size': b.size, 'grid': [None if t is None else tile_to_json(t) for t in b.grid]}


def _tile_from_json(obj: Dict[str, Any]) -> Tile:
    return Tile(
        id=int(obj['id']),
        value=int(obj.get('value', 0)),
        row=int(obj['row']),
        col=int(obj['col']),
        is_blocker=bool(obj.get('blocker', False)),
    )


def json_to_board(obj: Dict[str, Any]) -> Board:
    size = int(obj['size'])
    cells: List[Cell] = [None if raw is None else _tile_from_json(raw) for raw in obj['grid']]
    return Board(size=size, grid=tuple(cells))


def _powerup(name: Any) -> PowerupType:
    parsed = PowerupType.parse(name)
    if parsed is None:
        raise CorruptStateError(f'unknown powerup type {name!r}')
    return parsed


def _opt_int(v: Any) -> Optional[int]:
    return None if v is None else int(v)


def state_to_json(s: GameState) -> Dict[str, Any]:
    """Every GameState field, in a plain-JSON shape (camelCase keys)."""
    return {
        'version': FORMAT_VERSION,
        'board': board_to_json(s.board),
        'score': s.score,
        'bestScore': s.best_score,
        'isGameOver': s.is_game_over,
        'hasWon': s.has_won,
        'status': s.status.value,
        'availablePowerups': [p.value for p in s.available_powerups],
        'activePowerups': [{'type': a.type.value, 'movesRemaining': a.moves_remaining} for a in s.active_powerups],
        'usedPowerupTypes': [p.value for p in s.used_powerup_types],
        'pendingPowerups': [p.value for p in s.pending_powerups],
        'unlockedPowerupTypes': [p.value for p in s.unlocked_powerup_types],
        'totalPowerupsUnlocked': s.total_powerups_unlocked,
        'nextTileId': s.next_tile_id,
        'movesMade': s.moves_made,
        'mode': s.mode.value,
        'timeLimit': s.time_limit,
        'timeExpired': s.time_expired,
        'scenicBackground': s.scenic_background,
    }


def json_to_state(obj: Any) -> GameState:
    """
    Rebuilds a GameState from state_to_json output.
    Any missing key, wrong type or impossible board raises CorruptStateError.
    """
    if not isinstance(obj, dict):
        raise CorruptStateError('state document must be an object')
    try:
        board = json_to_board(obj['board'])
        active = tuple(
            ActivePowerup(_powerup(a['type']), int(a['movesRemaining'])) for a in obj.get('activePowerups', [])
        )
        state = GameState(
            board=board,
            score=int(obj.get('score', 0)),
            best_score=int(obj.get('bestScore', 0)),
            is_game_over=bool(obj.get('isGameOver', False)),
            has_won=bool(obj.get('hasWon', False)),
            available_powerups=tuple(_powerup(p) for p in obj.get('availablePowerups', [])),
            active_powerups=active,
            used_powerup_types=tuple(_powerup(p) for p in obj.get('usedPowerupTypes', [])),
            pending_powerups=tuple(_powerup(p) for p in obj.get('pendingPowerups', [])),
            unlocked_powerup_types=tuple(_powerup(p) for p in obj.get('unlockedPowerupTypes', [])),
            total_powerups_unlocked=int(obj.get('totalPowerupsUnlocked', 0)),
            next_tile_id=int(obj.get('nextTileId', 1)),
            moves_made=int(obj.get('movesMade', 0)),
            mode=GameMode(obj.get('mode', GameMode.CLASSIC.value)),
            time_limit=_opt_int(obj.get('timeLimit')),
            time_expired=bool(obj.get('timeExpired', False)),
            scenic_background=_opt_int(obj.get('scenicBackground')),
        )
    except CorruptStateError:
        raise
    except (KeyError, TypeError, ValueError, BoardShapeError) as e:
        raise CorruptStateError(f'bad state document: {e}') from e
    _check_invariants(state)
    # ids handed out later must not collide with ids on the board
    top_id = max((t.id for t in state.board.tiles()), default=0)
    if state.next_tile_id <= top_id:
        state = state.evolve(next_tile_id=top_id + 1)
    return state


def _check_invariants(s: GameState) -> None:
    if len(set(s.available_powerups)) != len(s.available_powerups):
        raise CorruptStateError('duplicate powerup in inventory')
    if len(set(s.used_powerup_types)) != len(s.used_powerup_types):
        raise CorruptStateError('powerup used twice')
    if s.score < 0:
        raise CorruptStateError('negative score')
    for t in s.board.tiles():
        if not t.is_blocker and (t.value < 2 or t.value & (t.value - 1)):
            raise CorruptStateError(f'tile {t.id} has value {t.value}, not a power of two')


def snapshot_to_json(snap: Optional[Snapshot]) -> Optional[Dict[str, Any]]:
    if snap is None:
        return None
    return {
        'board': board_to_json(snap.board),
        'score': snap.score,
        'hasWon': snap.has_won,
        'isGameOver': snap.is_game_over,
        'movesMade': snap.moves_made,
        'nextTileId': snap.next_tile_id,
    }


def json_to_snapshot(obj: Any) -> Optional[Snapshot]:
    if obj is None:
        return None
    if not isinstance(obj, dict):
        raise CorruptStateError('snapshot document must be an object')
    try:
        return Snapshot(
            board=json_to_board(obj['board']),
            score=int(obj['score']),
            has_won=bool(obj.get('hasWon', False)),
            is_game_over=bool(obj.get('isGameOver', False)),
            moves_made=int(obj.get('movesMade', 0)),
            next_tile_id=int(obj.get('nextTileId', 1)),
        )
    except (KeyError, TypeError, ValueError, BoardShapeError) as e:
        raise CorruptStateError(f'bad snapshot document: {e}') from e

