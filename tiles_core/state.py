from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Tuple

from .board import Board
from .catalog import ActivePowerup, PowerupType
from .moves import has_moves


class GameMode(str, Enum):
    CLASSIC = 'classic'
    TIME_ATTACK = 'time_attack'
    SCENIC = 'scenic'


class GameStatus(str, Enum):
    IDLE = 'idle'
    IN_PROGRESS = 'in_progress'
    WON = 'won'
    LOST = 'lost'


@dataclass(frozen=True)
class Snapshot:
    """Flat copy of what a full move changes; the undo history stores these."""
    board: Board
    score: int
    has_won: bool
    is_game_over: bool
    moves_made: int
    next_tile_id: int


@dataclass(frozen=True)
class GameState:
    """Represents one game between commands. Every accepted command yields a new instance."""
    board: Board
    score: int = 0
    best_score: int = 0
    is_game_over: bool = False
    has_won: bool = False
    available_powerups: Tuple[PowerupType, ...] = ()
    active_powerups: Tuple[ActivePowerup, ...] = ()
    used_powerup_types: Tuple[PowerupType, ...] = ()  # in order of use, never repeats
    pending_powerups: Tuple[PowerupType, ...] = ()  # awarded while the inventory was full
    unlocked_powerup_types: Tuple[PowerupType, ...] = ()  # every type awarded this game, even if later discarded
    total_powerups_unlocked: int = 0
    next_tile_id: int = 1
    moves_made: int = 0
    mode: GameMode = GameMode.CLASSIC
    time_limit: Optional[int] = None  # seconds, time-attack only; the host owns the clock
    time_expired: bool = False
    scenic_background: Optional[int] = None

    def evolve(self, **changes: Any) -> 'GameState':
        """Copy with changes applied; best_score always follows score upwards."""
        nxt = replace(self, **changes)
        if nxt.score > nxt.best_score:
            nxt = replace(nxt, best_score=nxt.score)
        return nxt

    @property
    def status(self) -> GameStatus:
        if self.is_game_over:
            return GameStatus.WON if self.has_won else GameStatus.LOST
        return GameStatus.IN_PROGRESS

    def active(self, ptype: PowerupType) -> Optional[ActivePowerup]:
        for entry in self.active_powerups:
            if entry.type == ptype and entry.moves_remaining > 0:
                return entry
        return None

    def is_powerup_active(self, ptype: PowerupType) -> bool:
        return self.active(ptype) is not None

    def is_powerup_used(self, ptype: PowerupType) -> bool:
        return ptype in self.used_powerup_types

    def has_powerup(self, ptype: PowerupType) -> bool:
        return ptype in self.available_powerups

    def is_ever_unlocked(self, ptype: PowerupType) -> bool:
        return (
            ptype in self.unlocked_powerup_types
            or ptype in self.used_powerup_types
            or ptype in self.available_powerups
            or ptype in self.pending_powerups
        )

    @property
    def tile_freeze_active(self) -> bool:
        return self.is_powerup_active(PowerupType.TILE_FREEZE)

    @property
    def blocker_shield_active(self) -> bool:
        return self.is_powerup_active(PowerupType.BLOCKER_SHIELD)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            board=self.board,
            score=self.score,
            has_won=self.has_won,
            is_game_over=self.is_game_over,
            moves_made=self.moves_made,
            next_tile_id=self.next_tile_id,
        )


def refresh_status(state: GameState, win_value: int, reached: int = 0) -> GameState:
    """
    Recomputes is_game_over and has_won from the board.
    `reached` is the highest value a merge produced during the command, which counts
    towards the win even if that tile did not survive the command. has_won is sticky,
    and so is a game over forced by the time-attack clock.
    """
    has_won = state.has_won or reached >= win_value or state.board.highest_value() >= win_value
    is_game_over = state.time_expired or not has_moves(state.board)
    return state.evolve(is_game_over=is_game_over, has_won=has_won)
