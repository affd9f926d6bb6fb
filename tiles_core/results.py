from __future__ import annotations

from enum import Enum


class Diagnostic(str, Enum):
    """Why a command left the state unchanged. Returned, never raised."""
    INVALID_TARGET = 'invalid_target'
    POWERUP_UNAVAILABLE = 'powerup_unavailable'
    INVENTORY_FULL = 'inventory_full'
    ALREADY_EXISTS = 'already_exists'
    UNDO_UNAVAILABLE = 'undo_unavailable'
    EMPTY_BOARD = 'empty_board'
    UNKNOWN_POWERUP = 'unknown_powerup'
    UNKNOWN_DIRECTION = 'unknown_direction'
    GAME_OVER = 'game_over'
    NO_MOVE = 'no_move'


class AddPowerupResult(str, Enum):
    SUCCESS = 'success'
    INVENTORY_FULL = 'inventory_full'
    ALREADY_EXISTS = 'already_exists'


class BoardShapeError(ValueError):
    """Board grid does not match its declared size, or a tile sits in the wrong cell."""


class CorruptStateError(ValueError):
    """A persisted game document could not be decoded."""
