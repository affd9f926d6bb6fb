from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple


class PowerupType(str, Enum):
    TILE_DESTROYER = 'tile_destroyer'
    ROW_CLEAR = 'row_clear'
    COLUMN_CLEAR = 'column_clear'
    VALUE_UPGRADE = 'value_upgrade'
    UNDO_MOVE = 'undo_move'
    SHUFFLE_BOARD = 'shuffle_board'
    TILE_FREEZE = 'tile_freeze'
    BLOCKER_SHIELD = 'blocker_shield'

    @classmethod
    def parse(cls, text: str) -> Optional['PowerupType']:
        """Accepts 'row_clear', 'rowClear', 'ROW-CLEAR'; None for anything else."""
        key = ''.join(ch for ch in str(text).lower() if ch.isalnum())
        return _BY_COMPACT_NAME.get(key)

    @property
    def info(self) -> 'PowerupInfo':
        return POWERUP_INFO[self]

    @property
    def is_primary(self) -> bool:
        return self.info.is_primary

    @property
    def is_interactive(self) -> bool:
        return self.info.is_interactive

    @property
    def default_duration(self) -> int:
        return self.info.default_duration

    @property
    def is_continuous(self) -> bool:
        return self.info.default_duration > 0


@dataclass(frozen=True)
class PowerupInfo:
    display_name: str
    description: str
    is_primary: bool
    is_interactive: bool = False
    default_duration: int = 0  # moves; 0 means the effect is instant


POWERUP_INFO: Dict[PowerupType, PowerupInfo] = {
    PowerupType.TILE_DESTROYER: PowerupInfo(
        'Tile Destroyer', 'Remove any single tile from the board', is_primary=True, is_interactive=True),
    PowerupType.ROW_CLEAR: PowerupInfo(
        'Row Clear', 'Clear every tile in the chosen row', is_primary=True, is_interactive=True),
    PowerupType.COLUMN_CLEAR: PowerupInfo(
        'Column Clear', 'Clear every tile in the chosen column', is_primary=True, is_interactive=True),
    PowerupType.VALUE_UPGRADE: PowerupInfo(
        'Value Upgrade', 'Double every numbered tile on the board', is_primary=True),
    PowerupType.UNDO_MOVE: PowerupInfo(
        'Undo Move', 'Revert the last move', is_primary=True),
    PowerupType.SHUFFLE_BOARD: PowerupInfo(
        'Shuffle Board', 'Randomly rearrange all tiles', is_primary=True),
    PowerupType.TILE_FREEZE: PowerupInfo(
        'Tile Freeze', 'No new tiles appear on the next 4 moves', is_primary=True, default_duration=5),
    PowerupType.BLOCKER_SHIELD: PowerupInfo(
        'Blocker Shield', 'High merges do not turn into blockers for 3 moves', is_primary=False,
        default_duration=3),
}

_BY_COMPACT_NAME: Dict[str, PowerupType] = {p.value.replace('_', ''): p for p in PowerupType}

PRIMARY_TYPES: Tuple[PowerupType, ...] = tuple(p for p in PowerupType if p.is_primary)


@dataclass(frozen=True)
class ActivePowerup:
    type: PowerupType
    moves_remaining: int

    def ticked(self) -> 'ActivePowerup':
        return replace(self, moves_remaining=self.moves_remaining - 1)


def catalog_entries() -> List[Dict[str, object]]:
    """Static description of every powerup type, for hosts that list them."""
    return [
        {
            'type': p.value,
            'name': p.info.display_name,
            'description': p.info.description,
            'primary': p.is_primary,
            'interactive': p.is_interactive,
            'duration': p.default_duration,
        }
        for p in PowerupType
    ]
