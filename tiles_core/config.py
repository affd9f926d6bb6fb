from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

BLOCKER_POLICIES = ('replace', 'spawn')


def _env_flag(name: str, default: str = '0') -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning('ignoring non-integer %s=%r', name, raw)
        return default


@dataclass(frozen=True)
class GameConfig:
    """Rule constants for one game. Every engine entry point takes one of these."""
    size: int = 5
    win_value: int = 2048
    blocker_threshold: int = 256
    spawn_value: int = 2
    initial_tiles: int = 2
    max_inventory: int = 3
    first_award_score: int = 1000
    award_interval: int = 2000
    blocker_policy: str = 'replace'  # 'replace' or 'spawn'
    strict: bool = False  # raise on corrupt persisted state instead of degrading

    def __post_init__(self) -> None:
        if self.size < 2:
            raise ValueError(f'board size must be at least 2, got {self.size}')
        if self.blocker_policy not in BLOCKER_POLICIES:
            raise ValueError(f'unknown blocker policy {self.blocker_policy!r}')
        if self.max_inventory < 1:
            raise ValueError('max_inventory must be positive')

    @classmethod
    def from_env(cls) -> 'GameConfig':
        """Builds a config from TILES_* environment variables, falling back to defaults."""
        base = cls()
        return cls(
            size=_env_int('TILES_GRID_SIZE', base.size),
            win_value=_env_int('TILES_WIN_VALUE', base.win_value),
            blocker_threshold=_env_int('TILES_BLOCKER_THRESHOLD', base.blocker_threshold),
            spawn_value=_env_int('TILES_SPAWN_VALUE', base.spawn_value),
            initial_tiles=_env_int('TILES_INITIAL_TILES', base.initial_tiles),
            max_inventory=_env_int('TILES_MAX_INVENTORY', base.max_inventory),
            first_award_score=_env_int('TILES_FIRST_AWARD_SCORE', base.first_award_score),
            award_interval=_env_int('TILES_AWARD_INTERVAL', base.award_interval),
            blocker_policy=os.getenv('TILES_BLOCKER_POLICY', base.blocker_policy).strip().lower(),
            strict=_env_flag('TILES_STRICT'),
        )


DEFAULT_CONFIG = GameConfig()


def configure_logging(level: Optional[str] = None) -> None:
    """Sets up root logging for hosts (CLI, Flask app, tools).

    TILES_DEBUG=1 switches to DEBUG; TILES_LOG_LEVEL overrides both.
    """
    if level is None:
        level = os.getenv('TILES_LOG_LEVEL') or ('DEBUG' if _env_flag('TILES_DEBUG') else 'WARNING')
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
