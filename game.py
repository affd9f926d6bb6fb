from __future__ import annotations

# Facade module that re-exports the tiles2048 core API.
# The Flask app, the tools and the tests import from here.
# Single-responsibility modules live under tiles_core/*.

try:
    from .tiles_core.board import Board, Coord, Direction, Tile  # type: ignore
    from .tiles_core.catalog import PowerupType, PRIMARY_TYPES, catalog_entries  # type: ignore
    from .tiles_core.config import DEFAULT_CONFIG, GameConfig, configure_logging  # type: ignore
    from .tiles_core.results import AddPowerupResult, BoardShapeError, CorruptStateError, Diagnostic  # type: ignore
    from .tiles_core.state import GameMode, GameState, GameStatus, Snapshot  # type: ignore
    from .tiles_core.moves import move, has_moves, legal_directions  # type: ignore
    from .tiles_core.powerups import (  # type: ignore
        activate,
        add_powerup,
        check_award,
        discard_powerup,
        earned_powerups,
        process_effects,
        replace_powerup,
    )
    from .tiles_core.engine import (  # type: ignore
        GameSession,
        MoveOutcome,
        apply_instant_powerup,
        apply_interactive_powerup,
        apply_move,
        expire_time,
        new_game,
        restart,
        summarize,
    )
    from .tiles_core.codec import (  # type: ignore
        json_to_snapshot,
        json_to_state,
        snapshot_to_json,
        state_to_json,
    )
    from .tiles_core.db import (  # type: ignore
        db_load_best_score,
        db_load_game,
        db_record_result,
        db_save_game,
        db_statistics,
    )
except ImportError:
    from tiles_core.board import Board, Coord, Direction, Tile  # type: ignore
    from tiles_core.catalog import PowerupType, PRIMARY_TYPES, catalog_entries  # type: ignore
    from tiles_core.config import DEFAULT_CONFIG, GameConfig, configure_logging  # type: ignore
    from tiles_core.results import AddPowerupResult, BoardShapeError, CorruptStateError, Diagnostic  # type: ignore
    from tiles_core.state import GameMode, GameState, GameStatus, Snapshot  # type: ignore
    from tiles_core.moves import move, has_moves, legal_directions  # type: ignore
    from tiles_core.powerups import (  # type: ignore
        activate,
        add_powerup,
        check_award,
        discard_powerup,
        earned_powerups,
        process_effects,
        replace_powerup,
    )
    from tiles_core.engine import (  # type: ignore
        GameSession,
        MoveOutcome,
        apply_instant_powerup,
        apply_interactive_powerup,
        apply_move,
        expire_time,
        new_game,
        restart,
        summarize,
    )
    from tiles_core.codec import (  # type: ignore
        json_to_snapshot,
        json_to_state,
        snapshot_to_json,
        state_to_json,
    )
    from tiles_core.db import (  # type: ignore
        db_load_best_score,
        db_load_game,
        db_record_result,
        db_save_game,
        db_statistics,
    )


def main() -> None:
    # CLI driver delegated to tiles_core.cli
    try:
        from .tiles_core.cli import main as _main  # type: ignore
    except ImportError:
        from tiles_core.cli import main as _main  # type: ignore
    _main()


if __name__ == '__main__':
    main()
