"""
tiles2048 core Python package.

Pure game logic for a 2048-style puzzle with blocker tiles and powerups.
Every command is a function of (state, command, rng) returning a new state;
the package performs no I/O outside db.py and cli.py.
Modules:
- board.py: Board, Tile, Direction, Coord
- moves.py: slide-and-merge
- blockers.py, spawn.py: post-move rules
- catalog.py, powerups.py, effects.py: powerup types, inventory and effects
- state.py: GameState, Snapshot
- engine.py: new_game, apply_move, GameSession
- codec.py, db.py: JSON documents and the SQLite store
"""
