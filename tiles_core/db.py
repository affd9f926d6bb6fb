from __future__ import annotations

import json
import logging
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .codec import json_to_snapshot, json_to_state, snapshot_to_json, state_to_json
from .results import CorruptStateError
from .state import GameMode, GameState, Snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavedGame:
    state: GameState
    snapshot: Optional[Snapshot]
    saved_at: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='seconds').replace('+00:00', 'Z')


def _ensure_db_dir(db_path: str) -> None:
    """Ensures the directory for the SQLite DB exists before connecting."""
    directory = os.path.dirname(db_path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


def _resolve_db_path(db_path: str) -> str:
    """Falls back to a writable directory when the requested one cannot be created."""
    try:
        _ensure_db_dir(db_path)
        return db_path
    except PermissionError:
        logger.warning('cannot create directory for %s, looking for a writable one', db_path)
    candidates = [
        os.getenv('TILES_DB_DIR'),
        os.path.join(os.getcwd(), 'data'),
        '/tmp',
    ]
    base = os.path.basename(db_path) or 'tiles2048.db'
    for d in candidates:
        if not d:
            continue
        try:
            os.makedirs(d, exist_ok=True)
        except OSError:
            continue
        return os.path.join(d, base)
    return base


def _ensure_db(conn: sqlite3.Connection) -> None:
    """Creates the save-slot, best-score and finished-game tables if missing."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS saves (
            slot TEXT PRIMARY KEY,
            doc TEXT NOT NULL,
            saved_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS best_score (
            mode TEXT PRIMARY KEY,
            score INTEGER NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS games (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            mode TEXT NOT NULL,
            score INTEGER NOT NULL,
            won INTEGER NOT NULL,
            moves INTEGER NOT NULL,
            highest_tile INTEGER NOT NULL,
            powerups_used INTEGER NOT NULL,
            finished_at TEXT NOT NULL
        )
        """
    )
    conn.commit()


def _connect(db_path: str) -> sqlite3.Connection:
    resolved = _resolve_db_path(db_path)
    conn = sqlite3.connect(resolved)
    _ensure_db(conn)
    return conn


def db_save_game(db_path: str, slot: str, state: GameState, snapshot: Optional[Snapshot] = None) -> None:
    """Stores the state (and its undo snapshot, if any) under a save slot, replacing what was there."""
    doc = json.dumps({'state': state_to_json(state), 'snapshot': snapshot_to_json(snapshot)}, separators=(',', ':'))
    conn = _connect(db_path)
    try:
        conn.execute(
            "INSERT OR REPLACE INTO saves (slot, doc, saved_at) VALUES (?, ?, ?)",
            (slot, doc, _now()),
        )
        conn.commit()
    finally:
        conn.close()
    logger.debug('saved slot %s (score %d)', slot, state.score)


def db_load_game(db_path: str, slot: str, strict: bool = False) -> Optional[SavedGame]:
    """
    Loads a save slot. Returns None when the slot is empty.
    A corrupt document raises CorruptStateError when strict, otherwise it is logged and
    None is returned so the caller can start a fresh board.
    """
    conn = _connect(db_path)
    try:
        row = conn.execute("SELECT doc, saved_at FROM saves WHERE slot = ?", (slot,)).fetchone()
    finally:
        conn.close()
    if not row:
        return None
    doc_text, saved_at = row
    try:
        try:
            doc = json.loads(doc_text)
        except ValueError as e:
            raise CorruptStateError(f'slot {slot} is not JSON: {e}') from e
        if not isinstance(doc, dict):
            raise CorruptStateError(f'slot {slot} holds {type(doc).__name__}, expected an object')
        state = json_to_state(doc.get('state'))
        snapshot = json_to_snapshot(doc.get('snapshot'))
        if snapshot is not None and snapshot.board.size != state.board.size:
            logger.warning('slot %s: dropping undo snapshot for a different board size', slot)
            snapshot = None
    except CorruptStateError:
        if strict:
            raise
        logger.exception('slot %s is corrupt, ignoring it', slot)
        return None
    return SavedGame(state=state, snapshot=snapshot, saved_at=saved_at)


def db_delete_game(db_path: str, slot: str) -> bool:
    conn = _connect(db_path)
    try:
        cur = conn.execute("DELETE FROM saves WHERE slot = ?", (slot,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def db_load_best_score(db_path: str, mode: GameMode = GameMode.CLASSIC) -> int:
    conn = _connect(db_path)
    try:
        row = conn.execute("SELECT score FROM best_score WHERE mode = ?", (mode.value,)).fetchone()
        return int(row[0]) if row else 0
    finally:
        conn.close()


def db_store_best_score(db_path: str, score: int, mode: GameMode = GameMode.CLASSIC) -> int:
    """Raises the stored best score for a mode if `score` beats it; returns the stored value."""
    conn = _connect(db_path)
    try:
        row = conn.execute("SELECT score FROM best_score WHERE mode = ?", (mode.value,)).fetchone()
        current = int(row[0]) if row else 0
        if score > current:
            conn.execute(
                "INSERT OR REPLACE INTO best_score (mode, score, updated_at) VALUES (?, ?, ?)",
                (mode.value, int(score), _now()),
            )
            conn.commit()
            current = int(score)
        return current
    finally:
        conn.close()


def db_record_result(db_path: str, state: GameState) -> None:
    """Appends a finished game to the statistics table and raises the best score if beaten."""
    conn = _connect(db_path)
    try:
        conn.execute(
            """
            INSERT INTO games (mode, score, won, moves, highest_tile, powerups_used, finished_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                state.mode.value,
                state.score,
                1 if state.has_won else 0,
                state.moves_made,
                state.board.highest_value(),
                len(state.used_powerup_types),
                _now(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    db_store_best_score(db_path, max(state.score, state.best_score), state.mode)
    logger.info('recorded %s game: score=%d won=%s', state.mode.value, state.score, state.has_won)


def db_statistics(db_path: str, mode: Optional[GameMode] = None) -> Dict[str, Any]:
    """Aggregates over finished games, optionally for one mode."""
    where = "WHERE mode = ?" if mode is not None else ""
    params = (mode.value,) if mode is not None else ()
    conn = _connect(db_path)
    try:
        row = conn.execute(
            f"""
            SELECT COUNT(*), COALESCE(SUM(won), 0), COALESCE(MAX(score), 0), COALESCE(MAX(highest_tile), 0),
                   COALESCE(SUM(moves), 0), COALESCE(AVG(score), 0), COALESCE(SUM(powerups_used), 0)
            FROM games {where}
            """,
            params,
        ).fetchone()
    finally:
        conn.close()
    played, won, top, highest, moves, avg, powerups = row
    return {
        'gamesPlayed': int(played),
        'gamesWon': int(won),
        'topScore': int(top),
        'highestTile': int(highest),
        'totalMoves': int(moves),
        'averageScore': round(float(avg), 1),
        'powerupsUsed': int(powerups),
    }
