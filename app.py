from __future__ import annotations

import logging
import os
import random
import sys
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

# Ensure package imports work when executed directly from repo root or as module
if __package__ in (None, ""):
    sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from game import (  # noqa: E402
    CorruptStateError,
    Diagnostic,
    GameConfig,
    GameMode,
    GameState,
    PowerupType,
    Snapshot,
    apply_instant_powerup,
    apply_interactive_powerup,
    apply_move,
    catalog_entries,
    configure_logging,
    db_load_best_score,
    db_record_result,
    db_statistics,
    discard_powerup,
    expire_time,
    json_to_snapshot,
    json_to_state,
    legal_directions,
    new_game,
    replace_powerup,
    restart,
    snapshot_to_json,
    state_to_json,
    summarize,
)

logger = logging.getLogger(__name__)

DEFAULT_DB = os.getenv("TILES_DB", "data/tiles2048.db")

app = Flask(__name__)
app.config["DB_PATH"] = DEFAULT_DB
app.config["GAME_CONFIG"] = GameConfig.from_env()


class BadRequest(ValueError):
    pass


def _db_path() -> str:
    return app.config["DB_PATH"]


def _game_config() -> GameConfig:
    return app.config["GAME_CONFIG"]


def _error(message: str, status: int = 400) -> Any:
    return jsonify({"ok": False, "error": message}), status


def _body() -> Dict[str, Any]:
    body = request.get_json(force=True, silent=True) or {}
    if not isinstance(body, dict):
        raise BadRequest("JSON object required")
    return body


def _rng(body: Dict[str, Any]) -> random.Random:
    seed = _opt_int(body, "seed")
    return random.Random(seed) if seed is not None else random.Random()


def _load(body: Dict[str, Any]) -> Tuple[GameState, Optional[Snapshot]]:
    raw = body.get("state")
    if not isinstance(raw, dict):
        raise BadRequest("state required")
    try:
        state = json_to_state(raw)
        snapshot = json_to_snapshot(body.get("snapshot"))
    except CorruptStateError as e:
        raise BadRequest(f"bad state: {e}") from e
    if state.board.size != _game_config().size:
        raise BadRequest(f"board size {state.board.size} does not match configured size {_game_config().size}")
    return state, snapshot


def _opt_int(body: Dict[str, Any], key: str) -> Optional[int]:
    raw = body.get(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"{key} must be an integer") from None


def _powerup(body: Dict[str, Any], key: str) -> PowerupType:
    ptype = PowerupType.parse(body.get(key, ""))
    if ptype is None:
        raise BadRequest(f"unknown powerup {body.get(key)!r}")
    return ptype


def _response(state: GameState, snapshot: Optional[Snapshot], **extra: Any) -> Any:
    out: Dict[str, Any] = {
        "ok": True,
        "state": state_to_json(state),
        "snapshot": snapshot_to_json(snapshot),
        "canUndo": snapshot is not None,
        "legalDirections": [d.value for d in legal_directions(state.board)],
    }
    out.update(extra)
    return jsonify(out)


def _diag(d: Optional[Diagnostic]) -> Optional[str]:
    return None if d is None else d.value


def _record_if_finished(before: GameState, after: GameState) -> None:
    if after.is_game_over and not before.is_game_over:
        db_record_result(_db_path(), after)


@app.errorhandler(BadRequest)
def _bad_request(e: BadRequest) -> Any:
    logger.warning("bad request on %s: %s", request.path, e)
    return _error(str(e))


@app.get("/api/powerups")
def api_powerups() -> Any:
    return jsonify({"ok": True, "powerups": catalog_entries()})


@app.post("/api/new")
def api_new() -> Any:
    body = _body()
    try:
        mode = GameMode(body.get("mode", GameMode.CLASSIC.value))
    except ValueError:
        raise BadRequest(f"unknown mode {body.get('mode')!r}") from None
    best = max(_opt_int(body, "bestScore") or 0, db_load_best_score(_db_path(), mode))
    state = new_game(
        rng=_rng(body),
        config=_game_config(),
        best_score=best,
        mode=mode,
        time_limit=_opt_int(body, "timeLimit"),
        scenic_background=_opt_int(body, "scenicBackground"),
    )
    return _response(state, None)


@app.post("/api/move")
def api_move() -> Any:
    body = _body()
    state, snapshot = _load(body)
    outcome = apply_move(state, body.get("direction", ""), _rng(body), _game_config())
    if outcome.diagnostic == Diagnostic.UNKNOWN_DIRECTION:
        return _error(f"unknown direction {body.get('direction')!r}")
    _record_if_finished(state, outcome.state)
    return _response(
        outcome.state,
        outcome.snapshot if outcome.moved else snapshot,
        moved=outcome.moved,
        scoreDelta=outcome.score_delta,
        blockersAdded=outcome.blockers_added,
        awards=[{"type": a.type.value, "result": a.result.value} for a in outcome.awards],
        inventoryFull=[p.value for p in outcome.inventory_full],
        diagnostic=_diag(outcome.diagnostic),
    )


@app.post("/api/powerup/activate")
def api_activate() -> Any:
    body = _body()
    state, snapshot = _load(body)
    ptype = _powerup(body, "type")
    if ptype.is_interactive:
        try:
            row, col = int(body["row"]), int(body["col"])
        except (KeyError, TypeError, ValueError):
            raise BadRequest(f"{ptype.value} needs integer row and col") from None
        result = apply_interactive_powerup(state, ptype, row, col, _game_config())
    else:
        result = apply_instant_powerup(state, ptype, _rng(body), snapshot, _game_config())
    _record_if_finished(state, result.state)
    return _response(
        result.state,
        None if result.consumed_snapshot else snapshot,
        applied=result.applied,
        diagnostic=_diag(result.diagnostic),
    )


@app.post("/api/powerup/replace")
def api_replace() -> Any:
    body = _body()
    state, snapshot = _load(body)
    nxt, diagnostic = replace_powerup(state, _powerup(body, "old"), _powerup(body, "new"))
    return _response(nxt, snapshot, applied=diagnostic is None, diagnostic=_diag(diagnostic))


@app.post("/api/powerup/discard")
def api_discard() -> Any:
    body = _body()
    state, snapshot = _load(body)
    nxt, diagnostic = discard_powerup(state, _powerup(body, "type"))
    return _response(nxt, snapshot, applied=diagnostic is None, diagnostic=_diag(diagnostic))


@app.post("/api/restart")
def api_restart() -> Any:
    body = _body()
    state, _snapshot = _load(body)
    stored = db_load_best_score(_db_path(), state.mode)
    return _response(restart(state, _rng(body), _game_config(), stored), None)


@app.post("/api/expire")
def api_expire() -> Any:
    body = _body()
    state, snapshot = _load(body)
    nxt = expire_time(state)
    _record_if_finished(state, nxt)
    return _response(nxt, snapshot)


@app.post("/api/summary")
def api_summary() -> Any:
    body = _body()
    state, _snapshot = _load(body)
    return jsonify({
        "ok": True,
        "summary": summarize(state),
        "statistics": db_statistics(_db_path(), state.mode),
    })


# Entrypoint for "python app.py"
if __name__ == "__main__":
    configure_logging()
    debug = os.getenv("FLASK_DEBUG", os.getenv("DEBUG", "0")).lower() in ("1", "true", "yes", "on")
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=debug)
