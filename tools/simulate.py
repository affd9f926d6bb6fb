from __future__ import annotations

import argparse
import os
import random
import sys
import time
from typing import Dict, List, Optional

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from game import (  # type: ignore
    Direction,
    GameConfig,
    GameSession,
    GameState,
    configure_logging,
    db_record_result,
    legal_directions,
    move,
    summarize,
)


def pick_direction(state: GameState, rng: random.Random, policy: str) -> Optional[Direction]:
    """'random' picks any legal direction; 'greedy' takes the one that scores most."""
    legal = legal_directions(state.board)
    if not legal:
        return None
    if policy == 'greedy':
        return max(legal, key=lambda d: (move(state.board, d).score_delta, rng.random()))
    return rng.choice(legal)


def use_powerups(session: GameSession) -> None:
    """Spends every held non-targeted powerup straight away; targeted ones go to the first tile."""
    state = session.state
    assert state is not None
    for ptype in list(state.available_powerups):
        if ptype.is_interactive:
            tiles = session.state.board.tiles()  # type: ignore[union-attr]
            if tiles:
                session.activate(ptype, tiles[0].position)
        else:
            session.activate(ptype)
    for ptype in list(session.state.pending_powerups):  # type: ignore[union-attr]
        session.discard_powerup(ptype)


def play_one(seed: int, config: GameConfig, policy: str = 'random', powerups: bool = False, max_moves: int = 100000) -> GameState:
    session = GameSession(config=config, seed=seed)
    session.start()
    rng = random.Random(seed ^ 0x5EED)
    for _ in range(max_moves):
        state = session.state
        assert state is not None
        if state.is_game_over:
            break
        if powerups:
            use_powerups(session)
        direction = pick_direction(session.state, rng, policy)  # type: ignore[arg-type]
        if direction is None:
            break
        session.move(direction)
    final = session.state
    assert final is not None
    return final


def process(args: argparse.Namespace) -> Dict[str, float]:
    config = GameConfig.from_env()
    start_time = time.time()
    scores: List[int] = []
    wins = 0
    highest = 0
    for i in range(int(args.games)):
        final = play_one(args.seed + i, config, policy=args.policy, powerups=args.powerups)
        scores.append(final.score)
        wins += 1 if final.has_won else 0
        highest = max(highest, final.board.highest_value())
        if args.db:
            db_record_result(args.db, final)
        if args.verbose:
            print(summarize(final))
    elapsed = time.time() - start_time
    played = len(scores)
    stats = {
        'games': played,
        'wins': wins,
        'mean_score': (sum(scores) / played) if played else 0.0,
        'max_score': max(scores) if scores else 0,
        'highest_tile': highest,
        'elapsed_sec': elapsed,
    }
    print(
        f"Games={played} wins={wins} mean_score={stats['mean_score']:.1f} "
        f"max_score={stats['max_score']} highest_tile={highest} elapsed_sec={elapsed:.1f}"
    )
    return stats


def main() -> None:
    parser = argparse.ArgumentParser(description="Play many seeded games with a simple policy and report scores")
    parser.add_argument('--games', type=int, default=100, help='Number of games to play')
    parser.add_argument('--seed', type=int, default=0, help='First seed; game i uses seed+i')
    parser.add_argument('--policy', choices=['random', 'greedy'], default='random')
    parser.add_argument('--powerups', action='store_true', help='Spend powerups as soon as they are awarded')
    parser.add_argument('--db', default=None, help='Record finished games into this SQLite DB')
    parser.add_argument('--verbose', action='store_true', help='Print a summary per game')
    args = parser.parse_args()
    configure_logging()
    process(args)


if __name__ == '__main__':
    main()
