from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass, replace
from typing import List, Optional

from .board import Coord, Direction
from .catalog import PowerupType
from .config import GameConfig, configure_logging
from .db import db_delete_game, db_load_best_score, db_load_game, db_record_result, db_save_game, db_statistics
from .engine import GameSession, summarize
from .results import Diagnostic
from .state import GameMode, GameState

logger = logging.getLogger(__name__)

HELP = """commands:
  w/a/s/d, h/j/k/l or up/down/left/right   move
  p <powerup> [row col]                    activate a powerup
  r <held> <pending>                       replace a held powerup with a pending award
  x <pending>                              discard a pending award
  n                                        restart
  save                                     save to the current slot
  ?                                        this help
  q                                        quit"""


@dataclass(frozen=True)
class Command:
    kind: str  # move, powerup, replace, discard, restart, save, help, quit
    direction: Optional[Direction] = None
    powerup: Optional[PowerupType] = None
    other: Optional[PowerupType] = None
    target: Optional[Coord] = None


def parse_command(text: str) -> Optional[Command]:
    """Parses one line of terminal input; None when it makes no sense."""
    parts = text.replace(',', ' ').split()
    if not parts:
        return None
    head = parts[0].lower()
    if len(parts) == 1:
        direction = Direction.parse(head)
        if direction is not None:
            return Command('move', direction=direction)
        simple = {'n': 'restart', 'restart': 'restart', 'save': 'save', '?': 'help', 'help': 'help',
                  'q': 'quit', 'quit': 'quit'}
        if head in simple:
            return Command(simple[head])
        return None
    if head == 'p':
        ptype = PowerupType.parse(parts[1])
        if ptype is None:
            return None
        if len(parts) == 2:
            return Command('powerup', powerup=ptype)
        if len(parts) != 4:
            return None
        try:
            target = (int(parts[2]), int(parts[3]))
        except ValueError:
            return None
        return Command('powerup', powerup=ptype, target=target)
    if head == 'r' and len(parts) == 3:
        old, new = PowerupType.parse(parts[1]), PowerupType.parse(parts[2])
        if old is None or new is None:
            return None
        return Command('replace', powerup=old, other=new)
    if head == 'x' and len(parts) == 2:
        ptype = PowerupType.parse(parts[1])
        return None if ptype is None else Command('discard', powerup=ptype)
    return None


def render(state: GameState) -> str:
    lines: List[str] = [state.board.pretty(), '']
    lines.append(f'score {state.score}   best {state.best_score}   moves {state.moves_made}')
    if state.available_powerups:
        lines.append('powerups: ' + ', '.join(p.value for p in state.available_powerups))
    if state.active_powerups:
        lines.append('active: ' + ', '.join(f'{a.type.value} ({a.moves_remaining})' for a in state.active_powerups))
    if state.pending_powerups:
        lines.append('inventory full, waiting: ' + ', '.join(p.value for p in state.pending_powerups))
    return '\n'.join(lines)


def _describe(diagnostic: Optional[Diagnostic]) -> str:
    return '' if diagnostic is None else diagnostic.value.replace('_', ' ')


def _play(session: GameSession, db_path: str, slot: str) -> None:
    print(HELP)
    recorded = False
    while True:
        state = session.state
        assert state is not None
        print()
        print(render(state))
        if state.is_game_over and not recorded:
            print('You win!' if state.has_won else 'Game over.')
            db_record_result(db_path, state)
            recorded = True
        try:
            text = input('> ')
        except EOFError:
            break
        cmd = parse_command(text)
        if cmd is None:
            print('Could not parse. Type ? for help.')
            continue
        if cmd.kind == 'quit':
            break
        if cmd.kind == 'help':
            print(HELP)
        elif cmd.kind == 'save':
            db_save_game(db_path, slot, state, session.last_snapshot)
            print(f'Saved to slot {slot}.')
        elif cmd.kind == 'restart':
            session.restart(stored_best=db_load_best_score(db_path, state.mode))
            recorded = False
        elif cmd.kind == 'move':
            outcome = session.move(cmd.direction)  # type: ignore[arg-type]
            if outcome.diagnostic is not None:
                print(_describe(outcome.diagnostic))
            for award in outcome.awards:
                print(f'New powerup: {award.type.info.display_name} ({award.result.value})')
        elif cmd.kind == 'powerup':
            result = session.activate(cmd.powerup, cmd.target)  # type: ignore[arg-type]
            if not result.applied:
                print(_describe(result.diagnostic))
        elif cmd.kind == 'replace':
            diagnostic = session.replace_powerup(cmd.powerup, cmd.other)  # type: ignore[arg-type]
            if diagnostic is not None:
                print(_describe(diagnostic))
        elif cmd.kind == 'discard':
            diagnostic = session.discard_powerup(cmd.powerup)  # type: ignore[arg-type]
            if diagnostic is not None:
                print(_describe(diagnostic))
    final = session.state
    if final is not None and not final.is_game_over:
        db_save_game(db_path, slot, final, session.last_snapshot)
        print(f'Progress saved to slot {slot}.')


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description='2048 with blocker tiles and powerups')
    parser.add_argument('--size', type=int, default=None, help='Board size (NxN); default from TILES_GRID_SIZE or 5')
    parser.add_argument('--db', default=os.getenv('TILES_DB', 'data/tiles2048.db'), help='SQLite DB file path')
    parser.add_argument('--seed', type=int, default=None, help='RNG seed for spawns and awards')
    parser.add_argument('--slot', default='default', help='Save slot to resume from and save to')
    parser.add_argument('--mode', choices=[m.value for m in GameMode], default=GameMode.CLASSIC.value)
    parser.add_argument('--time-limit', type=int, default=None, help='Seconds, time-attack mode only')
    parser.add_argument('--new', action='store_true', help='Discard any saved game in the slot and start over')
    parser.add_argument('--play', action='store_true', help='Play in the terminal')
    parser.add_argument('--stats', action='store_true', help='Print statistics of finished games and exit')
    parser.add_argument('--debug', action='store_true', help='Verbose engine logging')
    args = parser.parse_args(argv)

    configure_logging('DEBUG' if args.debug else None)
    config = GameConfig.from_env()
    if args.size is not None:
        config = replace(config, size=args.size)

    if args.stats:
        for key, value in db_statistics(args.db).items():
            print(f'{key}: {value}')
        return

    mode = GameMode(args.mode)
    session = GameSession(config=config, seed=args.seed)
    if args.new and db_delete_game(args.db, args.slot):
        logger.info('cleared slot %s', args.slot)
    saved = None if args.new else db_load_game(args.db, args.slot, strict=config.strict)
    if saved is not None and saved.state.board.size == config.size and not saved.state.is_game_over:
        session.state = saved.state
        if saved.snapshot is not None:
            session.history.append(saved.snapshot)
        logger.info('resumed slot %s saved at %s', args.slot, saved.saved_at)
        print(f'Resumed slot {args.slot} from {saved.saved_at}.')
    else:
        session.start(mode=mode, best_score=db_load_best_score(args.db, mode), time_limit=args.time_limit)

    if not args.play:
        assert session.state is not None
        print(render(session.state))
        print()
        for key, value in summarize(session.state).items():
            print(f'{key}: {value}')
        return

    _play(session, args.db, args.slot)


if __name__ == '__main__':
    main()
