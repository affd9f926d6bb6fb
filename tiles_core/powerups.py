from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .board import Coord
from .catalog import PRIMARY_TYPES, ActivePowerup, PowerupType
from .config import DEFAULT_CONFIG, GameConfig
from .effects import RESOLVERS, EffectContext
from .results import AddPowerupResult, Diagnostic
from .state import GameState, Snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwardOutcome:
    type: PowerupType
    result: AddPowerupResult


@dataclass(frozen=True)
class ActivationResult:
    state: GameState
    diagnostic: Optional[Diagnostic] = None
    consumed_snapshot: bool = False  # an undo was applied; the caller drops its history

    @property
    def applied(self) -> bool:
        return self.diagnostic is None


def earned_powerups(score: int, config: GameConfig = DEFAULT_CONFIG) -> int:
    """Milestones reached: first at 1000, then one more every 2000 (1000, 3000, 5000, ...)."""
    if score < config.first_award_score:
        return 0
    return 1 + (score - config.first_award_score) // config.award_interval


def check_award(state: GameState, rng: random.Random, config: GameConfig = DEFAULT_CONFIG) -> Tuple[PowerupType, ...]:
    """Draws the powerups owed for the current score from primary types not yet seen this game."""
    earned = earned_powerups(state.score, config)
    owed = earned - state.total_powerups_unlocked
    if owed <= 0:
        return ()
    candidates = [p for p in PRIMARY_TYPES if not state.is_ever_unlocked(p)]
    picked = tuple(rng.sample(candidates, min(owed, len(candidates))))
    logger.debug(
        'award check: score=%d earned=%d unlocked=%d picked=%s',
        state.score, earned, state.total_powerups_unlocked, [p.value for p in picked],
    )
    return picked


def _mark_unlocked(state: GameState, ptype: PowerupType) -> GameState:
    if ptype in state.unlocked_powerup_types:
        return state
    return state.evolve(unlocked_powerup_types=state.unlocked_powerup_types + (ptype,))


def add_powerup(state: GameState, ptype: PowerupType, config: GameConfig = DEFAULT_CONFIG) -> Tuple[GameState, AddPowerupResult]:
    """Puts a powerup in the inventory. A full inventory or a duplicate leaves the state untouched."""
    if len(state.available_powerups) >= config.max_inventory:
        logger.warning('inventory full (%d), cannot add %s', len(state.available_powerups), ptype.value)
        return state, AddPowerupResult.INVENTORY_FULL
    if state.has_powerup(ptype):
        logger.warning('%s already in inventory', ptype.value)
        return state, AddPowerupResult.ALREADY_EXISTS
    nxt = _mark_unlocked(state, ptype).evolve(
        available_powerups=state.available_powerups + (ptype,),
        pending_powerups=tuple(p for p in state.pending_powerups if p != ptype),
    )
    logger.debug('added %s, inventory %d', ptype.value, len(nxt.available_powerups))
    return nxt, AddPowerupResult.SUCCESS


def grant_awards(
    state: GameState,
    awards: Tuple[PowerupType, ...],
    config: GameConfig = DEFAULT_CONFIG,
) -> Tuple[GameState, Tuple[AwardOutcome, ...]]:
    """
    Counts each award as unlocked and tries to stock it.
    Awards that meet a full inventory are parked in pending_powerups so the host can
    ask the player to replace or discard.
    """
    outcomes: List[AwardOutcome] = []
    for ptype in awards:
        state = _mark_unlocked(state, ptype).evolve(total_powerups_unlocked=state.total_powerups_unlocked + 1)
        state, result = add_powerup(state, ptype, config)
        if result == AddPowerupResult.INVENTORY_FULL and ptype not in state.pending_powerups:
            state = state.evolve(pending_powerups=state.pending_powerups + (ptype,))
        outcomes.append(AwardOutcome(type=ptype, result=result))
    return state, tuple(outcomes)


def replace_powerup(state: GameState, old: PowerupType, new: PowerupType) -> Tuple[GameState, Optional[Diagnostic]]:
    """Swaps a held powerup for a pending award, keeping the old one's slot."""
    if new not in state.pending_powerups:
        logger.warning('%s is not waiting for a slot', new.value)
        return state, Diagnostic.POWERUP_UNAVAILABLE
    if not state.has_powerup(old):
        logger.warning('cannot replace %s, it is not held', old.value)
        return state, Diagnostic.POWERUP_UNAVAILABLE
    if state.has_powerup(new):
        return state, Diagnostic.ALREADY_EXISTS
    available = tuple(new if p == old else p for p in state.available_powerups)
    pending = tuple(p for p in state.pending_powerups if p != new)
    logger.info('replaced %s with %s', old.value, new.value)
    state = _mark_unlocked(_mark_unlocked(state, old), new)
    return state.evolve(available_powerups=available, pending_powerups=pending), None


def discard_powerup(state: GameState, ptype: PowerupType) -> Tuple[GameState, Optional[Diagnostic]]:
    """Drops a pending award for good. The type stays unlocked, so it is never drawn again."""
    if ptype not in state.pending_powerups:
        logger.warning('%s is not pending, nothing to discard', ptype.value)
        return state, Diagnostic.POWERUP_UNAVAILABLE
    logger.info('discarded pending %s', ptype.value)
    state = _mark_unlocked(state, ptype)
    return state.evolve(pending_powerups=tuple(p for p in state.pending_powerups if p != ptype)), None


def _mark_used(state: GameState, ptype: PowerupType) -> GameState:
    return state.evolve(
        available_powerups=tuple(p for p in state.available_powerups if p != ptype),
        used_powerup_types=state.used_powerup_types + (ptype,),
    )


def activate(
    state: GameState,
    ptype: PowerupType,
    target: Optional[Coord] = None,
    snapshot: Optional[Snapshot] = None,
    rng: Optional[random.Random] = None,
    config: GameConfig = DEFAULT_CONFIG,
) -> ActivationResult:
    """
    Spends a held powerup. Each type works once per game.

    Instant types resolve immediately. Continuous types start ticking with their default
    duration. A rejected effect (bad target, nothing to undo) does not spend the powerup.
    """
    if not state.has_powerup(ptype) or state.is_powerup_used(ptype):
        logger.warning(
            '%s unavailable (held=%s, used=%s)', ptype.value, state.has_powerup(ptype), state.is_powerup_used(ptype),
        )
        return ActivationResult(state=state, diagnostic=Diagnostic.POWERUP_UNAVAILABLE)

    if ptype.is_continuous:
        nxt = _mark_used(state, ptype)
        nxt = nxt.evolve(active_powerups=nxt.active_powerups + (ActivePowerup(ptype, ptype.default_duration),))
        logger.info('%s active for %d moves', ptype.value, ptype.default_duration)
        return ActivationResult(state=nxt)

    ctx = EffectContext(config=config, rng=rng, target=target, snapshot=snapshot)
    effect = RESOLVERS[ptype](state, ctx)
    if not effect.applied:
        return ActivationResult(state=state, diagnostic=effect.diagnostic)
    logger.info('%s applied, score %d -> %d', ptype.value, state.score, effect.state.score)
    return ActivationResult(
        state=_mark_used(effect.state, ptype),
        consumed_snapshot=ptype == PowerupType.UNDO_MOVE,
    )


def process_effects(state: GameState) -> GameState:
    """Ticks every running effect by one move and drops the ones that ran out."""
    if not state.active_powerups:
        return state
    remaining: List[ActivePowerup] = []
    for entry in state.active_powerups:
        ticked = entry.ticked()
        if ticked.moves_remaining > 0:
            remaining.append(ticked)
        else:
            logger.debug('%s expired', entry.type.value)
    return state.evolve(active_powerups=tuple(remaining))
