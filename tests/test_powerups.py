import random
import unittest

from game import (
    PRIMARY_TYPES,
    AddPowerupResult,
    Board,
    Diagnostic,
    GameState,
    PowerupType,
    activate,
    add_powerup,
    catalog_entries,
    check_award,
    discard_powerup,
    earned_powerups,
    process_effects,
    replace_powerup,
)
from tiles_core.catalog import ActivePowerup
from tiles_core.effects import percent_of
from tiles_core.powerups import grant_awards
from tiles_core.state import Snapshot


def _state(rows=None, **kw):
    board = Board.from_values(rows) if rows is not None else Board.empty(5)
    kw.setdefault('next_tile_id', len(board.tiles()) + 1)
    return GameState(board=board, **kw)


class TestCatalog(unittest.TestCase):
    def test_given_catalog_when_inspected_then_flags_match_rules(self):
        self.assertEqual(len(PowerupType), 8)
        self.assertNotIn(PowerupType.BLOCKER_SHIELD, PRIMARY_TYPES)
        self.assertEqual(len(PRIMARY_TYPES), 7)
        self.assertEqual(PowerupType.TILE_FREEZE.default_duration, 5)
        self.assertEqual(PowerupType.BLOCKER_SHIELD.default_duration, 3)
        interactive = {p for p in PowerupType if p.is_interactive}
        self.assertEqual(interactive, {PowerupType.TILE_DESTROYER, PowerupType.ROW_CLEAR, PowerupType.COLUMN_CLEAR})
        self.assertEqual(len(catalog_entries()), 8)

    def test_given_spelling_variants_when_parsing_then_same_type(self):
        for text in ('row_clear', 'rowClear', 'ROW-CLEAR', 'row clear'):
            self.assertEqual(PowerupType.parse(text), PowerupType.ROW_CLEAR)
        self.assertIsNone(PowerupType.parse('teleport'))


class TestAwards(unittest.TestCase):
    def test_given_scores_when_counting_milestones_then_1000_then_every_2000(self):
        self.assertEqual(earned_powerups(0), 0)
        self.assertEqual(earned_powerups(999), 0)
        self.assertEqual(earned_powerups(1000), 1)
        self.assertEqual(earned_powerups(2999), 1)
        self.assertEqual(earned_powerups(3000), 2)
        self.assertEqual(earned_powerups(5000), 3)

    def test_given_several_milestones_owed_when_checking_then_distinct_types_drawn(self):
        picked = check_award(_state(score=5000), random.Random(4))
        self.assertEqual(len(picked), 3)
        self.assertEqual(len(set(picked)), 3)

    def test_given_types_already_seen_when_checking_then_never_drawn_again(self):
        seen = tuple(p for p in PRIMARY_TYPES if p != PowerupType.SHUFFLE_BOARD)
        state = _state(score=1000, used_powerup_types=seen)
        self.assertEqual(check_award(state, random.Random(0)), (PowerupType.SHUFFLE_BOARD,))

    def test_given_every_primary_type_seen_when_checking_then_nothing_drawn(self):
        state = _state(score=99999, used_powerup_types=PRIMARY_TYPES)
        self.assertEqual(check_award(state, random.Random(0)), ())

    def test_given_milestone_already_paid_when_checking_then_nothing_drawn(self):
        state = _state(score=2500, total_powerups_unlocked=1, available_powerups=(PowerupType.UNDO_MOVE,))
        self.assertEqual(check_award(state, random.Random(0)), ())

    def test_given_full_inventory_when_granting_then_award_parked_as_pending(self):
        held = (PowerupType.ROW_CLEAR, PowerupType.COLUMN_CLEAR, PowerupType.UNDO_MOVE)
        state = _state(available_powerups=held, total_powerups_unlocked=3)
        nxt, outcomes = grant_awards(state, (PowerupType.TILE_FREEZE,))
        self.assertEqual(outcomes[0].result, AddPowerupResult.INVENTORY_FULL)
        self.assertEqual(nxt.available_powerups, held)
        self.assertEqual(nxt.pending_powerups, (PowerupType.TILE_FREEZE,))
        self.assertEqual(nxt.total_powerups_unlocked, 4)


class TestInventory(unittest.TestCase):
    def test_given_room_when_adding_then_success_and_order_kept(self):
        state, res = add_powerup(_state(available_powerups=(PowerupType.ROW_CLEAR,)), PowerupType.UNDO_MOVE)
        self.assertEqual(res, AddPowerupResult.SUCCESS)
        self.assertEqual(state.available_powerups, (PowerupType.ROW_CLEAR, PowerupType.UNDO_MOVE))

    def test_given_duplicate_when_adding_then_already_exists_and_unchanged(self):
        before = _state(available_powerups=(PowerupType.ROW_CLEAR,))
        after, res = add_powerup(before, PowerupType.ROW_CLEAR)
        self.assertEqual(res, AddPowerupResult.ALREADY_EXISTS)
        self.assertIs(after, before)

    def test_given_three_held_when_adding_then_inventory_full(self):
        before = _state(available_powerups=(PowerupType.ROW_CLEAR, PowerupType.UNDO_MOVE, PowerupType.TILE_FREEZE))
        after, res = add_powerup(before, PowerupType.SHUFFLE_BOARD)
        self.assertEqual(res, AddPowerupResult.INVENTORY_FULL)
        self.assertIs(after, before)

    def test_given_pending_award_when_replacing_then_takes_old_slot(self):
        state = _state(
            available_powerups=(PowerupType.ROW_CLEAR, PowerupType.UNDO_MOVE, PowerupType.TILE_FREEZE),
            pending_powerups=(PowerupType.SHUFFLE_BOARD,),
        )
        nxt, diag = replace_powerup(state, PowerupType.UNDO_MOVE, PowerupType.SHUFFLE_BOARD)
        self.assertIsNone(diag)
        self.assertEqual(
            nxt.available_powerups, (PowerupType.ROW_CLEAR, PowerupType.SHUFFLE_BOARD, PowerupType.TILE_FREEZE),
        )
        self.assertEqual(nxt.pending_powerups, ())

    def test_given_type_not_pending_when_replacing_or_discarding_then_unavailable(self):
        state = _state(available_powerups=(PowerupType.ROW_CLEAR,))
        _, diag = replace_powerup(state, PowerupType.ROW_CLEAR, PowerupType.SHUFFLE_BOARD)
        self.assertEqual(diag, Diagnostic.POWERUP_UNAVAILABLE)
        _, diag = discard_powerup(state, PowerupType.SHUFFLE_BOARD)
        self.assertEqual(diag, Diagnostic.POWERUP_UNAVAILABLE)

    def test_given_pending_award_when_discarding_then_gone_but_still_counted_as_seen(self):
        state = _state(pending_powerups=(PowerupType.SHUFFLE_BOARD,), total_powerups_unlocked=4)
        nxt, diag = discard_powerup(state, PowerupType.SHUFFLE_BOARD)
        self.assertIsNone(diag)
        self.assertEqual(nxt.pending_powerups, ())
        self.assertEqual(nxt.total_powerups_unlocked, 4)
        others = tuple(p for p in PRIMARY_TYPES if p != PowerupType.SHUFFLE_BOARD)
        later = nxt.evolve(score=9000, used_powerup_types=others)
        self.assertEqual(check_award(later, random.Random(0)), ())

    def test_given_held_type_replaced_when_next_milestone_then_replaced_type_not_drawn(self):
        others = tuple(p for p in PRIMARY_TYPES if p not in (PowerupType.UNDO_MOVE, PowerupType.SHUFFLE_BOARD))
        state = _state(
            score=2999,
            available_powerups=(PowerupType.UNDO_MOVE,),
            pending_powerups=(PowerupType.SHUFFLE_BOARD,),
            used_powerup_types=others,
            total_powerups_unlocked=1,
        )
        nxt, diag = replace_powerup(state, PowerupType.UNDO_MOVE, PowerupType.SHUFFLE_BOARD)
        self.assertIsNone(diag)
        self.assertIn(PowerupType.UNDO_MOVE, nxt.unlocked_powerup_types)
        self.assertEqual(check_award(nxt.evolve(score=3000), random.Random(0)), ())

    def test_given_award_granted_then_discarded_when_granting_later_then_type_never_offered(self):
        held = (PowerupType.ROW_CLEAR, PowerupType.COLUMN_CLEAR, PowerupType.UNDO_MOVE)
        state = _state(score=1000, available_powerups=held, total_powerups_unlocked=3)
        state, _ = grant_awards(state, (PowerupType.TILE_FREEZE,))
        self.assertEqual(state.unlocked_powerup_types, (PowerupType.TILE_FREEZE,))
        state, _ = discard_powerup(state, PowerupType.TILE_FREEZE)
        self.assertTrue(state.is_ever_unlocked(PowerupType.TILE_FREEZE))
        for seed in range(20):
            self.assertNotIn(PowerupType.TILE_FREEZE, check_award(state.evolve(score=9000), random.Random(seed)))


class TestActivation(unittest.TestCase):
    def test_given_powerup_not_held_when_activating_then_unavailable(self):
        state = _state([[2, 0], [0, 0]])
        res = activate(state, PowerupType.VALUE_UPGRADE)
        self.assertEqual(res.diagnostic, Diagnostic.POWERUP_UNAVAILABLE)
        self.assertIs(res.state, state)

    def test_given_used_type_when_activating_again_then_unavailable(self):
        state = _state([[2, 0], [0, 0]], available_powerups=(PowerupType.VALUE_UPGRADE,))
        first = activate(state, PowerupType.VALUE_UPGRADE)
        self.assertTrue(first.applied)
        self.assertEqual(first.state.used_powerup_types, (PowerupType.VALUE_UPGRADE,))
        self.assertFalse(first.state.has_powerup(PowerupType.VALUE_UPGRADE))
        regranted = first.state.evolve(available_powerups=(PowerupType.VALUE_UPGRADE,))
        second = activate(regranted, PowerupType.VALUE_UPGRADE)
        self.assertEqual(second.diagnostic, Diagnostic.POWERUP_UNAVAILABLE)

    def test_given_continuous_type_when_activating_then_starts_with_default_duration(self):
        state = _state(available_powerups=(PowerupType.BLOCKER_SHIELD,))
        res = activate(state, PowerupType.BLOCKER_SHIELD)
        self.assertEqual(res.state.active_powerups, (ActivePowerup(PowerupType.BLOCKER_SHIELD, 3),))
        self.assertTrue(res.state.blocker_shield_active)
        self.assertTrue(res.state.is_powerup_used(PowerupType.BLOCKER_SHIELD))

    def test_given_active_effects_when_processing_then_tick_and_expire(self):
        state = _state(active_powerups=(
            ActivePowerup(PowerupType.TILE_FREEZE, 2),
            ActivePowerup(PowerupType.BLOCKER_SHIELD, 1),
        ))
        once = process_effects(state)
        self.assertEqual(once.active_powerups, (ActivePowerup(PowerupType.TILE_FREEZE, 1),))
        twice = process_effects(once)
        self.assertEqual(twice.active_powerups, ())
        self.assertIs(process_effects(twice), twice)


class TestEffects(unittest.TestCase):
    def test_given_halves_when_rounding_percent_then_half_up(self):
        self.assertEqual(percent_of(8, 10), 1)
        self.assertEqual(percent_of(4, 10), 0)
        self.assertEqual(percent_of(5, 10), 1)
        self.assertEqual(percent_of(16, 5), 1)
        self.assertEqual(percent_of(64, 10), 6)

    def test_given_tile_when_destroyed_then_removed_with_ten_percent_bonus(self):
        state = _state([[0, 0, 0], [0, 64, 0], [0, 0, 2]], available_powerups=(PowerupType.TILE_DESTROYER,))
        res = activate(state, PowerupType.TILE_DESTROYER, target=(1, 1))
        self.assertTrue(res.applied)
        self.assertIsNone(res.state.board.at(1, 1))
        self.assertEqual(res.state.score, 6)
        self.assertEqual(len(res.state.board.tiles()), 1)

    def test_given_off_board_target_when_destroying_then_invalid_target(self):
        state = _state([[2, 0], [0, 0]], available_powerups=(PowerupType.TILE_DESTROYER,))
        res = activate(state, PowerupType.TILE_DESTROYER, target=(5, 5))
        self.assertEqual(res.diagnostic, Diagnostic.INVALID_TARGET)
        self.assertTrue(res.state.has_powerup(PowerupType.TILE_DESTROYER))

    def test_given_row_when_cleared_then_every_tile_in_row_removed_with_five_percent(self):
        state = _state([[0, 0, 0], [64, 'B', 128], [2, 0, 0]], available_powerups=(PowerupType.ROW_CLEAR,))
        res = activate(state, PowerupType.ROW_CLEAR, target=(1, 2))
        self.assertTrue(res.applied)
        self.assertEqual(res.state.board.values()[1], (None, None, None))
        self.assertEqual(res.state.score, 3 + 6)
        self.assertEqual(res.state.board.values()[2], (2, None, None))

    def test_given_column_when_cleared_then_every_tile_in_column_removed(self):
        state = _state([[32, 0, 0], [64, 0, 0], [0, 2, 0]], available_powerups=(PowerupType.COLUMN_CLEAR,))
        res = activate(state, PowerupType.COLUMN_CLEAR, target=(2, 0))
        self.assertEqual([row[0] for row in res.state.board.values()], [None, None, None])
        self.assertEqual(res.state.score, 2 + 3)

    def test_given_empty_row_when_clearing_then_spent_for_no_bonus(self):
        state = _state([[2, 0, 0], [0, 0, 0], [0, 0, 0]], available_powerups=(PowerupType.ROW_CLEAR,))
        res = activate(state, PowerupType.ROW_CLEAR, target=(1, 0))
        self.assertTrue(res.applied)
        self.assertEqual(res.state.score, 0)
        self.assertEqual(res.state.board.values(), state.board.values())
        self.assertFalse(res.state.has_powerup(PowerupType.ROW_CLEAR))
        self.assertTrue(res.state.is_powerup_used(PowerupType.ROW_CLEAR))

    def test_given_empty_column_when_clearing_then_spent_for_no_bonus(self):
        state = _state([[2, 0, 0], [0, 0, 0], [0, 0, 0]], available_powerups=(PowerupType.COLUMN_CLEAR,))
        res = activate(state, PowerupType.COLUMN_CLEAR, target=(0, 2))
        self.assertTrue(res.applied)
        self.assertEqual(res.state.score, 0)
        self.assertEqual(res.state.used_powerup_types, (PowerupType.COLUMN_CLEAR,))

    def test_given_off_board_row_when_clearing_then_invalid_target_and_kept(self):
        state = _state([[2, 0, 0], [0, 0, 0], [0, 0, 0]], available_powerups=(PowerupType.ROW_CLEAR,))
        res = activate(state, PowerupType.ROW_CLEAR, target=(3, 0))
        self.assertEqual(res.diagnostic, Diagnostic.INVALID_TARGET)
        self.assertTrue(res.state.has_powerup(PowerupType.ROW_CLEAR))

    def test_given_interactive_type_without_target_when_activating_then_invalid_target(self):
        state = _state([[2, 0], [0, 0]], available_powerups=(PowerupType.COLUMN_CLEAR,))
        self.assertEqual(activate(state, PowerupType.COLUMN_CLEAR).diagnostic, Diagnostic.INVALID_TARGET)

    def test_given_mixed_board_when_upgrading_then_numbers_double_and_blockers_stay(self):
        state = _state([[64, 'B'], [2, 0]], available_powerups=(PowerupType.VALUE_UPGRADE,))
        res = activate(state, PowerupType.VALUE_UPGRADE)
        self.assertEqual(res.state.board.values(), ((128, 'B'), (4, None)))
        self.assertEqual(res.state.score, 6)

    def test_given_upgrade_reaching_win_value_when_applied_then_has_won(self):
        state = _state([[1024, 0], [0, 0]], available_powerups=(PowerupType.VALUE_UPGRADE,))
        res = activate(state, PowerupType.VALUE_UPGRADE)
        self.assertTrue(res.state.has_won)

    def test_given_tiles_when_shuffling_then_same_tiles_new_cells(self):
        state = _state([[2, 4, 8], [16, 'B', 0], [0, 0, 0]], available_powerups=(PowerupType.SHUFFLE_BOARD,))
        res = activate(state, PowerupType.SHUFFLE_BOARD, rng=random.Random(9))
        self.assertTrue(res.applied)
        before = sorted((t.id, t.value, t.is_blocker) for t in state.board.tiles())
        after = sorted((t.id, t.value, t.is_blocker) for t in res.state.board.tiles())
        self.assertEqual(before, after)
        for t in res.state.board.tiles():
            self.assertEqual(res.state.board.at(t.row, t.col), t)

    def test_given_empty_board_when_shuffling_then_empty_board_diagnostic(self):
        state = _state(available_powerups=(PowerupType.SHUFFLE_BOARD,))
        res = activate(state, PowerupType.SHUFFLE_BOARD, rng=random.Random(0))
        self.assertEqual(res.diagnostic, Diagnostic.EMPTY_BOARD)
        self.assertTrue(res.state.has_powerup(PowerupType.SHUFFLE_BOARD))

    def test_given_snapshot_when_undoing_then_board_and_score_restored_and_bookkeeping_kept(self):
        before = Board.from_values([[2, 2], [0, 0]])
        snap = Snapshot(board=before, score=10, has_won=False, is_game_over=False, moves_made=3, next_tile_id=3)
        state = _state(
            [[4, 0], [0, 2]],
            score=14,
            best_score=14,
            moves_made=4,
            next_tile_id=4,
            available_powerups=(PowerupType.UNDO_MOVE, PowerupType.ROW_CLEAR),
            used_powerup_types=(PowerupType.TILE_FREEZE,),
            active_powerups=(ActivePowerup(PowerupType.TILE_FREEZE, 2),),
            total_powerups_unlocked=3,
        )
        res = activate(state, PowerupType.UNDO_MOVE, snapshot=snap)
        self.assertTrue(res.applied)
        self.assertTrue(res.consumed_snapshot)
        out = res.state
        self.assertEqual(out.board, before)
        self.assertEqual(out.score, 10)
        self.assertEqual(out.best_score, 14)
        self.assertEqual(out.moves_made, 3)
        self.assertEqual(out.next_tile_id, 4)
        self.assertEqual(out.active_powerups, ())
        self.assertEqual(out.available_powerups, (PowerupType.ROW_CLEAR,))
        self.assertEqual(out.used_powerup_types, (PowerupType.TILE_FREEZE, PowerupType.UNDO_MOVE))
        self.assertEqual(out.total_powerups_unlocked, 3)

    def test_given_no_snapshot_when_undoing_then_undo_unavailable_and_kept(self):
        state = _state([[2, 0], [0, 0]], available_powerups=(PowerupType.UNDO_MOVE,))
        res = activate(state, PowerupType.UNDO_MOVE)
        self.assertEqual(res.diagnostic, Diagnostic.UNDO_UNAVAILABLE)
        self.assertFalse(res.consumed_snapshot)
        self.assertTrue(res.state.has_powerup(PowerupType.UNDO_MOVE))


if __name__ == '__main__':
    unittest.main(verbosity=2)
