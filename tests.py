#!/usr/bin/env python3
"""
Scratch-Card Engine - Unit Test Suite

Run: python -m pytest tests.py
     python tests.py -v          # verbose
     python tests.py TestGrid    # run specific class

Test categories:
  TestRandomStream    - seed derivation, shuffle, determinism
  TestFilling         - unique / capped / weighted near-miss fills
  TestSchema          - project parsing, discriminated game modules
  TestGridGeneration  - symbol and prize grids, win downgrade
  TestRowGeneration   - winning row placement, losing rows
  TestFindSymbol      - FindWinningSymbol and ChristmasTree
  TestSymbolToPrize   - reserved winning symbols across modules
  TestDispatch        - generator registry and error tagging
"""

import sys
import unittest
from collections import Counter
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from scratch_config.card_schema import (
    CardProject,
    ChristmasTreeModule,
    FindWinningSymbolModule,
    GameModuleBase,
    JobSettings,
    MatchPrizesInGridModule,
    MatchPrizesInRowModule,
    MatchSymbolToPrizeModule,
    MatchSymbolsInGridModule,
    MatchSymbolsInRowModule,
    NearMissWeighting,
    OnlineBonusModule,
    PrizeTier,
    Symbol,
    Ticket,
)
from scratch_engine import GAME_GENERATORS, GAME_TYPES, generate_play_data, get_generator
from scratch_engine.errors import InsufficientVarietyError
from scratch_engine.filling import (
    count_near_miss_sets,
    fill_allowing_near_miss,
    fill_unique,
    fill_weighted_near_misses,
    near_miss_weights,
)
from scratch_engine.rng import RandomStream, derive_seed


# ============================================================
# Shared fixtures
# ============================================================

def make_project(**settings) -> CardProject:
    """A small but complete job: every module variant, one online prize."""
    job = dict(job_code="TEST01", job_name="Test Job", cards_per_pack=20, no_com_pack=2)
    job.update(settings)
    prizes = [
        PrizeTier(id=1, value=0, display_text="Loser", text_code="LOSER"),
        PrizeTier(id=2, value=1, display_text="£1", text_code="ONE", lvw_winner_count=3),
        PrizeTier(id=3, value=2, display_text="£2", text_code="TWO", lvw_winner_count=2),
        PrizeTier(id=4, value=5, display_text="£5", text_code="FIVE", lvw_winner_count=1),
        PrizeTier(id=5, value=10, display_text="£10", text_code="TEN", lvw_winner_count=1),
        PrizeTier(id=6, value=50, display_text="£50", text_code="FIFTY", hvw_winner_count=2),
        PrizeTier(id=7, value=1000, display_text="£1000", text_code="THOUSAND", hvw_winner_count=1),
        PrizeTier(id=8, value=20, display_text="£20 online", text_code="ONLINE",
                  lvw_winner_count=1, is_online_prize=True),
    ]
    symbols = [
        Symbol(id=i, display_text=name)
        for i, name in enumerate(
            ["Star", "Bell", "Tree", "Gift", "Holly", "Sleigh",
             "Candle", "Snowman", "Angel", "Robin", "Cracker", "Thousand"], start=1)
    ]
    numeric = [
        Symbol(id=100 + i, display_text=name)
        for i, name in enumerate(
            ["One", "Two", "Five", "Ten", "Fifty", "Three", "Seven", "Eight", "Nine"], start=1)
    ]
    modules = [
        MatchSymbolsInGridModule(game_number=1, rows=3, columns=3, items_to_match=3),
        MatchPrizesInGridModule(game_number=2, rows=2, columns=3, items_to_match=3),
        MatchSymbolsInRowModule(game_number=3, number_of_rows=3, items_per_row=3, items_to_match=3),
        MatchPrizesInRowModule(game_number=4, number_of_rows=2, items_per_row=3, items_to_match=3),
        FindWinningSymbolModule(game_number=5, winning_symbol_id=3, number_of_symbols=6),
        ChristmasTreeModule(game_number=6, winning_symbol_id=4),
        MatchSymbolToPrizeModule(game_number=7, winning_symbol_id=104, number_of_symbols=6),
        OnlineBonusModule(game_number=8, url="https://example.com/bonus"),
    ]
    return CardProject(
        settings=JobSettings(**job),
        prize_tiers=prizes,
        available_symbols=symbols,
        numeric_symbols=numeric,
        game_modules=modules,
    )


def prize(project: CardProject, text_code: str) -> PrizeTier:
    return next(p for p in project.prize_tiers if p.text_code == text_code)


def play(module, project, rng, win_tier=None, ticket=None):
    """Generate one module's panel; a win_tier makes it the winning module."""
    ticket = ticket or Ticket(win_prize=win_tier or prize(project, "LOSER"))
    return generate_play_data(module, ticket, win_tier is not None, win_tier, project, rng)


# ============================================================
# Random Stream Tests
# ============================================================

class TestRandomStream(unittest.TestCase):

    def test_derive_seed_is_deterministic(self):
        self.assertEqual(derive_seed(42, "lvw", 0), derive_seed(42, "lvw", 0))
        self.assertNotEqual(derive_seed(42, "lvw", 0), derive_seed(42, "lvw", 1))
        self.assertNotEqual(derive_seed(42, "lvw"), derive_seed(43, "lvw"))

    def test_same_seed_same_sequence(self):
        a, b = RandomStream(7), RandomStream(7)
        self.assertEqual([a.next_int(100) for _ in range(50)], [b.next_int(100) for _ in range(50)])

    def test_next_int_range(self):
        rng = RandomStream(1)
        values = {rng.next_int(5) for _ in range(500)}
        self.assertEqual(values, {0, 1, 2, 3, 4})

    def test_shuffle_is_permutation_in_place(self):
        rng = RandomStream(3)
        items = list(range(20))
        result = rng.shuffle(items)
        self.assertIs(result, items)
        self.assertEqual(sorted(items), list(range(20)))

    def test_shuffled_leaves_input_untouched(self):
        rng = RandomStream(3)
        items = (1, 2, 3, 4)
        self.assertEqual(sorted(rng.shuffled(items)), [1, 2, 3, 4])
        self.assertEqual(items, (1, 2, 3, 4))


# ============================================================
# Panel-Filling Tests
# ============================================================

class TestFilling(unittest.TestCase):

    def test_fill_unique_distinct(self):
        rng = RandomStream(11)
        for _ in range(50):
            panel = fill_unique(6, [1, 2, 3, 4, 5, 6, 7, 8], rng)
            self.assertEqual(len(panel), 6)
            self.assertEqual(len(set(panel)), 6)

    def test_fill_unique_counts_distinct_values_only(self):
        with self.assertRaises(InsufficientVarietyError):
            fill_unique(3, [1, 1, 2, 2], RandomStream(0))

    def test_fill_unique_zero_slots(self):
        self.assertEqual(fill_unique(0, [1, 2], RandomStream(0)), [])

    def test_fill_allowing_near_miss_caps_repeats(self):
        rng = RandomStream(5)
        for _ in range(100):
            panel = fill_allowing_near_miss(8, [1, 2, 3, 4], 3, rng)
            self.assertEqual(len(panel), 8)
            self.assertLessEqual(max(Counter(panel).values()), 2)

    def test_fill_allowing_near_miss_raises(self):
        with self.assertRaises(InsufficientVarietyError):
            fill_allowing_near_miss(9, [1, 2, 3, 4], 3, RandomStream(0))

    def test_near_miss_weights(self):
        self.assertEqual(near_miss_weights(3, NearMissWeighting.LOW), [1, 1, 1, 2, 2, 3])
        self.assertEqual(near_miss_weights(3, NearMissWeighting.BALANCED), [1, 2, 3])
        self.assertEqual(near_miss_weights(3, NearMissWeighting.HIGH), [1, 2, 2, 3, 3, 3])

    def test_weighted_fill_never_wins(self):
        rng = RandomStream(99)
        for _ in range(300):
            panel = fill_weighted_near_misses(9, list(range(1, 11)), 3, rng,
                                              favour_high_value=True, valuation=lambda i: i)
            self.assertEqual(len(panel), 9)
            self.assertLessEqual(max(Counter(panel).values()), 2)

    def test_weighted_fill_falls_back_when_decoys_run_out(self):
        rng = RandomStream(4)
        for _ in range(100):
            panel = fill_weighted_near_misses(9, [1, 2, 3, 4, 5], 3, rng)
            self.assertEqual(len(panel), 9)
            self.assertLessEqual(max(Counter(panel).values()), 2)

    def test_high_weighting_gives_more_near_misses_than_low(self):
        pool = list(range(1, 11))

        def mean_sets(weighting, seed):
            rng = RandomStream(seed)
            total = sum(
                count_near_miss_sets(fill_weighted_near_misses(9, pool, 3, rng, weighting=weighting), 3)
                for _ in range(500)
            )
            return total / 500

        self.assertGreater(mean_sets(NearMissWeighting.HIGH, 1), mean_sets(NearMissWeighting.LOW, 1))

    def test_favouring_high_value_leads_with_top_quarter_more_often(self):
        pool = list(range(1, 13))
        top_quarter = {10, 11, 12}

        def top_near_miss_rate(favour, seed):
            rng = RandomStream(seed)
            hits = 0
            for _ in range(2000):
                panel = fill_weighted_near_misses(9, pool, 3, rng, favour_high_value=favour,
                                                  valuation=lambda i: i)
                near_misses = {item for item, n in Counter(panel).items() if n == 2}
                hits += bool(near_misses & top_quarter)
            return hits / 2000

        self.assertGreater(top_near_miss_rate(True, 2), top_near_miss_rate(False, 2) + 0.03)

    def test_match_two_weighted_fill_is_unique(self):
        rng = RandomStream(8)
        panel = fill_weighted_near_misses(4, [1, 2, 3, 4, 5], 2, rng)
        self.assertEqual(len(set(panel)), 4)


# ============================================================
# Schema Tests
# ============================================================

class TestSchema(unittest.TestCase):

    def test_modules_round_trip_through_json(self):
        project = make_project()
        loaded = CardProject.model_validate_json(project.model_dump_json())
        self.assertEqual(
            [type(m) for m in loaded.game_modules],
            [type(m) for m in project.game_modules],
        )
        self.assertEqual(loaded.game_modules[5].number_of_symbols, 15)

    def test_duplicate_game_numbers_rejected(self):
        with self.assertRaises(ValidationError):
            CardProject(game_modules=[
                MatchSymbolsInGridModule(game_number=1),
                OnlineBonusModule(game_number=1),
            ])

    def test_symbol_name_links_to_text_code(self):
        project = make_project()
        symbol = Symbol(id=1, display_text="Ten")
        self.assertEqual(symbol.name, "TEN")
        self.assertEqual(project.linked_prize(symbol).id, 5)
        self.assertIsNone(project.linked_prize(Symbol(id=2, display_text="Online")))

    def test_prize_index_matches_online_flag(self):
        project = make_project()
        self.assertEqual(project.prize_index(20, True), 7)
        self.assertEqual(project.prize_index(20, False), -1)
        self.assertEqual(project.prize_index_by_id(6), 5)


# ============================================================
# Grid Generation Tests
# ============================================================

class TestGridGeneration(unittest.TestCase):

    def setUp(self):
        self.project = make_project()
        self.module = self.project.module_by_number(1)

    def test_winning_symbol_grid(self):
        rng = RandomStream(21)
        for _ in range(50):
            data = play(self.module, self.project, rng, win_tier=prize(self.project, "TWO"))
            counts = Counter(data.generated_symbol_ids)
            self.assertEqual(len(data.generated_symbol_ids), 9)
            self.assertEqual(sorted(counts.values()), [1, 1, 1, 1, 1, 1, 3])
            self.assertEqual(data.prize_tier_index, 2)

    def test_losing_symbol_grid_never_wins_or_shows_top_symbol(self):
        rng = RandomStream(22)
        for _ in range(200):
            data = play(self.module, self.project, rng)
            self.assertEqual(len(data.generated_symbol_ids), 9)
            self.assertLessEqual(max(Counter(data.generated_symbol_ids).values()), 2)
            self.assertNotIn(12, data.generated_symbol_ids)
            self.assertEqual(data.prize_tier_index, -1)

    def test_losing_panel_on_winning_ticket_is_unique(self):
        rng = RandomStream(23)
        ticket = Ticket(win_prize=prize(self.project, "FIVE"))
        for _ in range(20):
            data = generate_play_data(self.module, ticket, False, ticket.win_prize, self.project, rng)
            self.assertEqual(len(set(data.generated_symbol_ids)), 9)

    def test_match_two_losing_grid_is_unique(self):
        module = MatchSymbolsInGridModule(game_number=1, rows=2, columns=3, items_to_match=2)
        rng = RandomStream(26)
        for _ in range(100):
            data = play(module, self.project, rng)
            self.assertEqual(len(data.generated_symbol_ids), 6)
            self.assertEqual(len(set(data.generated_symbol_ids)), 6)

    def test_winning_prize_grid(self):
        module = self.project.module_by_number(2)
        rng = RandomStream(24)
        data = play(module, self.project, rng, win_tier=prize(self.project, "FIVE"))
        counts = Counter(data.generated_symbol_ids)
        self.assertEqual(counts[3], 3)
        self.assertEqual(data.prize_tier_index, 3)
        for item in data.generated_symbol_ids:
            self.assertFalse(self.project.prize_tiers[item].is_online_prize)

    def test_unknown_prize_downgrades_prize_grid(self):
        module = self.project.module_by_number(2)
        stray = PrizeTier(id=99, value=777)
        data = play(module, self.project, RandomStream(25), win_tier=stray)
        self.assertEqual(data.prize_tier_index, -1)
        self.assertEqual(len(data.generated_symbol_ids), 6)

    def test_small_pool_raises_insufficient_variety(self):
        project = make_project()
        project.available_symbols = [Symbol(id=i, display_text=f"S{i}") for i in range(1, 6)]
        module = MatchSymbolsInGridModule(game_number=1, rows=3, columns=3, items_to_match=3)
        with self.assertRaises(InsufficientVarietyError) as ctx:
            play(module, project, RandomStream(1), win_tier=prize(project, "ONE"))
        self.assertEqual(ctx.exception.game_number, 1)

    def test_empty_pool_is_empty_record(self):
        project = make_project()
        project.available_symbols = []
        data = play(self.module, project, RandomStream(1))
        self.assertEqual(data.generated_symbol_ids, [])
        self.assertEqual(data.game_number, 1)


# ============================================================
# Row Generation Tests
# ============================================================

class TestRowGeneration(unittest.TestCase):

    def setUp(self):
        self.project = make_project()
        self.module = self.project.module_by_number(3)

    def rows(self, ids):
        return [ids[i:i + 3] for i in range(0, len(ids), 3)]

    def test_exactly_one_winning_row(self):
        rng = RandomStream(31)
        for _ in range(50):
            data = play(self.module, self.project, rng, win_tier=prize(self.project, "ONE"))
            winning_rows = [r for r in self.rows(data.generated_symbol_ids) if len(set(r)) == 1]
            self.assertEqual(len(data.generated_symbol_ids), 9)
            self.assertEqual(len(winning_rows), 1)
            self.assertEqual(data.prize_tier_index, 1)

    def test_losing_rows_never_complete(self):
        rng = RandomStream(32)
        for _ in range(200):
            data = play(self.module, self.project, rng)
            for row in self.rows(data.generated_symbol_ids):
                self.assertLessEqual(max(Counter(row).values()), 2)

    def test_losing_rows_on_winning_ticket_are_unique(self):
        rng = RandomStream(34)
        ticket = Ticket(win_prize=prize(self.project, "FIVE"))
        for _ in range(100):
            data = generate_play_data(self.module, ticket, False, ticket.win_prize, self.project, rng)
            for row in self.rows(data.generated_symbol_ids):
                self.assertEqual(len(set(row)), 3)

    def test_prize_rows(self):
        module = self.project.module_by_number(4)
        data = play(module, self.project, RandomStream(33), win_tier=prize(self.project, "FIFTY"))
        self.assertEqual(len(data.generated_symbol_ids), 6)
        self.assertIn([5, 5, 5], self.rows(data.generated_symbol_ids))
        self.assertEqual(data.prize_tier_index, 5)


# ============================================================
# Find-Symbol Tests
# ============================================================

class TestFindSymbol(unittest.TestCase):

    def make(self):
        project = make_project()
        project.available_symbols = [Symbol(id=i, display_text=f"S{i}") for i in (7, 8, 9, 10)]
        module = FindWinningSymbolModule(game_number=1, winning_symbol_id=7, number_of_symbols=6)
        project.game_modules = [module]
        return project, module

    def test_losing_panel_never_contains_winning_symbol(self):
        project, module = self.make()
        rng = RandomStream(41)
        for _ in range(200):
            data = play(module, project, rng)
            self.assertEqual(len(data.generated_symbol_ids), 6)
            self.assertNotIn(7, data.generated_symbol_ids)

    def test_winning_panel_contains_it_once(self):
        project, module = self.make()
        data = play(module, project, RandomStream(42), win_tier=prize(project, "TWO"))
        self.assertEqual(data.generated_symbol_ids.count(7), 1)
        self.assertEqual(data.prize_tier_index, 2)

    def test_only_winning_symbol_downgrades(self):
        project, module = self.make()
        project.available_symbols = [Symbol(id=7, display_text="S7")]
        data = play(module, project, RandomStream(43), win_tier=prize(project, "TWO"))
        self.assertEqual(data.generated_symbol_ids, [])
        self.assertEqual(data.prize_tier_index, -1)

    def test_christmas_tree_uses_row_layout(self):
        project = make_project()
        module = project.module_by_number(6)
        data = play(module, project, RandomStream(44))
        self.assertEqual(len(data.generated_symbol_ids), 15)
        self.assertNotIn(4, data.generated_symbol_ids)


# ============================================================
# Match Symbol To Prize Tests
# ============================================================

class TestSymbolToPrize(unittest.TestCase):

    def make(self):
        project = make_project()
        project.numeric_symbols = [Symbol(id=i, display_text=f"N{i}") for i in range(1, 11)]
        project.numeric_symbols[4] = Symbol(id=5, display_text="Ten")
        first = MatchSymbolToPrizeModule(game_number=1, winning_symbol_id=5, number_of_symbols=6)
        second = MatchSymbolToPrizeModule(game_number=2, winning_symbol_id=9, number_of_symbols=6)
        project.game_modules = [first, second]
        return project, first, second

    def test_losing_panels_avoid_every_winning_symbol(self):
        project, first, second = self.make()
        rng = RandomStream(51)
        for _ in range(200):
            for module in (first, second):
                data = play(module, project, rng)
                self.assertEqual(len(data.generated_symbol_ids), 6)
                self.assertNotIn(5, data.generated_symbol_ids)
                self.assertNotIn(9, data.generated_symbol_ids)

    def test_winning_panel_shows_own_symbol_only(self):
        project, first, _ = self.make()
        rng = RandomStream(52)
        for _ in range(50):
            data = play(first, project, rng, win_tier=prize(project, "TEN"))
            self.assertEqual(data.generated_symbol_ids.count(5), 1)
            self.assertNotIn(9, data.generated_symbol_ids)
            self.assertEqual(data.prize_tier_index, project.prize_index_by_id(5))

    def test_unlinked_prize_downgrades(self):
        project, first, _ = self.make()
        data = play(first, project, RandomStream(53), win_tier=prize(project, "FIFTY"))
        self.assertEqual(data.prize_tier_index, -1)
        self.assertNotIn(5, data.generated_symbol_ids)

    def test_no_numeric_symbols_is_empty_record(self):
        project, first, _ = self.make()
        project.numeric_symbols = []
        data = play(first, project, RandomStream(54), win_tier=prize(project, "TEN"))
        self.assertEqual(data.generated_symbol_ids, [])
        self.assertEqual(data.prize_tier_index, -1)


# ============================================================
# Dispatch Tests
# ============================================================

class MysteryModule(GameModuleBase):
    """A module type with no generator or win rule."""


class TestDispatch(unittest.TestCase):

    def test_every_variant_registered(self):
        registered = {cls.model_fields["game_type"].default for cls in GAME_GENERATORS}
        self.assertEqual(registered, set(GAME_TYPES))
        for module in make_project().game_modules:
            self.assertTrue(callable(get_generator(module)))

    def test_unknown_module_raises(self):
        with self.assertRaises(ValueError):
            get_generator(MysteryModule(game_number=9))

    def test_play_data_appended_to_ticket(self):
        project = make_project()
        ticket = Ticket(win_prize=prize(project, "LOSER"))
        rng = RandomStream(61)
        for module in project.game_modules:
            generate_play_data(module, ticket, False, ticket.win_prize, project, rng)
        self.assertEqual([pd.game_number for pd in ticket.game_data], list(range(1, 9)))
        self.assertTrue(all(pd.prize_tier_index == -1 for pd in ticket.game_data))

    def test_online_bonus_panel_is_empty(self):
        project = make_project()
        module = project.module_by_number(8)
        data = play(module, project, RandomStream(62), win_tier=prize(project, "ONLINE"))
        self.assertEqual(data.generated_symbol_ids, [])
        self.assertEqual(data.prize_tier_index, 7)

    def test_same_seed_same_panels(self):
        project = make_project()
        first = [play(m, project, RandomStream(63)).generated_symbol_ids for m in project.game_modules]
        second = [play(m, project, RandomStream(63)).generated_symbol_ids for m in project.game_modules]
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
