#!/usr/bin/env python3
"""
Tests for the win validator

Validates:
1. Losing tickets always pass
2. Each variant's win rule (find-symbol, row, grid, online)
3. Missing, duplicate and unknown winning entries are reported
4. Variants with no rule fail closed
5. validate() is pure and repeatable
6. Losing-panel audit catches accidental wins
7. ValidationReport serialises like the other reports
"""

import json
import sys
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from scratch_config.card_schema import GamePlayData, Ticket
from scratch_tools.win_validator import (
    ViolationKind,
    audit_losing_panels,
    panel_is_winning,
    validate,
    validate_tickets,
)
from tests import MysteryModule, make_project, prize


def winning_ticket(project, text_code, game_number, ids, index=None):
    tier = prize(project, text_code)
    if index is None:
        index = project.prize_index(tier.value, tier.is_online_prize)
    return Ticket(win_prize=tier, game_data=[
        GamePlayData(game_number=game_number, generated_symbol_ids=ids, prize_tier_index=index),
    ])


def kinds(violations):
    return [v.kind for v in violations]


def test_losing_ticket_always_passes():
    project = make_project()
    ticket = Ticket(win_prize=prize(project, "LOSER"), game_data=[
        GamePlayData(game_number=1, generated_symbol_ids=[1, 1, 1, 2, 3, 4, 5, 6, 7]),
    ])
    assert validate(ticket, project) == []


def test_grid_win_rule():
    project = make_project()
    good = winning_ticket(project, "ONE", 1, [2, 5, 2, 7, 8, 2, 9, 1, 3])
    bad = winning_ticket(project, "ONE", 1, [2, 5, 2, 7, 8, 4, 9, 1, 3])
    assert validate(good, project) == []
    assert kinds(validate(bad, project)) == [ViolationKind.PANEL_NOT_WINNING]


def test_row_win_rule_checks_each_row():
    project = make_project()
    good = winning_ticket(project, "ONE", 3, [1, 2, 3, 4, 4, 4, 5, 6, 7])
    # three 4s in total but split across rows
    split = winning_ticket(project, "ONE", 3, [1, 4, 3, 4, 2, 5, 4, 6, 7])
    assert validate(good, project) == []
    assert kinds(validate(split, project)) == [ViolationKind.PANEL_NOT_WINNING]


def test_find_symbol_rules():
    project = make_project()
    # FindWinningSymbol game 5 wins on symbol 3, ChristmasTree game 6 on 4
    assert validate(winning_ticket(project, "TWO", 5, [1, 3, 5, 6, 7, 8]), project) == []
    assert kinds(validate(winning_ticket(project, "TWO", 6, [1, 2, 3]), project)) == [
        ViolationKind.PANEL_NOT_WINNING
    ]
    # MatchSymbolToPrize game 7 wins on 104
    tier = prize(project, "TEN")
    ticket = winning_ticket(project, "TEN", 7, [101, 104, 102], index=project.prize_index_by_id(tier.id))
    assert validate(ticket, project) == []


def test_online_bonus_always_passes():
    project = make_project()
    ticket = winning_ticket(project, "ONLINE", 8, [])
    assert validate(ticket, project) == []


def test_missing_winning_entry():
    project = make_project()
    ticket = Ticket(win_prize=prize(project, "FIVE"), game_data=[
        GamePlayData(game_number=1, generated_symbol_ids=[1, 2, 3]),
    ])
    assert kinds(validate(ticket, project)) == [ViolationKind.MISSING_WINNING_ENTRY]


def test_unknown_game_module():
    project = make_project()
    ticket = winning_ticket(project, "FIVE", 42, [1, 1, 1])
    violations = validate(ticket, project, ticket_index=3)
    assert kinds(violations) == [ViolationKind.UNKNOWN_GAME_MODULE]
    assert violations[0].ticket_index == 3
    assert violations[0].game_number == 42


def test_unimplemented_variant_fails_closed():
    project = make_project()
    project.game_modules.append(MysteryModule(game_number=99))
    ticket = winning_ticket(project, "FIVE", 99, [1, 1, 1])
    assert panel_is_winning(project.module_by_number(99), ticket.game_data[0]) is None
    assert kinds(validate(ticket, project)) == [ViolationKind.UNIMPLEMENTED_VARIANT]


def test_multiple_winning_entries():
    project = make_project()
    ticket = winning_ticket(project, "ONE", 1, [2, 2, 2, 3, 4, 5, 6, 7, 8])
    ticket.game_data.append(GamePlayData(game_number=8, prize_tier_index=1))
    assert kinds(validate(ticket, project)) == [ViolationKind.MULTIPLE_WINNING_ENTRIES]


def test_validate_is_repeatable_and_pure():
    project = make_project()
    ticket = winning_ticket(project, "ONE", 1, [2, 5, 2, 7, 8, 4, 9, 1, 3])
    before = ticket.model_dump()
    first = validate(ticket, project)
    second = validate(ticket, project)
    assert [v.to_dict() for v in first] == [v.to_dict() for v in second]
    assert ticket.model_dump() == before


def test_audit_flags_accidental_grid_win():
    project = make_project()
    ticket = Ticket(win_prize=prize(project, "LOSER"), game_data=[
        GamePlayData(game_number=1, generated_symbol_ids=[1, 1, 1, 2, 3, 4, 5, 6, 7]),
        GamePlayData(game_number=5, generated_symbol_ids=[3, 3, 3, 3, 3, 3]),
    ])
    violations = audit_losing_panels(ticket, project)
    # find-symbol panels are not audited, only match-N grids and rows
    assert kinds(violations) == [ViolationKind.ACCIDENTAL_WIN]
    assert violations[0].game_number == 1


def test_validate_tickets_report():
    project = make_project()
    tickets = [
        winning_ticket(project, "ONE", 1, [2, 5, 2, 7, 8, 2, 9, 1, 3]),
        winning_ticket(project, "ONE", 1, [2, 5, 6, 7, 8, 4, 9, 1, 3]),
        Ticket(win_prize=prize(project, "LOSER"), game_data=[
            GamePlayData(game_number=3, generated_symbol_ids=[1, 1, 1, 2, 3, 4, 5, 6, 7]),
        ]),
    ]
    report = validate_tickets(tickets, project)
    assert report.tickets_checked == 3
    assert report.winners_checked == 2
    assert not report.passed
    assert report.counts_by_kind() == {"panel_not_winning": 1}

    audited = validate_tickets(tickets, project, audit_losers=True)
    assert audited.counts_by_kind() == {"panel_not_winning": 1, "accidental_win": 1}

    data = json.loads(audited.to_json())
    assert data["status"] == audited.status
    assert data["violations"][0]["ticket_index"] == 1


if __name__ == "__main__":
    tests = [v for k, v in sorted(globals().items()) if k.startswith("test_")]

    print(f"\n{'='*60}")
    print(f"Win Validator Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1

    print(f"{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
