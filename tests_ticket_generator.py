#!/usr/bin/env python3
"""
Tests for ticket batch generation and the scratchgen CLI

Validates:
1. Pre-flight checks catch each configuration problem, including cash prizes no module can carry
2. Eligible prizes respect sale price and draw-only flags
3. Winning-module routing (online, linked symbol, generic, none)
4. Fingerprints and the uniqueness retry limit
5. Pack distribution and per-pack winner counts
6. Batches are reproducible from the master seed
7. Generated batches validate cleanly with no accidental wins
8. CLI generate / validate / preview exit codes, missing files included
"""

import json
import sys
import tempfile
from collections import Counter
from decimal import Decimal
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from scratch_config.card_schema import (
    GamePlayData, OnlineBonusModule, Ticket, dump_tickets, load_tickets,
)
from scratch_engine.errors import ConfigurationError, TicketGenerationError
from scratch_engine.rng import RandomStream
from scratch_tools.cardgen_cli import main
from scratch_tools.ticket_generator import (
    build_pack_distribution,
    eligible_prizes,
    ensure_ready,
    generate_batch,
    generate_ticket,
    preflight_checks,
    select_winning_module,
    ticket_fingerprint,
)
from scratch_tools.win_validator import validate_tickets
from tests import make_project, prize


# ============================================================
# Pre-flight
# ============================================================

def test_preflight_clean_project():
    assert preflight_checks(make_project()) == []


def test_preflight_online_prize_needs_online_module():
    project = make_project()
    project.game_modules = [m for m in project.game_modules if not isinstance(m, OnlineBonusModule)]
    problems = preflight_checks(project)
    assert len(problems) == 1
    assert "OnlineBonus" in problems[0]


def test_preflight_lvw_exceeds_pack():
    project = make_project(cards_per_pack=5)
    try:
        ensure_ready(project)
    except ConfigurationError as e:
        assert len(e.problems) == 1
        assert "exceed cards per pack" in e.problems[0]
    else:
        raise AssertionError("ConfigurationError not raised")


def test_preflight_needs_loser_tier():
    project = make_project()
    project.prize_tiers = [p for p in project.prize_tiers if p.value > 0]
    assert any("value of 0" in p for p in preflight_checks(project))


def test_preflight_needs_a_module_for_every_cash_prize():
    project = make_project()
    project.game_modules = [m for m in project.game_modules if m.game_number in (7, 8)]
    problems = preflight_checks(project)
    # only TEN is linked to the MatchSymbolToPrize module's winning symbol
    assert len(problems) == 5
    assert all("No game module can carry" in p for p in problems)
    assert not any("£10 " in p for p in problems)
    assert any("'FIFTY'" in p for p in problems)


def test_eligible_prizes():
    project = make_project(ticket_sale_price=Decimal("2.00"))
    project.prize_tiers[4].is_online_draw_only = True
    codes = [p.text_code for p in eligible_prizes(project)]
    assert codes == ["LOSER", "TWO", "FIVE", "FIFTY", "THOUSAND", "ONLINE"]


# ============================================================
# Single Tickets
# ============================================================

def test_winning_module_routing():
    project = make_project()
    rng = RandomStream(1)
    assert select_winning_module(project, prize(project, "LOSER"), rng) is None
    assert select_winning_module(project, prize(project, "ONLINE"), rng).game_number == 8
    assert select_winning_module(project, prize(project, "TEN"), rng).game_number == 7

    chosen = {select_winning_module(project, prize(project, "ONE"), rng).game_number for _ in range(200)}
    assert chosen == {1, 2, 3, 4, 5, 6}


def test_fingerprint_sorted_by_game_number():
    ticket = Ticket(win_prize=prize(make_project(), "LOSER"), game_data=[
        GamePlayData(game_number=2),
        GamePlayData(game_number=1, generated_symbol_ids=[3, 4, 3]),
    ])
    assert ticket_fingerprint(ticket) == "G1:3,4,3;G2:;"


def test_generate_ticket_records_fingerprint():
    project = make_project()
    seen = set()
    ticket = generate_ticket(project, prize(project, "FIVE"), RandomStream(2), seen)
    assert seen == {ticket_fingerprint(ticket)}
    assert len(ticket.game_data) == len(project.game_modules)
    assert sum(1 for pd in ticket.game_data if pd.prize_tier_index >= 0) == 1


def test_duplicate_tickets_exhaust_attempts():
    project = make_project()
    project.game_modules = [OnlineBonusModule(game_number=1)]
    rng = RandomStream(3)
    seen = set()
    generate_ticket(project, prize(project, "LOSER"), rng, seen)
    try:
        generate_ticket(project, prize(project, "LOSER"), rng, seen, max_attempts=5)
    except TicketGenerationError as e:
        assert "5 attempts" in str(e)
    else:
        raise AssertionError("TicketGenerationError not raised")


# ============================================================
# Batches
# ============================================================

def test_pack_distribution():
    distribution = build_pack_distribution(make_project())
    counts = Counter(p.text_code for p in distribution)
    assert len(distribution) == 20
    assert counts["LOSER"] == 12
    assert counts["ONE"] == 3
    assert counts["ONLINE"] == 1


def test_batch_shape_and_per_pack_winners():
    project = make_project()
    result = generate_batch(project, master_seed=1234)
    assert result.seed == 1234
    assert len(result.lvw) == 40
    assert len(result.hvw) == 3
    for pack in (result.lvw[:20], result.lvw[20:]):
        assert sum(1 for t in pack if t.is_winner) == 8
    summary = result.summary()
    assert summary["lvw_winners"] == 16
    assert summary["winners_by_prize"]["£50"] == 2


def test_batch_is_reproducible():
    project = make_project()
    first = generate_batch(project, master_seed=77)
    second = generate_batch(project, master_seed=77)
    other = generate_batch(project, master_seed=78)
    assert [t.model_dump() for t in first.lvw] == [t.model_dump() for t in second.lvw]
    assert [t.model_dump() for t in first.hvw] == [t.model_dump() for t in second.hvw]
    assert [t.model_dump() for t in first.lvw] != [t.model_dump() for t in other.lvw]


def test_batch_validates_with_no_accidental_wins():
    project = make_project()
    for seed in (5, 6, 7):
        result = generate_batch(project, master_seed=seed)
        report = validate_tickets(result.lvw + result.hvw, project, audit_losers=True)
        assert report.passed, report.to_json()
        fingerprints = {ticket_fingerprint(t) for t in result.lvw}
        assert len(fingerprints) == len(result.lvw)


# ============================================================
# CLI
# ============================================================

def _write_project(directory: Path, **settings) -> Path:
    path = directory / "project.json"
    path.write_text(make_project(**settings).model_dump_json(indent=2))
    return path


def test_cli_generate_then_validate():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        project_path = _write_project(tmp)
        out_dir = tmp / "out"
        assert main(["generate", str(project_path), "--seed", "9", "--output-dir", str(out_dir)]) == 0

        lvw_path = out_dir / "TEST01-lvw.json"
        hvw_path = out_dir / "TEST01-hvw.json"
        assert len(load_tickets(lvw_path)) == 40
        assert len(load_tickets(hvw_path)) == 3
        assert main(["validate", str(project_path), str(lvw_path), "--audit-losers"]) == 0
        assert main(["validate", str(project_path), str(hvw_path), "--json"]) == 0


def test_cli_validate_reports_tampered_ticket():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        project_path = _write_project(tmp)
        project = make_project()
        tier = prize(project, "ONE")
        tampered = Ticket(win_prize=tier, game_data=[
            GamePlayData(game_number=1, generated_symbol_ids=list(range(1, 10)), prize_tier_index=1),
        ])
        tickets_path = dump_tickets([tampered], tmp / "bad.json")
        assert main(["validate", str(project_path), str(tickets_path)]) == 1


def test_cli_configuration_error_exit_code():
    with tempfile.TemporaryDirectory() as tmp:
        project_path = _write_project(Path(tmp), cards_per_pack=5)
        assert main(["generate", str(project_path), "--seed", "1", "--output-dir", tmp]) == 2
        assert main(["preview", str(project_path)]) == 2


def test_cli_missing_file_exit_code():
    with tempfile.TemporaryDirectory() as tmp:
        project_path = _write_project(Path(tmp))
        assert main(["validate", str(project_path), str(Path(tmp) / "missing.json")]) == 2
        assert main(["generate", str(Path(tmp) / "nope.json"), "--output-dir", tmp]) == 2


def test_cli_preview():
    with tempfile.TemporaryDirectory() as tmp:
        project_path = _write_project(Path(tmp))
        assert main(["preview", str(project_path), "--seed", "3", "--count", "2"]) == 0
        assert main(["preview", str(project_path), "--seed", "3", "--count", "4", "--winner"]) == 0


def test_project_file_round_trip():
    with tempfile.TemporaryDirectory() as tmp:
        data = json.loads(_write_project(Path(tmp)).read_text())
        assert [m["game_type"] for m in data["game_modules"]][:2] == ["MatchSymbolsInGrid", "MatchPrizesInGrid"]


if __name__ == "__main__":
    tests = [v for k, v in sorted(globals().items()) if k.startswith("test_")]

    print(f"\n{'='*60}")
    print(f"Ticket Generator Tests — {len(tests)} tests")
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
