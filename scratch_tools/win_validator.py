"""
Scratch-Card Engine - Win Validator

Independent check that every winning ticket really shows a win on the panel
that claims the prize. Findings are returned as data, never raised, so a
whole batch can be audited in one pass.

Usage:
    from scratch_tools.win_validator import validate, validate_tickets
    problems = validate(ticket, project)          # [] means valid
    report = validate_tickets(tickets, project, audit_losers=True)
    print(report.status)
    print(report.to_json())
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from scratch_config.card_schema import (
    CardProject,
    ChristmasTreeModule,
    FindWinningSymbolModule,
    GamePlayData,
    GridModuleBase,
    MatchSymbolToPrizeModule,
    OnlineBonusModule,
    RowModuleBase,
    Ticket,
)

logger = logging.getLogger("scratchcard.validator")


# ═══════════════════════════════════════════════════════════════
# Violations
# ═══════════════════════════════════════════════════════════════

class ViolationKind(str, Enum):
    MISSING_WINNING_ENTRY    = "missing_winning_entry"     # winner with no prize_tier_index >= 0
    MULTIPLE_WINNING_ENTRIES = "multiple_winning_entries"  # more than one module claims the prize
    UNKNOWN_GAME_MODULE      = "unknown_game_module"       # game_number not in the layout
    UNIMPLEMENTED_VARIANT    = "unimplemented_variant"     # no win rule for this module type
    PANEL_NOT_WINNING        = "panel_not_winning"         # claimed win not visible on the panel
    ACCIDENTAL_WIN           = "accidental_win"            # losing panel that reads as a win


@dataclass
class Violation:
    kind: ViolationKind
    ticket_index: int
    game_number: Optional[int]
    message: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "ticket_index": self.ticket_index,
            "game_number": self.game_number,
            "message": self.message,
        }


# ═══════════════════════════════════════════════════════════════
# Win Rules
# ═══════════════════════════════════════════════════════════════

def _contains_winning_symbol(module, play_data: GamePlayData) -> bool:
    return module.winning_symbol_id in play_data.generated_symbol_ids


def _any_item_reaches_match(module: GridModuleBase, play_data: GamePlayData) -> bool:
    counts = Counter(play_data.generated_symbol_ids)
    return any(n >= module.items_to_match for n in counts.values())


def _any_row_reaches_match(module: RowModuleBase, play_data: GamePlayData) -> bool:
    ids = play_data.generated_symbol_ids
    width = module.items_per_row
    for start in range(0, len(ids), width):
        counts = Counter(ids[start:start + width])
        if any(n >= module.items_to_match for n in counts.values()):
            return True
    return False


def _always(module, play_data: GamePlayData) -> bool:
    return True


# Checked in order; the first base class that matches wins
WIN_RULES = [
    (FindWinningSymbolModule, _contains_winning_symbol),
    (ChristmasTreeModule, _contains_winning_symbol),
    (MatchSymbolToPrizeModule, _contains_winning_symbol),
    (RowModuleBase, _any_row_reaches_match),
    (GridModuleBase, _any_item_reaches_match),
    (OnlineBonusModule, _always),
]


def panel_is_winning(module, play_data: GamePlayData) -> Optional[bool]:
    """True/False by the module's win rule, None when the variant has no rule."""
    for module_cls, rule in WIN_RULES:
        if isinstance(module, module_cls):
            return rule(module, play_data)
    return None


# ═══════════════════════════════════════════════════════════════
# Ticket Checks
# ═══════════════════════════════════════════════════════════════

def validate(ticket: Ticket, project: CardProject, ticket_index: int = 0) -> list[Violation]:
    """Check that a winning ticket's claimed win is visible on its panel.

    Losing tickets always pass. Returns an empty list on success.
    """
    if ticket.win_prize.value <= 0:
        return []

    winners = [pd for pd in ticket.game_data if pd.prize_tier_index >= 0]
    if not winners:
        return [Violation(
            ViolationKind.MISSING_WINNING_ENTRY, ticket_index, None,
            f"Ticket wins {ticket.win_prize.display_text or ticket.win_prize.value} "
            f"but no game carries a prize tier index.",
        )]

    violations = []
    if len(winners) > 1:
        numbers = ", ".join(str(pd.game_number) for pd in winners)
        violations.append(Violation(
            ViolationKind.MULTIPLE_WINNING_ENTRIES, ticket_index, winners[0].game_number,
            f"Games {numbers} all claim the prize; exactly one may win.",
        ))

    play_data = winners[0]
    module = project.module_by_number(play_data.game_number)
    if module is None:
        violations.append(Violation(
            ViolationKind.UNKNOWN_GAME_MODULE, ticket_index, play_data.game_number,
            f"Winning entry references game {play_data.game_number}, which is not on the card.",
        ))
        return violations

    verdict = panel_is_winning(module, play_data)
    if verdict is None:
        violations.append(Violation(
            ViolationKind.UNIMPLEMENTED_VARIANT, ticket_index, module.game_number,
            f"No win rule for {type(module).__name__}.",
        ))
    elif not verdict:
        violations.append(Violation(
            ViolationKind.PANEL_NOT_WINNING, ticket_index, module.game_number,
            f"{module.label} claims the prize but its panel "
            f"{play_data.generated_symbol_ids} shows no win.",
        ))
    return violations


def audit_losing_panels(ticket: Ticket, project: CardProject,
                        ticket_index: int = 0) -> list[Violation]:
    """Flag match-N panels that show a win without claiming one."""
    violations = []
    for play_data in ticket.game_data:
        if play_data.prize_tier_index >= 0:
            continue
        module = project.module_by_number(play_data.game_number)
        if not isinstance(module, (GridModuleBase, RowModuleBase)):
            continue
        if panel_is_winning(module, play_data):
            violations.append(Violation(
                ViolationKind.ACCIDENTAL_WIN, ticket_index, module.game_number,
                f"{module.label} is not the winning game but its panel "
                f"{play_data.generated_symbol_ids} reaches Match {module.items_to_match}.",
            ))
    return violations


# ═══════════════════════════════════════════════════════════════
# Batch Report
# ═══════════════════════════════════════════════════════════════

@dataclass
class ValidationReport:
    """Results of validating a ticket batch."""
    tickets_checked: int = 0
    winners_checked: int = 0
    losers_audited: bool = False
    violations: list[Violation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def status(self) -> str:
        return "✅ PASS" if self.passed else "❌ FAIL"

    def counts_by_kind(self) -> dict:
        return dict(Counter(v.kind.value for v in self.violations))

    def to_dict(self) -> dict:
        return {
            "report_type": "Win Validation",
            "status": self.status,
            "tickets_checked": self.tickets_checked,
            "winners_checked": self.winners_checked,
            "losers_audited": self.losers_audited,
            "violation_counts": self.counts_by_kind(),
            "violations": [v.to_dict() for v in self.violations],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def validate_tickets(tickets: list[Ticket], project: CardProject,
                     audit_losers: bool = False) -> ValidationReport:
    report = ValidationReport(losers_audited=audit_losers)
    for i, ticket in enumerate(tickets):
        report.tickets_checked += 1
        if ticket.is_winner:
            report.winners_checked += 1
        report.violations.extend(validate(ticket, project, ticket_index=i))
        if audit_losers:
            report.violations.extend(audit_losing_panels(ticket, project, ticket_index=i))

    if report.passed:
        logger.info(f"Validated {report.tickets_checked} tickets: no violations")
    else:
        logger.warning(
            f"Validated {report.tickets_checked} tickets: "
            f"{len(report.violations)} violation(s) {report.counts_by_kind()}"
        )
    return report
