"""
Scratch-Card Engine - Ticket Batch Generator

Builds the two ticket files of a job:

    LVW (low-value winners)  no_com_pack common packs of cards_per_pack
                             tickets; each pack holds every LVW winner once
                             per lvw_winner_count, padded with losers
    HVW (high-value winners) one ticket per hvw_winner_count

For every ticket one module is chosen to carry the win, every module
generates its panel in layout order, duplicates are re-rolled and winners
are re-checked with the win validator before they are accepted.

Usage:
    from scratch_tools.ticket_generator import generate_batch
    result = generate_batch(project, master_seed=42)
    print(result.summary())
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from scratch_config.card_schema import (
    CardProject, MatchSymbolToPrizeModule, OnlineBonusModule, PrizeTier, Ticket,
)
from scratch_config.settings import GenerationSettings
from scratch_engine import generate_play_data
from scratch_engine.errors import ConfigurationError, TicketGenerationError
from scratch_engine.rng import RandomStream
from scratch_tools.win_validator import validate

# ── Package logger: engine, generator, validator and cli all propagate here ──
_root_logger = logging.getLogger("scratchcard")
if not _root_logger.handlers:
    _h = logging.StreamHandler()
    _h.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(message)s", datefmt="%H:%M:%S"))
    _root_logger.addHandler(_h)
    _root_logger.setLevel(GenerationSettings.LOG_LEVEL)

logger = logging.getLogger("scratchcard.generator")


# ═══════════════════════════════════════════════════════════════
# Pre-flight
# ═══════════════════════════════════════════════════════════════

def eligible_prizes(project: CardProject) -> list[PrizeTier]:
    """Prizes a printed ticket may carry: not draw-only, and either the
    loser tier or worth at least the sale price."""
    price = project.settings.ticket_sale_price
    return [
        p for p in project.prize_tiers
        if not p.is_online_draw_only and (p.value == 0 or p.value >= price)
    ]


def loser_tier(project: CardProject) -> Optional[PrizeTier]:
    return next((p for p in eligible_prizes(project) if p.value == 0), None)


def preflight_checks(project: CardProject) -> list[str]:
    """Return every configuration problem that would stop generation."""
    problems = []
    if not project.game_modules:
        problems.append("The card layout has no game modules.")

    has_online_prizes = any(
        p.is_online_prize and p.value > 0 and (p.lvw_winner_count > 0 or p.hvw_winner_count > 0)
        for p in project.prize_tiers
    )
    has_online_module = any(isinstance(m, OnlineBonusModule) for m in project.game_modules)
    if has_online_prizes and not has_online_module:
        problems.append(
            "Active online prizes exist but the layout has no OnlineBonus module. "
            "Set the online prize counts to zero or add the module."
        )

    lvw_total = sum(p.lvw_winner_count for p in eligible_prizes(project))
    cards_per_pack = project.settings.cards_per_pack
    if lvw_total > cards_per_pack:
        problems.append(
            f"LVW winner counts ({lvw_total}) exceed cards per pack ({cards_per_pack})."
        )

    if loser_tier(project) is None:
        problems.append("A prize tier with a value of 0 (for losers) must be defined.")

    if project.game_modules and not generic_modules(project):
        for p in eligible_prizes(project):
            if p.value <= 0 or p.is_online_prize:
                continue
            if p.lvw_winner_count + p.hvw_winner_count == 0:
                continue
            if linked_prize_module(project, p) is None:
                label = p.display_text or p.value
                problems.append(
                    f"No game module can carry the {label} prize: add a generic game or a "
                    f"MatchSymbolToPrize module whose winning symbol is named {p.text_code!r}."
                )
    return problems


def ensure_ready(project: CardProject) -> None:
    problems = preflight_checks(project)
    if problems:
        for problem in problems:
            logger.error(f"Pre-flight: {problem}")
        raise ConfigurationError(problems)


# ═══════════════════════════════════════════════════════════════
# Single Ticket
# ═══════════════════════════════════════════════════════════════

def linked_prize_module(project: CardProject, win_prize: PrizeTier):
    """The MatchSymbolToPrize module whose winning symbol names this prize, if any."""
    for module in project.game_modules:
        if not isinstance(module, MatchSymbolToPrizeModule):
            continue
        symbol = CardProject.symbol_by_id(project.numeric_symbols, module.winning_symbol_id)
        linked = project.linked_prize(symbol)
        if linked is not None and linked.id == win_prize.id:
            return module
    return None


def generic_modules(project: CardProject) -> list:
    return [
        m for m in project.game_modules
        if not isinstance(m, (OnlineBonusModule, MatchSymbolToPrizeModule))
    ]


def select_winning_module(project: CardProject, win_prize: PrizeTier, rng: RandomStream):
    """Pick the module that will show this ticket's win (None for losers).

    Online prizes go to the first OnlineBonus module. A prize linked to a
    MatchSymbolToPrize module's winning symbol goes to that module. Anything
    else goes to a random generic module.
    """
    if win_prize.value <= 0 or not project.game_modules:
        return None
    if win_prize.is_online_prize:
        return next((m for m in project.game_modules if isinstance(m, OnlineBonusModule)), None)

    linked = linked_prize_module(project, win_prize)
    if linked is not None:
        return linked

    generic = generic_modules(project)
    if generic:
        return generic[rng.next_int(len(generic))]
    return None


def ticket_fingerprint(ticket: Ticket) -> str:
    """Panel contents in game-number order, e.g. 'G1:3,4,3;G2:;'."""
    parts = []
    for play_data in sorted(ticket.game_data, key=lambda pd: pd.game_number):
        ids = ",".join(str(i) for i in play_data.generated_symbol_ids)
        parts.append(f"G{play_data.game_number}:{ids};")
    return "".join(parts)


def _build_ticket(project: CardProject, win_prize: PrizeTier, rng: RandomStream) -> Ticket:
    ticket = Ticket(win_prize=win_prize)
    winning_module = select_winning_module(project, win_prize, rng)
    for module in project.game_modules:
        generate_play_data(module, ticket, module is winning_module, win_prize, project, rng)
    return ticket


def generate_ticket(project: CardProject, win_prize: PrizeTier, rng: RandomStream,
                    seen: Optional[set] = None, max_attempts: Optional[int] = None,
                    ticket_index: int = 0) -> Ticket:
    """Generate one ticket whose panels differ from every fingerprint in `seen`.

    Adds the new fingerprint to `seen`. Raises TicketGenerationError when no
    unique ticket turns up within max_attempts, or when a winner fails its
    own validation. InsufficientVarietyError propagates unchanged.
    """
    seen = set() if seen is None else seen
    max_attempts = max_attempts or GenerationSettings.MAX_UNIQUE_ATTEMPTS

    for _ in range(max_attempts):
        ticket = _build_ticket(project, win_prize, rng)
        fingerprint = ticket_fingerprint(ticket)
        if fingerprint not in seen:
            seen.add(fingerprint)
            break
    else:
        raise TicketGenerationError(
            f"Failed to generate a unique ticket after {max_attempts} attempts. "
            f"The symbol/game variety might be too low."
        )

    if GenerationSettings.SELF_VALIDATE:
        violations = validate(ticket, project, ticket_index=ticket_index)
        if violations:
            details = "; ".join(v.message for v in violations)
            raise TicketGenerationError(f"Generated ticket {ticket_index} failed self-validation: {details}")
    return ticket


# ═══════════════════════════════════════════════════════════════
# Batches
# ═══════════════════════════════════════════════════════════════

def build_pack_distribution(project: CardProject) -> list[PrizeTier]:
    """One pack's prizes before shuffling: LVW winners then losers."""
    ensure_ready(project)
    distribution = []
    for prize in eligible_prizes(project):
        distribution.extend([prize] * prize.lvw_winner_count)
    loser = loser_tier(project)
    distribution.extend([loser] * (project.settings.cards_per_pack - len(distribution)))
    return distribution


def generate_lvw_tickets(project: CardProject, master_seed: int) -> list[Ticket]:
    distribution = build_pack_distribution(project)
    packs = project.settings.no_com_pack
    logger.info(f"Generating {packs} common pack(s) of {len(distribution)} tickets")

    seen = set()
    tickets = []
    for pack in range(packs):
        rng = RandomStream.derive(master_seed, "lvw", pack)
        for prize in rng.shuffled(distribution):
            tickets.append(generate_ticket(project, prize, rng, seen, ticket_index=len(tickets)))
        logger.debug(f"Pack {pack + 1}/{packs} complete")
    return tickets


def generate_hvw_tickets(project: CardProject, master_seed: int) -> list[Ticket]:
    ensure_ready(project)
    hvw_prizes = [p for p in eligible_prizes(project) if p.hvw_winner_count > 0]
    total = sum(p.hvw_winner_count for p in hvw_prizes)
    if total == 0:
        logger.info("No HVW prizes configured")
        return []
    logger.info(f"Generating {total} HVW ticket(s)")

    rng = RandomStream.derive(master_seed, "hvw")
    seen = set()
    tickets = []
    for prize in hvw_prizes:
        for _ in range(prize.hvw_winner_count):
            tickets.append(generate_ticket(project, prize, rng, seen, ticket_index=len(tickets)))
    return tickets


@dataclass
class BatchResult:
    """Both ticket files of a job plus what is needed to reproduce them."""
    seed: int
    lvw: list[Ticket] = field(default_factory=list)
    hvw: list[Ticket] = field(default_factory=list)
    duration_seconds: float = 0

    def summary(self) -> dict:
        prize_counts: dict = {}
        for ticket in self.lvw + self.hvw:
            if ticket.is_winner:
                label = ticket.win_prize.display_text or str(ticket.win_prize.value)
                prize_counts[label] = prize_counts.get(label, 0) + 1
        return {
            "seed": self.seed,
            "lvw_tickets": len(self.lvw),
            "lvw_winners": sum(1 for t in self.lvw if t.is_winner),
            "hvw_tickets": len(self.hvw),
            "winners_by_prize": prize_counts,
            "duration_seconds": round(self.duration_seconds, 3),
        }


def generate_batch(project: CardProject, master_seed: Optional[int] = None) -> BatchResult:
    """Generate LVW and HVW tickets. The seed is logged so any run can be replayed."""
    seed = GenerationSettings.resolve_seed(master_seed)
    ensure_ready(project)
    job = project.settings.job_code or "job"
    logger.info(f"{job}: generating tickets with master seed {seed}")

    start = time.time()
    try:
        lvw = generate_lvw_tickets(project, seed)
        hvw = generate_hvw_tickets(project, seed)
    except Exception as e:
        logger.error(f"{job}: generation aborted: {e}")
        raise

    result = BatchResult(seed=seed, lvw=lvw, hvw=hvw, duration_seconds=time.time() - start)
    logger.info(f"{job}: {len(lvw)} LVW + {len(hvw)} HVW tickets in {result.duration_seconds:.2f}s")
    return result
