"""
Scratch-Card Engine - Generation Context & Shared Losing Rules

Every variant generator receives a GenerationContext and returns one
GamePlayData record; the dispatcher in scratch_engine/__init__.py appends it
to the ticket.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from scratch_config.card_schema import CardProject, GamePlayData, PrizeTier, Ticket
from scratch_engine.filling import fill_unique, fill_weighted_near_misses
from scratch_engine.items import ItemSource
from scratch_engine.rng import RandomStream

logger = logging.getLogger("scratchcard.engine")


@dataclass
class GenerationContext:
    """Everything one module needs to generate its panel for one ticket."""
    ticket: Ticket
    is_winning_game: bool
    win_tier: Optional[PrizeTier]
    project: CardProject
    rng: RandomStream


def new_play_data(module) -> GamePlayData:
    return GamePlayData(game_number=module.game_number)


def winning_prize_index(project: CardProject, win_tier: PrizeTier) -> int:
    """Prize index matched on (value, is_online_prize)."""
    return project.prize_index(win_tier.value, win_tier.is_online_prize)


def log_downgrade(module, reason: str) -> None:
    logger.debug(f"{module.label}: win downgraded to losing panel ({reason})")


def losing_fill(slots: int, item_pool: list[int], items_to_match: int,
                items: ItemSource, ctx: GenerationContext) -> list[int]:
    """Fill a losing panel (or row) of a match-N game.

    A ticket that already won elsewhere gets a plain panel so the player is
    not distracted; so does a Match-2 game, where a near-miss would read as
    a win. Otherwise the panel gets weighted near-misses, never on the
    highest-value item.
    """
    if ctx.ticket.is_winner or items_to_match <= 2:
        return fill_unique(slots, item_pool, ctx.rng)

    project = ctx.project
    highest = items.highest_value_item(project)
    pool = [item for item in item_pool if item != highest] or item_pool
    return fill_weighted_near_misses(
        slots, pool, items_to_match, ctx.rng,
        weighting=project.settings.near_miss_weighting,
        favour_high_value=project.settings.favour_high_value_near_misses,
        valuation=lambda item: items.valuation(item, project),
    )
