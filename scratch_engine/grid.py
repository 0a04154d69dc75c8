"""Match-N-anywhere grid games (MatchSymbolsInGrid, MatchPrizesInGrid)."""

from __future__ import annotations

from scratch_config.card_schema import GamePlayData, GridModuleBase
from scratch_engine.base import (
    GenerationContext, log_downgrade, losing_fill, new_play_data, winning_prize_index,
)
from scratch_engine.errors import InsufficientVarietyError
from scratch_engine.filling import fill_unique
from scratch_engine.items import ItemSource


def winning_panel(winning_item: int, items_to_match: int, slots: int,
                  decoy_pool: list[int], ctx: GenerationContext) -> list[int]:
    """items_to_match copies of the winner plus unique decoys, shuffled."""
    decoy_slots = slots - items_to_match
    if decoy_slots < 0:
        raise InsufficientVarietyError(
            f"Match {items_to_match} does not fit in a panel of {slots} slots."
        )
    panel = [winning_item] * items_to_match + fill_unique(decoy_slots, decoy_pool, ctx.rng)
    return ctx.rng.shuffle(panel)


def generate_grid_play_data(module: GridModuleBase, ctx: GenerationContext,
                            items: ItemSource) -> GamePlayData:
    play_data = new_play_data(module)
    project = ctx.project

    item_pool = items.item_pool(project)
    if not item_pool:
        return play_data

    is_winning = ctx.is_winning_game
    panel = []
    if is_winning:
        winning_item = items.winning_item(ctx.win_tier, project, ctx.rng)
        decoy_pool = items.decoy_pool(winning_item, item_pool, project)
        if decoy_pool:
            panel = winning_panel(winning_item, module.items_to_match,
                                  module.panel_size, decoy_pool, ctx)
        else:
            log_downgrade(module, "no decoy items")
            is_winning = False

    if not is_winning:
        panel = losing_fill(module.panel_size, item_pool, module.items_to_match, items, ctx)

    play_data.generated_symbol_ids = panel
    if is_winning:
        play_data.prize_tier_index = winning_prize_index(project, ctx.win_tier)
    return play_data
