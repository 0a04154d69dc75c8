"""Match-N-in-a-row games (MatchSymbolsInRow, MatchPrizesInRow).

Each row is an independent mini-panel. A winning ticket picks one row at
random to hold the win; every other row follows the grid losing rules with
items_per_row slots. Rows are concatenated in order into one record.
"""

from __future__ import annotations

from scratch_config.card_schema import GamePlayData, RowModuleBase
from scratch_engine.base import (
    GenerationContext, log_downgrade, losing_fill, new_play_data, winning_prize_index,
)
from scratch_engine.grid import winning_panel
from scratch_engine.items import ItemSource


def _generate_row(module: RowModuleBase, is_winning_row: bool, item_pool: list[int],
                  ctx: GenerationContext, items: ItemSource) -> tuple[list[int], bool]:
    if is_winning_row:
        winning_item = items.winning_item(ctx.win_tier, ctx.project, ctx.rng)
        decoy_pool = items.decoy_pool(winning_item, item_pool, ctx.project)
        if decoy_pool:
            row = winning_panel(winning_item, module.items_to_match,
                                module.items_per_row, decoy_pool, ctx)
            return row, True
        log_downgrade(module, "no decoy items")

    row = losing_fill(module.items_per_row, item_pool, module.items_to_match, items, ctx)
    return row, False


def generate_row_play_data(module: RowModuleBase, ctx: GenerationContext,
                           items: ItemSource) -> GamePlayData:
    play_data = new_play_data(module)

    item_pool = items.item_pool(ctx.project)
    if not item_pool:
        return play_data

    winning_row = ctx.rng.next_int(module.number_of_rows) if ctx.is_winning_game else -1
    won = False
    for r in range(module.number_of_rows):
        row, row_won = _generate_row(module, r == winning_row, item_pool, ctx, items)
        play_data.generated_symbol_ids.extend(row)
        won = won or row_won

    if won:
        play_data.prize_tier_index = winning_prize_index(ctx.project, ctx.win_tier)
    return play_data
