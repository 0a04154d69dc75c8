"""Find-the-symbol games (FindWinningSymbol, ChristmasTree).

The player wins when the module's designated winning symbol appears on the
panel. Losing panels draw with replacement from every other symbol, so the
winning symbol can never show up by accident.
"""

from __future__ import annotations

from typing import Union

from scratch_config.card_schema import ChristmasTreeModule, FindWinningSymbolModule, GamePlayData
from scratch_engine.base import (
    GenerationContext, log_downgrade, new_play_data, winning_prize_index,
)


def generate_find_symbol_play_data(module: Union[FindWinningSymbolModule, ChristmasTreeModule],
                                   ctx: GenerationContext) -> GamePlayData:
    play_data = new_play_data(module)
    symbols = ctx.project.available_symbols
    if not symbols:
        return play_data

    rng = ctx.rng
    slots = module.number_of_symbols
    losing_pool = [s.id for s in symbols if s.id != module.winning_symbol_id]

    is_winning = ctx.is_winning_game
    if is_winning and not losing_pool:
        log_downgrade(module, "no symbols besides the winning symbol")
        is_winning = False

    if is_winning:
        panel = [module.winning_symbol_id]
        panel.extend(rng.choice(losing_pool) for _ in range(slots - 1))
        rng.shuffle(panel)
        play_data.prize_tier_index = winning_prize_index(ctx.project, ctx.win_tier)
    elif losing_pool:
        panel = [rng.choice(losing_pool) for _ in range(slots)]
    else:
        panel = []

    play_data.generated_symbol_ids = panel
    return play_data
