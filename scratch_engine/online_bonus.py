"""Online bonus: the prize is revealed on a website, so the panel is empty."""

from __future__ import annotations

from scratch_config.card_schema import GamePlayData, OnlineBonusModule
from scratch_engine.base import GenerationContext, new_play_data, winning_prize_index


def generate_online_bonus_play_data(module: OnlineBonusModule,
                                    ctx: GenerationContext) -> GamePlayData:
    play_data = new_play_data(module)
    if ctx.is_winning_game:
        play_data.prize_tier_index = winning_prize_index(ctx.project, ctx.win_tier)
    return play_data
