"""
Scratch-Card Engine - Play-Data Generation

Turns a game module plus a "should this module win" decision into the panel
a player will scratch. One generator per module variant; grid and row games
are parameterised by what their panel holds (symbols or prize tiers).

Usage:
    from scratch_engine import generate_play_data
    from scratch_engine.rng import RandomStream
    rng = RandomStream(42)
    play = generate_play_data(module, ticket, True, win_tier, project, rng)
    print(play.generated_symbol_ids, play.prize_tier_index)
"""

from functools import partial

from scratch_config.card_schema import (
    ChristmasTreeModule,
    FindWinningSymbolModule,
    GameType,
    MatchPrizesInGridModule,
    MatchPrizesInRowModule,
    MatchSymbolToPrizeModule,
    MatchSymbolsInGridModule,
    MatchSymbolsInRowModule,
    OnlineBonusModule,
)
from scratch_engine.base import GenerationContext
from scratch_engine.errors import InsufficientVarietyError
from scratch_engine.find_symbol import generate_find_symbol_play_data
from scratch_engine.grid import generate_grid_play_data
from scratch_engine.items import PRIZE_ITEMS, SYMBOL_ITEMS
from scratch_engine.online_bonus import generate_online_bonus_play_data
from scratch_engine.row import generate_row_play_data
from scratch_engine.symbol_to_prize import generate_symbol_to_prize_play_data

GAME_GENERATORS = {
    MatchSymbolsInGridModule: partial(generate_grid_play_data, items=SYMBOL_ITEMS),
    MatchPrizesInGridModule: partial(generate_grid_play_data, items=PRIZE_ITEMS),
    MatchSymbolsInRowModule: partial(generate_row_play_data, items=SYMBOL_ITEMS),
    MatchPrizesInRowModule: partial(generate_row_play_data, items=PRIZE_ITEMS),
    FindWinningSymbolModule: generate_find_symbol_play_data,
    ChristmasTreeModule: generate_find_symbol_play_data,
    MatchSymbolToPrizeModule: generate_symbol_to_prize_play_data,
    OnlineBonusModule: generate_online_bonus_play_data,
}

GAME_TYPES = [t.value for t in GameType]


def get_generator(module):
    """Get the play-data generator for a module."""
    generator = GAME_GENERATORS.get(type(module))
    if generator is None:
        raise ValueError(f"Unknown game module: {type(module).__name__}. Available: {GAME_TYPES}")
    return generator


def generate_play_data(module, ticket, is_winning_game, win_tier, project, rng):
    """Generate one module's panel, append it to the ticket and return it.

    Raises InsufficientVarietyError (tagged with the module) when the
    project's symbols or prizes cannot fill the panel without a win.
    """
    generator = get_generator(module)
    ctx = GenerationContext(
        ticket=ticket,
        is_winning_game=is_winning_game,
        win_tier=win_tier,
        project=project,
        rng=rng,
    )
    try:
        play_data = generator(module, ctx)
    except InsufficientVarietyError as exc:
        exc.attach_module(module)
        raise
    ticket.game_data.append(play_data)
    return play_data
