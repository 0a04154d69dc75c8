"""
Scratch-Card Engine - Match Symbol To Prize

Panels draw from the project's numeric symbols. Each module owns one
winning symbol whose name links it to a prize tier (Symbol.name ==
PrizeTier.text_code). Several of these modules may share a card, so no
panel ever shows another module's winning symbol: a losing panel avoids
all of them, and a winning panel avoids every one except its own.
"""

from __future__ import annotations

from scratch_config.card_schema import CardProject, GamePlayData, MatchSymbolToPrizeModule
from scratch_engine.base import GenerationContext, log_downgrade, new_play_data


def symbol_to_prize_modules(project: CardProject) -> list[MatchSymbolToPrizeModule]:
    return [m for m in project.game_modules if isinstance(m, MatchSymbolToPrizeModule)]


def reserved_symbol_ids(project: CardProject, exclude_game_number: int = 0) -> set[int]:
    """Winning symbol IDs of every MatchSymbolToPrize module except one."""
    return {
        m.winning_symbol_id for m in symbol_to_prize_modules(project)
        if m.game_number != exclude_game_number
    }


def generate_symbol_to_prize_play_data(module: MatchSymbolToPrizeModule,
                                       ctx: GenerationContext) -> GamePlayData:
    play_data = new_play_data(module)
    project = ctx.project
    rng = ctx.rng
    numeric = project.numeric_symbols
    if not numeric:
        return play_data

    slots = module.number_of_symbols
    is_winning = ctx.is_winning_game
    winning_symbol = None
    if is_winning:
        winning_symbol = CardProject.symbol_by_name(numeric, ctx.win_tier.text_code)
        if winning_symbol is None:
            log_downgrade(module, f"no numeric symbol named {ctx.win_tier.text_code!r}")
            is_winning = False

    if is_winning:
        excluded = reserved_symbol_ids(project, exclude_game_number=module.game_number)
        pool = [s.id for s in numeric if s.id != winning_symbol.id and s.id not in excluded]
        panel = [winning_symbol.id]
        if pool:
            panel.extend(rng.choice(pool) for _ in range(slots - 1))
        rng.shuffle(panel)
        play_data.prize_tier_index = project.prize_index_by_id(ctx.win_tier.id)
    else:
        reserved = reserved_symbol_ids(project)
        pool = [s.id for s in numeric if s.id not in reserved]
        panel = [rng.choice(pool) for _ in range(slots)] if pool else []

    play_data.generated_symbol_ids = panel
    return play_data
