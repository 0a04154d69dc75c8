"""
Scratch-Card Engine - Project & Ticket Schema

Pydantic models for everything the engine reads (prize tiers, symbols, job
settings, the ordered game-module layout) and everything it writes (tickets
and their per-module play data).

Game modules are a closed set of variants distinguished by `game_type`, so a
project file round-trips through one discriminated union:

Usage:
    from scratch_config.card_schema import CardProject, load_project
    project = load_project("projects/xmas.json")
    for module in project.game_modules:
        print(module.game_number, module.game_type)
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, computed_field, model_validator


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class NearMissWeighting(str, Enum):
    LOW      = "low"        # fewer near-miss sets on a losing panel
    BALANCED = "balanced"   # every possible count equally likely
    HIGH     = "high"       # more near-miss sets


class GameType(str, Enum):
    MATCH_SYMBOLS_IN_GRID = "MatchSymbolsInGrid"
    FIND_WINNING_SYMBOL   = "FindWinningSymbol"
    ONLINE_BONUS          = "OnlineBonus"
    MATCH_PRIZES_IN_ROW   = "MatchPrizesInRow"
    MATCH_SYMBOLS_IN_ROW  = "MatchSymbolsInRow"
    MATCH_PRIZES_IN_GRID  = "MatchPrizesInGrid"
    CHRISTMAS_TREE        = "ChristmasTree"
    MATCH_SYMBOL_TO_PRIZE = "MatchSymbolToPrize"


# ═══════════════════════════════════════════════════════════════
# Prizes, Symbols, Job Settings
# ═══════════════════════════════════════════════════════════════

class PrizeTier(BaseModel):
    """One prize level. A value of 0 is the loser tier."""
    id: int
    value: int = 0                     # whole currency units
    display_text: str = ""             # e.g. "£50"
    text_code: str = ""                # e.g. "FIFTY"; links to Symbol.name
    barcode: str = ""
    lvw_winner_count: int = Field(0, ge=0)
    hvw_winner_count: int = Field(0, ge=0)
    is_online_prize: bool = False
    is_online_draw_only: bool = False


class Symbol(BaseModel):
    id: int
    display_text: str = ""
    image_path: str = ""

    @computed_field
    @property
    def name(self) -> str:
        """Upper-cased display text without spaces, matched against PrizeTier.text_code."""
        return (self.display_text or "").upper().replace(" ", "")


class JobSettings(BaseModel):
    job_code: str = ""
    job_name: str = ""
    cards_per_pack: int = Field(0, ge=0)
    no_com_pack: int = Field(0, ge=0)
    ticket_sale_price: Decimal = Field(Decimal("1.00"), ge=0)
    near_miss_weighting: NearMissWeighting = NearMissWeighting.HIGH
    favour_high_value_near_misses: bool = False


# ═══════════════════════════════════════════════════════════════
# Game Modules
# ═══════════════════════════════════════════════════════════════

class GameModuleBase(BaseModel):
    """Attributes shared by every module on the card.

    `game_number` is the only key linking a module to its play data.
    Position and size belong to the card designer; the engine carries them
    through untouched.
    """
    game_number: int = Field(1, ge=1)
    module_name: str = ""
    position: tuple[float, float] = (0.0, 0.0)
    size: tuple[float, float] = (150.0, 100.0)

    @property
    def label(self) -> str:
        kind = getattr(self, "game_type", type(self).__name__)
        return self.module_name or f"Game {self.game_number} ({kind})"


class GridModuleBase(GameModuleBase):
    rows: int = Field(3, ge=1)
    columns: int = Field(3, ge=1)
    items_to_match: int = Field(3, ge=2)

    @property
    def panel_size(self) -> int:
        return self.rows * self.columns


class RowModuleBase(GameModuleBase):
    number_of_rows: int = Field(3, ge=1)
    items_per_row: int = Field(3, ge=1)
    items_to_match: int = Field(3, ge=2)

    @property
    def panel_size(self) -> int:
        return self.number_of_rows * self.items_per_row


class MatchSymbolsInGridModule(GridModuleBase):
    game_type: Literal["MatchSymbolsInGrid"] = "MatchSymbolsInGrid"


class MatchPrizesInGridModule(GridModuleBase):
    game_type: Literal["MatchPrizesInGrid"] = "MatchPrizesInGrid"


class MatchSymbolsInRowModule(RowModuleBase):
    game_type: Literal["MatchSymbolsInRow"] = "MatchSymbolsInRow"


class MatchPrizesInRowModule(RowModuleBase):
    game_type: Literal["MatchPrizesInRow"] = "MatchPrizesInRow"


class FindWinningSymbolModule(GameModuleBase):
    game_type: Literal["FindWinningSymbol"] = "FindWinningSymbol"
    winning_symbol_id: int = 0
    number_of_symbols: int = Field(1, ge=1)


class ChristmasTreeModule(GameModuleBase):
    """Find-the-symbol game laid out as a pyramid (1 + 2 + 3 + 4 + 5)."""
    game_type: Literal["ChristmasTree"] = "ChristmasTree"
    winning_symbol_id: int = 0
    row_layout: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])

    @property
    def number_of_symbols(self) -> int:
        return sum(self.row_layout)


class MatchSymbolToPrizeModule(GameModuleBase):
    game_type: Literal["MatchSymbolToPrize"] = "MatchSymbolToPrize"
    winning_symbol_id: int = 0
    number_of_symbols: int = Field(6, ge=1)


class OnlineBonusModule(GameModuleBase):
    game_type: Literal["OnlineBonus"] = "OnlineBonus"
    url: str = ""


GameModule = Annotated[
    Union[
        MatchSymbolsInGridModule,
        FindWinningSymbolModule,
        OnlineBonusModule,
        MatchPrizesInRowModule,
        MatchSymbolsInRowModule,
        MatchPrizesInGridModule,
        ChristmasTreeModule,
        MatchSymbolToPrizeModule,
    ],
    Field(discriminator="game_type"),
]


# ═══════════════════════════════════════════════════════════════
# Project
# ═══════════════════════════════════════════════════════════════

class CardProject(BaseModel):
    """Read-only snapshot of a scratch-card job as seen by the engine."""
    settings: JobSettings = Field(default_factory=JobSettings)
    prize_tiers: list[PrizeTier] = Field(default_factory=list)
    available_symbols: list[Symbol] = Field(default_factory=list)
    numeric_symbols: list[Symbol] = Field(default_factory=list)
    game_modules: list[GameModule] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_game_numbers(self):
        seen = set()
        for module in self.game_modules:
            if module.game_number in seen:
                raise ValueError(f"Duplicate game_number {module.game_number} in game_modules")
            seen.add(module.game_number)
        return self

    def prize_index(self, value: int, is_online: bool) -> int:
        """Index of the first tier with this value and online flag, or -1."""
        for i, prize in enumerate(self.prize_tiers):
            if prize.value == value and prize.is_online_prize == is_online:
                return i
        return -1

    def prize_index_by_id(self, prize_id: int) -> int:
        for i, prize in enumerate(self.prize_tiers):
            if prize.id == prize_id:
                return i
        return -1

    def module_by_number(self, game_number: int):
        for module in self.game_modules:
            if module.game_number == game_number:
                return module
        return None

    def linked_prize(self, symbol: Optional[Symbol]) -> Optional[PrizeTier]:
        """Non-online prize whose text code equals the symbol's name."""
        if symbol is None:
            return None
        for prize in self.prize_tiers:
            if prize.text_code == symbol.name and not prize.is_online_prize:
                return prize
        return None

    @staticmethod
    def symbol_by_id(symbols: list[Symbol], symbol_id: int) -> Optional[Symbol]:
        return next((s for s in symbols if s.id == symbol_id), None)

    @staticmethod
    def symbol_by_name(symbols: list[Symbol], name: str) -> Optional[Symbol]:
        return next((s for s in symbols if s.name == name), None)


# ═══════════════════════════════════════════════════════════════
# Generated Output
# ═══════════════════════════════════════════════════════════════

class GamePlayData(BaseModel):
    """The generated panel for one module on one ticket.

    `generated_symbol_ids` holds symbol IDs, or prize-tier indices for the
    prize-based variants. `prize_tier_index` is -1 unless this module won.
    """
    game_number: int = 0
    generated_symbol_ids: list[int] = Field(default_factory=list)
    prize_tier_index: int = -1
    winning_game_flag: int = 0     # legacy


class Ticket(BaseModel):
    win_prize: PrizeTier
    game_data: list[GamePlayData] = Field(default_factory=list)

    @property
    def is_winner(self) -> bool:
        return self.win_prize.value > 0


_TICKETS = TypeAdapter(list[Ticket])


def load_project(path) -> CardProject:
    return CardProject.model_validate_json(Path(path).read_text())


def load_tickets(path) -> list[Ticket]:
    return _TICKETS.validate_json(Path(path).read_text())


def dump_tickets(tickets: list[Ticket], path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_TICKETS.dump_json(tickets, indent=2))
    return path
