"""
Scratch-Card Engine - Item Sources

The grid and row algorithms are identical for symbol games and prize games;
only the items differ. An ItemSource supplies them:

    item_pool           every item the panel may show
    winning_item        the item placed items_to_match times on a win
    decoy_pool          items safe to put next to the winning item
    highest_value_item  never offered as a near-miss (-1 when none)
    valuation           ranking used when favouring high-value near-misses

Symbol panels hold symbol IDs; prize panels hold indices into prize_tiers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from scratch_config.card_schema import CardProject, PrizeTier
from scratch_engine.rng import RandomStream


class ItemSource(ABC):
    """What a match-N panel is made of."""

    @abstractmethod
    def item_pool(self, project: CardProject) -> list[int]:
        ...

    @abstractmethod
    def winning_item(self, win_tier: PrizeTier, project: CardProject, rng: RandomStream) -> int:
        ...

    @abstractmethod
    def decoy_pool(self, winning_item: int, full_pool: list[int], project: CardProject) -> list[int]:
        ...

    @abstractmethod
    def highest_value_item(self, project: CardProject) -> int:
        ...

    @abstractmethod
    def valuation(self, item: int, project: CardProject) -> int:
        ...


class SymbolItemSource(ItemSource):
    """Items are IDs from project.available_symbols."""

    def item_pool(self, project: CardProject) -> list[int]:
        return [s.id for s in project.available_symbols]

    def winning_item(self, win_tier: PrizeTier, project: CardProject, rng: RandomStream) -> int:
        # Any symbol can carry the win; the prize is printed separately.
        return rng.choice(self.item_pool(project))

    def decoy_pool(self, winning_item: int, full_pool: list[int], project: CardProject) -> list[int]:
        return [s for s in full_pool if s != winning_item]

    def highest_value_item(self, project: CardProject) -> int:
        cash_prizes = [p for p in project.prize_tiers if not p.is_online_prize and p.value > 0]
        if not cash_prizes:
            return -1
        top = max(cash_prizes, key=lambda p: p.value)
        symbol = CardProject.symbol_by_name(project.available_symbols, top.text_code)
        return symbol.id if symbol else -1

    def valuation(self, item: int, project: CardProject) -> int:
        symbol = CardProject.symbol_by_id(project.available_symbols, item)
        prize = project.linked_prize(symbol)
        return prize.value if prize else 0


class PrizeItemSource(ItemSource):
    """Items are indices into project.prize_tiers (cash prizes only)."""

    def item_pool(self, project: CardProject) -> list[int]:
        return [
            i for i, p in enumerate(project.prize_tiers)
            if p.value > 0 and not p.is_online_prize
        ]

    def winning_item(self, win_tier: PrizeTier, project: CardProject, rng: RandomStream) -> int:
        return project.prize_index(win_tier.value, win_tier.is_online_prize)

    def decoy_pool(self, winning_item: int, full_pool: list[int], project: CardProject) -> list[int]:
        if not 0 <= winning_item < len(project.prize_tiers):
            return []
        winning_value = project.prize_tiers[winning_item].value
        return [i for i in full_pool if project.prize_tiers[i].value != winning_value]

    def highest_value_item(self, project: CardProject) -> int:
        best = -1
        for i, prize in enumerate(project.prize_tiers):
            if prize.is_online_prize:
                continue
            if best == -1 or prize.value > project.prize_tiers[best].value:
                best = i
        return best

    def valuation(self, item: int, project: CardProject) -> int:
        if 0 <= item < len(project.prize_tiers):
            return project.prize_tiers[item].value
        return 0


SYMBOL_ITEMS = SymbolItemSource()
PRIZE_ITEMS = PrizeItemSource()
