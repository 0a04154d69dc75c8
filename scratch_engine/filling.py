"""
Scratch-Card Engine - Panel-Filling Primitives

Three ways to fill the slots of a losing (or decoy) panel, in increasing
order of showmanship:

    fill_unique               every item distinct, no near-miss possible
    fill_allowing_near_miss   items may repeat up to required_matches - 1
    fill_weighted_near_misses a chosen number of deliberate near-miss sets,
                              the rest unique decoys

None of them ever places an item `required_matches` times, so a filled
panel can never be an accidental win.
"""

from __future__ import annotations

from collections import Counter
from typing import Callable, Hashable, Iterable, Optional

from scratch_config.card_schema import NearMissWeighting
from scratch_engine.errors import InsufficientVarietyError
from scratch_engine.rng import RandomStream

# 1-in-N chance that a losing panel leads with a high-value near-miss
HIGH_VALUE_NEAR_MISS_ODDS = 4


def distinct(items: Iterable[Hashable]) -> list:
    """Order-preserving de-duplication."""
    return list(dict.fromkeys(items))


def count_near_miss_sets(panel: list[int], required_matches: int) -> int:
    """How many items appear exactly required_matches - 1 times."""
    if required_matches <= 1:
        return 0
    return sum(1 for n in Counter(panel).values() if n == required_matches - 1)


def fill_unique(slots: int, item_pool: list[int], rng: RandomStream) -> list[int]:
    """Draw `slots` distinct items from the pool's distinct values."""
    unique = distinct(item_pool)
    if len(unique) < slots:
        raise InsufficientVarietyError(
            f"Cannot fill {slots} slots with no near misses: only "
            f"{len(unique)} unique items available."
        )
    return rng.shuffled(unique)[:slots]


def fill_allowing_near_miss(slots: int, item_pool: list[int], required_matches: int,
                            rng: RandomStream) -> list[int]:
    """Fill slots letting each item repeat at most required_matches - 1 times."""
    required_matches = max(required_matches, 2)
    cap = required_matches - 1
    unique_count = len(distinct(item_pool))
    if unique_count * cap < slots:
        raise InsufficientVarietyError(
            f"Cannot fill {slots} slots without a win: {unique_count} unique "
            f"items is too few for the 'Match {required_matches}' rule."
        )

    pool = list(item_pool)
    counts: Counter = Counter()
    panel = []
    for _ in range(slots):
        eligible = [item for item in pool if counts[item] < cap]
        if not eligible:
            rng.shuffle(pool)
            eligible = list(pool)
            counts.clear()
        item = rng.choice(eligible)
        panel.append(item)
        counts[item] += 1
    return panel


def near_miss_weights(max_sets: int, weighting: NearMissWeighting) -> list[int]:
    """Sampling list over 1..max_sets.

    max_sets=3: LOW -> [1,1,1,2,2,3], BALANCED -> [1,2,3], HIGH -> [1,2,2,3,3,3]
    """
    weights = []
    for k in range(1, max_sets + 1):
        if weighting == NearMissWeighting.LOW:
            weights.extend([k] * (max_sets - k + 1))
        elif weighting == NearMissWeighting.BALANCED:
            weights.append(k)
        else:
            weights.extend([k] * k)
    return weights


def fill_weighted_near_misses(slots: int, item_pool: list[int], required_matches: int,
                              rng: RandomStream,
                              weighting: NearMissWeighting = NearMissWeighting.HIGH,
                              favour_high_value: bool = False,
                              valuation: Optional[Callable[[int], int]] = None) -> list[int]:
    """Build an engaging losing panel with a controlled number of near-misses.

    The number of near-miss sets is drawn from `near_miss_weights`. With
    `favour_high_value`, one panel in HIGH_VALUE_NEAR_MISS_ODDS leads with an
    item from the top quarter of the pool ranked by `valuation`. Each
    near-miss item fills required_matches - 1 slots; the remainder is unique
    decoys, or capped repeats when unique decoys run out.
    """
    slots_per_near_miss = required_matches - 1
    if slots_per_near_miss <= 0:
        return fill_unique(slots, item_pool, rng)

    unique = distinct(item_pool)
    max_sets = min(slots // slots_per_near_miss, len(unique))
    if max_sets == 0:
        return fill_allowing_near_miss(slots, item_pool, required_matches, rng)

    target_sets = rng.choice(near_miss_weights(max_sets, weighting))
    available = rng.shuffled(unique)
    near_miss_items = []

    if (favour_high_value and valuation is not None and target_sets > 0
            and rng.next_int(HIGH_VALUE_NEAR_MISS_ODDS) == 0):
        top_quarter = sorted(item_pool, key=valuation, reverse=True)
        top_quarter = top_quarter[:max(1, len(item_pool) // 4)]
        if top_quarter:
            high_value_item = rng.choice(top_quarter)
            near_miss_items.append(high_value_item)
            available.remove(high_value_item)

    near_miss_items.extend(available[:max(0, target_sets - len(near_miss_items))])

    panel = [item for item in near_miss_items for _ in range(slots_per_near_miss)]
    remaining = slots - len(panel)
    decoys = rng.shuffled(item for item in unique if item not in near_miss_items)

    if len(decoys) < remaining:
        safe_pool = [item for item in item_pool if item not in near_miss_items]
        panel.extend(fill_allowing_near_miss(remaining, safe_pool, required_matches, rng))
    else:
        panel.extend(decoys[:remaining])

    return rng.shuffle(panel)
