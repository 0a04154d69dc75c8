"""
Scratch-Card Engine - Seeded Random Stream

One RandomStream is threaded through every generation call for a ticket
batch. Draw order is part of the output contract: the same seed and the
same module order reproduce byte-identical tickets.

Independent streams (one per pack, per worker, ...) are derived from a
master seed with SHA-256 so partitioned runs stay reproducible:

    rng = RandomStream.derive(master_seed, "lvw", pack_index)
"""

from __future__ import annotations

import hashlib
import random
from typing import Iterable, Sequence, TypeVar

T = TypeVar("T")


def derive_seed(master_seed: int, *labels) -> int:
    """Deterministic 64-bit child seed: SHA-256(master:label:label...)."""
    combined = ":".join([str(master_seed), *(str(label) for label in labels)])
    digest = hashlib.sha256(combined.encode()).hexdigest()
    return int(digest[:16], 16)


class RandomStream:
    """Sequential random source shared by all modules of a generation pass.

    Not thread-safe; give each worker its own stream via `derive`.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self._random = random.Random(seed)

    @classmethod
    def derive(cls, master_seed: int, *labels) -> "RandomStream":
        return cls(derive_seed(master_seed, *labels))

    def next_int(self, upper: int) -> int:
        """Uniform int in [0, upper)."""
        return self._random.randrange(upper)

    def choice(self, items: Sequence[T]) -> T:
        return items[self.next_int(len(items))]

    def shuffle(self, items: list) -> list:
        """Fisher-Yates in place; returns the same list for chaining."""
        n = len(items)
        while n > 1:
            n -= 1
            k = self.next_int(n + 1)
            items[k], items[n] = items[n], items[k]
        return items

    def shuffled(self, items: Iterable[T]) -> list[T]:
        return self.shuffle(list(items))
