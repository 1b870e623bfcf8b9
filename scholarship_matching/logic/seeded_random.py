"""
Seeded pseudo-random generator for reproducible training runs.

A linear congruential generator; create one instance per training run and pass
it to every shuffle so identical data and seed give bit-identical models.
"""

from typing import List, MutableSequence, TypeVar

T = TypeVar("T")

_MULTIPLIER = 1103515245
_INCREMENT = 12345
_MODULUS_MASK = 0x7FFFFFFF


class SeededRandom:
    def __init__(self, seed: int = 42):
        self.seed = seed
        self.current = seed

    def next(self) -> float:
        """Next value in [0, 1]."""
        self.current = (self.current * _MULTIPLIER + _INCREMENT) & _MODULUS_MASK
        return self.current / _MODULUS_MASK

    def next_int(self, upper: int) -> int:
        """Next integer in [0, upper)."""
        return min(int(self.next() * upper), upper - 1)

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        """Fisher-Yates shuffle in place, walking from the end."""
        for i in range(len(items) - 1, 0, -1):
            j = self.next_int(i + 1)
            items[i], items[j] = items[j], items[i]
        return items

    def permutation(self, n: int) -> List[int]:
        return list(self.shuffle(list(range(n))))
