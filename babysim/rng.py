"""
babysim/rng.py
~~~~~~~~~~~~~~
Injected randomness. Every stochastic branch in the engine pulls its draws
from a ``RandomSource`` handed in by the caller, never from module state.

Two implementations are provided:
  - SeededRandom: wraps ``random.Random`` for reproducible play-throughs
  - DrawSequence: replays a fixed list of pre-drawn values (tests, replays)
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")


class DrawsExhausted(RuntimeError):
    """Raised when a DrawSequence has no values left."""


class RandomSource(ABC):
    """A source of uniform draws in ``[0, 1)``; helpers are derived from it."""

    @abstractmethod
    def random(self) -> float:
        pass

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.random()

    def chance(self, probability: float) -> bool:
        return self.random() < probability

    def choice(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("Cannot choose from an empty sequence.")
        index = int(self.random() * len(options))
        return options[min(index, len(options) - 1)]

    def weighted_choice(self, options: Sequence[T], weights: Sequence[float]) -> T:
        """Cumulative draw over ``options`` in the order given."""
        if not options or len(options) != len(weights):
            raise ValueError("options and weights must be non-empty and the same length.")
        total = sum(weights)
        roll = self.random() * total
        cumulative = 0.0
        for option, weight in zip(options, weights):
            cumulative += weight
            if roll < cumulative:
                return option
        return options[-1]


class SeededRandom(RandomSource):
    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._random = random.Random(seed)

    def random(self) -> float:
        return self._random.random()


class DrawSequence(RandomSource):
    """Replays pre-drawn values in order."""

    def __init__(self, draws: Iterable[float]):
        self._draws = list(draws)
        self._position = 0

    @property
    def consumed(self) -> int:
        return self._position

    @property
    def remaining(self) -> int:
        return len(self._draws) - self._position

    def random(self) -> float:
        if self._position >= len(self._draws):
            raise DrawsExhausted(
                f"All {len(self._draws)} pre-drawn values have been consumed."
            )
        value = self._draws[self._position]
        self._position += 1
        return value
