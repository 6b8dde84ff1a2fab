"""Random number sources used for prize selection and wager draws."""

from __future__ import annotations

import itertools
import random
from typing import Iterable, Optional, Protocol


class RandomSource(Protocol):
    """Narrow interface over the two kinds of draws the game performs."""

    def randbelow(self, n: int) -> int:
        """Return a uniformly distributed integer in ``[0, n)``."""
        ...

    def random(self) -> float:
        """Return a uniformly distributed float in ``[0.0, 1.0)``."""
        ...


class DefaultRandomSource:
    """Pseudo-random source backed by :class:`random.Random`.

    Cryptographic strength is not required for the game, so the Mersenne
    Twister generator is used. Pass ``seed`` for reproducible runs.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def randbelow(self, n: int) -> int:
        if n <= 0:
            raise ValueError("n must be positive")
        return self._rng.randrange(n)

    def random(self) -> float:
        return self._rng.random()


class SequenceRandomSource:
    """Deterministic source that replays fixed sequences, cycling forever.

    ``randbelow`` reduces each integer modulo ``n`` so a single sequence can
    be reused across pools of different sizes.
    """

    def __init__(
        self,
        integers: Iterable[int] = (0,),
        floats: Iterable[float] = (0.0,),
    ) -> None:
        integer_list = list(integers)
        float_list = list(floats)
        if not integer_list or not float_list:
            raise ValueError("sequences must not be empty")
        for value in float_list:
            if not 0.0 <= value < 1.0:
                raise ValueError("float draws must lie in [0.0, 1.0)")
        self._integers = itertools.cycle(integer_list)
        self._floats = itertools.cycle(float_list)

    def randbelow(self, n: int) -> int:
        if n <= 0:
            raise ValueError("n must be positive")
        return next(self._integers) % n

    def random(self) -> float:
        return next(self._floats)


DEFAULT_RANDOM_SOURCE = DefaultRandomSource()

__all__ = [
    "DEFAULT_RANDOM_SOURCE",
    "DefaultRandomSource",
    "RandomSource",
    "SequenceRandomSource",
]
