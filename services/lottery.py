"""Random winner selection without replacement."""

from __future__ import annotations

import random
from typing import Iterable, List, Optional, Sequence

from core import get_logger

logger = get_logger(__name__)


class RandomSelector:
    """Uniform winner selection service.

    Winners are decided here, before any reveal starts; the animation only
    dramatizes the outcome. A fixed ``seed`` makes rehearsals repeatable.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None) -> None:
        """Initialize the selector.

        Args:
            seed: Optional seed for a repeatable sequence of draws
            rng: Pre-built random generator, takes precedence over ``seed``
        """
        self.seed = seed
        self.rng = rng or random.Random(seed)
        if seed is not None:
            logger.info(f"Random selector seeded with {seed}")

    def select_winners(self, remaining: Iterable[str], count: int) -> List[str]:
        """Pick ``count`` distinct entries uniformly at random.

        Each step draws one entry uniformly from a working copy and removes it
        by swapping with the last element, so every remaining entry is equally
        likely at every step. The caller's collection is not modified.

        Args:
            remaining: Entries still eligible to win
            count: Number of winners requested

        Returns:
            Winners in draw order; ``min(count, len(remaining))`` of them

        Raises:
            ValueError: If count is negative
        """
        if count < 0:
            raise ValueError("Number of winners cannot be negative")

        pool = list(remaining)
        sample_size = min(count, len(pool))
        winners: List[str] = []
        for _ in range(sample_size):
            index = self.rng.randrange(len(pool))
            pool[index], pool[-1] = pool[-1], pool[index]
            winners.append(pool.pop())

        logger.debug(f"Selected {len(winners)} winners from {len(pool) + len(winners)} entries")
        return winners

    def random_digit(self, exclude: Optional[int] = None) -> int:
        """Uniform digit 0-9, optionally never equal to ``exclude``."""
        if exclude is None:
            return self.rng.randrange(10)
        digit = self.rng.randrange(9)
        return digit + 1 if digit >= exclude else digit

    def choice(self, entries: Sequence[str]) -> str:
        return self.rng.choice(entries)
