from __future__ import annotations

import random


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_int(self, low: int, high: int) -> int:
        """Uniform integer in the closed range ``[low, high]``."""
        return self._random.randint(low, high)

    def next_signed_unit(self, steps: int = 100) -> float:
        """Uniform value in ``[-1, 1]`` quantised to ``1 / steps``."""
        return self.next_int(-steps, steps) / float(steps)
