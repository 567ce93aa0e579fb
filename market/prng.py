"""
Seeded pseudo-random number generator for the synthetic market dataset.

A small linear congruential generator (LCG). It exists so the fact table is
bit-reproducible: the same seed always yields the same stream of floats,
independent of platform, Python version or numpy's generator changes.

    state = (state * 9301 + 49297) % 233280
    value = state / 233280            -> float in [0, 1)

Every helper below consumes exactly one draw, so callers can reason about
draw order (the fact generator depends on it).

Reference states for seed 42 (first three draws): 206659, 190736, 223713.
"""

MULTIPLIER = 9301
INCREMENT = 49297
MODULUS = 233280


class SeededRandom:
    """Deterministic float stream in [0, 1). State is local to the instance."""

    def __init__(self, seed: int = 42):
        self.seed = seed
        self._state = seed % MODULUS

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        self._state = (self._state * MULTIPLIER + INCREMENT) % MODULUS
        return self._state / MODULUS

    def scaled(self, low: float, span: float) -> float:
        """One draw mapped to [low, low + span).

        Takes the span rather than the upper bound: `0.9 + r * 0.2` and
        `0.9 + r * (1.1 - 0.9)` differ in the last bit.
        """
        return low + self.next() * span

    def choice(self, options, default=""):
        """Pick one element with a single draw; `default` for an empty sequence.

        The draw is consumed either way so record draw counts stay fixed.
        """
        r = self.next()
        if not options:
            return default
        return options[int(r * len(options))]

    def reset(self):
        """Rewind to the initial seed."""
        self._state = self.seed % MODULUS
