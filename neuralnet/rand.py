"""
rand.py
~~~~~~~

Reproducible pseudo-random streams for weight initialization.

A Rand is a (seed, state) pair. The state counts how many 64-bit values
have already been drawn from the seeded stream, which lets a restored
network continue exactly where the original left off.
"""

import math
from dataclasses import dataclass

import numpy as np

from neuralnet import matutil
from neuralnet.errors import ConfigMismatch
from neuralnet.matutil import Matrix


@dataclass(frozen=True)
class Rand:
    """Seed plus the number of draws already consumed from its stream."""

    seed: int = 0
    state: int = 0

    def __post_init__(self) -> None:
        if self.seed < 0 or self.state < 0:
            raise ConfigMismatch(
                f"rand seed and state must be non-negative, "
                f"got seed={self.seed}, state={self.state}"
            )

    def stream(self) -> np.random.Generator:
        """
        Return a generator seeded with seed and advanced state draws.

        Returns:
            numpy Generator backed by a PCG64 bit generator
        """
        bit_generator = np.random.PCG64(self.seed)
        bit_generator.advance(self.state)
        return np.random.Generator(bit_generator)

    def advanced(self, draws: int) -> 'Rand':
        """Return the position reached after drawing `draws` more values."""
        return Rand(seed=self.seed, state=self.state + draws)


def random_array(size: int, fan_in: float, rng: np.random.Generator) -> np.ndarray:
    """
    Draw values uniformly from [-1/sqrt(fan_in), 1/sqrt(fan_in)].

    Each value consumes exactly one draw from the generator.

    Args:
        size: Number of values to draw
        fan_in: Number of inputs feeding the neurons being initialized
        rng: Generator to draw from

    Returns:
        1-D float64 array of length size
    """
    if fan_in <= 0:
        raise ConfigMismatch(f"fan-in must be positive, got {fan_in}")
    bound = 1.0 / math.sqrt(fan_in)
    return rng.uniform(-bound, bound, size)


def random_matrix(rows: int, cols: int, rng: np.random.Generator) -> Matrix:
    """Draw a (rows, cols) weight matrix scaled by its fan-in (cols)."""
    return matutil.new_matrix(rows, cols, random_array(rows * cols, cols, rng))
