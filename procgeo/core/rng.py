from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple
import math
import numpy as np

DEFAULT_SEED = 12345
SEED_MASK = 0xFFFF_FFFF_FFFF_FFFF


@dataclass
class RandomSource:
    """Seeded random stream shared by the generators.

    Wraps a ``numpy.random.Generator`` so every generator call can own its own
    stream. Two sources built from the same seed produce identical sequences;
    a source passed between calls keeps advancing (reproducible within one run).
    """
    seed: Optional[int] = DEFAULT_SEED
    generator: Optional[np.random.Generator] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.generator is None:
            # numpy only takes non-negative seeds; wrap any int into 64 bits.
            seed = None if self.seed is None else int(self.seed) & SEED_MASK
            self.generator = np.random.default_rng(seed)

    def uniform(self) -> float:
        """Uniform draw in [0, 1)."""
        return float(self.generator.random())

    def uniform_range(self, lo: float, hi: float) -> float:
        return lo + (hi - lo) * self.uniform()

    def gaussian(self) -> float:
        return float(self.generator.standard_normal())

    def unit_direction(self) -> np.ndarray:
        phi = self.uniform() * 2.0 * math.pi
        cos_theta = 2.0 * self.uniform() - 1.0
        sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
        return np.array([sin_theta * math.cos(phi), sin_theta * math.sin(phi), cos_theta], dtype=np.float64)

    def point_in_sphere(self, radius: float) -> Tuple[np.ndarray, np.ndarray]:
        """Uniform point inside a ball plus the radial unit direction it was built from."""
        direction = self.unit_direction()
        r = radius * self.uniform() ** (1.0 / 3.0)
        return direction * r, direction

    def pick(self, row: Sequence[float]) -> int:
        """Index of the first entry whose running sum exceeds a uniform draw."""
        u = self.uniform()
        cumulative = 0.0
        for idx, p in enumerate(row):
            cumulative += p
            if u < cumulative:
                return idx
        return len(row) - 1
