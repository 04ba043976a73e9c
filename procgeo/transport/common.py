from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class FissionEvent:
    """Where and when a fission happened. Kept for display and decay only.

    ``time`` is simulated time for the dynamic population and the step index
    along the track for static tracks, which have no clock.
    """
    position: Tuple[float, float, float]
    time: float

    @classmethod
    def at(cls, position: np.ndarray, time: float) -> "FissionEvent":
        x, y, z = (float(c) for c in position)
        return cls(position=(x, y, z), time=float(time))


def shell_wireframe(radius: float, segments: int = 48) -> np.ndarray:
    """Three great circles (XY, XZ, YZ) of a sphere as line segments, shape (3*segments, 2, 3)."""
    t = np.linspace(0.0, 2.0 * np.pi, segments + 1)
    c, s, z = radius * np.cos(t), radius * np.sin(t), np.zeros_like(t)
    loops = [
        np.column_stack([c, s, z]),
        np.column_stack([c, z, s]),
        np.column_stack([z, c, s]),
    ]
    segs = [np.stack([loop[:-1], loop[1:]], axis=1) for loop in loops]
    return np.concatenate(segs, axis=0)
