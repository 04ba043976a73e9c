"""Diamond-square fractal terrain.

Heights live in a ``(2**n + 1)`` square grid indexed ``[x][y]``. Refinement is
an explicit stage loop; every stage reads only what earlier stages wrote.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..core.errors import ParameterError, require_positive, require_range
from ..core.mesh import MeshData
from ..core.rng import RandomSource
from ..core.utils import get_logger

_log = get_logger()

Color = Tuple[float, float, float]

BLEND_WIDTH = 0.03
DEEP_WATER = (0.0, 0.0, 0.5)
SHALLOW_WATER = (0.0, 0.0, 0.8)
SAND = (0.76, 0.7, 0.5)
GRASS = (0.0, 0.6, 0.0)
MOUNTAIN = (0.5, 0.35, 0.05)
SNOW = (1.0, 1.0, 1.0)

# (upper threshold, band color); the last band has no upper bound.
TERRAIN_BANDS: Tuple[Tuple[float, Color], ...] = (
    (0.20, DEEP_WATER),
    (0.30, SHALLOW_WATER),
    (0.40, SAND),
    (0.60, GRASS),
    (0.80, MOUNTAIN),
)
TOP_BAND = SNOW

DEFAULT_FOOTPRINT = 100.0


@dataclass(frozen=True)
class TerrainParams:
    n: int
    dimension: float
    seed: int
    sigma: float = 1.0

    def __post_init__(self) -> None:
        if self.n < 1:
            raise ParameterError("n", f"n must be at least 1 (got {self.n}).")
        require_range("dimension", self.dimension, 2.0, 3.0)
        require_positive("sigma", self.sigma)

    @property
    def hurst(self) -> float:
        return 3.0 - self.dimension

    @property
    def size(self) -> int:
        return (1 << self.n) + 1


@dataclass
class HeightGrid:
    """Square height field; min/max are scanned from the current values on every access."""
    heights: np.ndarray

    def __post_init__(self) -> None:
        self.heights = np.asarray(self.heights, dtype=np.float64)
        if self.heights.ndim != 2 or self.heights.shape[0] != self.heights.shape[1]:
            raise ValueError("HeightGrid must be a square 2D array.")

    @property
    def size(self) -> int:
        return self.heights.shape[0]

    @property
    def min_height(self) -> float:
        return float(self.heights.min())

    @property
    def max_height(self) -> float:
        return float(self.heights.max())

    def corners(self) -> np.ndarray:
        N = self.size - 1
        h = self.heights
        return np.array([h[0, 0], h[0, N], h[N, 0], h[N, N]])

    def normalized(self) -> np.ndarray:
        lo, hi = self.min_height, self.max_height
        if hi - lo <= 0.0:
            return np.zeros_like(self.heights)
        return (self.heights - lo) / (hi - lo)


def generate_terrain(params: TerrainParams) -> HeightGrid:
    """Fill a fresh height grid by midpoint displacement.

    The same ``params`` always produce the same heights: a private random
    stream is seeded from ``params.seed`` for each call.
    """
    rng = RandomSource(seed=params.seed)
    N = 1 << params.n
    grid = np.zeros((N + 1, N + 1), dtype=np.float64)
    scale = 0.5 ** (0.5 * params.hurst)

    def f3(delta: float, a: float, b: float, c: float) -> float:
        return (a + b + c) / 3.0 + delta * rng.gaussian()

    def f4(delta: float, a: float, b: float, c: float, e: float) -> float:
        return (a + b + c + e) / 4.0 + delta * rng.gaussian()

    def perturb(delta: float, start: int, stop: int, step: int) -> None:
        for x in range(start, stop, step):
            for y in range(start, stop, step):
                grid[x][y] += delta * rng.gaussian()

    delta = params.sigma
    grid[0][0] = delta * rng.gaussian()
    grid[0][N] = delta * rng.gaussian()
    grid[N][0] = delta * rng.gaussian()
    grid[N][N] = delta * rng.gaussian()

    D, d = N, N // 2
    for _stage in range(params.n):
        delta *= scale
        for x in range(d, N, D):
            for y in range(d, N, D):
                grid[x][y] = f4(delta, grid[x + d][y + d], grid[x + d][y - d],
                                grid[x - d][y + d], grid[x - d][y - d])
        perturb(delta, 0, N + 1, D)

        delta *= scale
        for x in range(d, N, D):
            grid[x][0] = f3(delta, grid[x + d][0], grid[x - d][0], grid[x][d])
            grid[x][N] = f3(delta, grid[x + d][N], grid[x - d][N], grid[x][N - d])
            grid[0][x] = f3(delta, grid[0][x + d], grid[0][x - d], grid[d][x])
            grid[N][x] = f3(delta, grid[N][x + d], grid[N][x - d], grid[N - d][x])
        for x in range(d, N, D):
            for y in range(D, N, D):
                grid[x][y] = f4(delta, grid[x][y + d], grid[x][y - d], grid[x + d][y], grid[x - d][y])
        for x in range(D, N, D):
            for y in range(d, N, D):
                grid[x][y] = f4(delta, grid[x][y + d], grid[x][y - d], grid[x + d][y], grid[x - d][y])
        perturb(delta, 0, N + 1, D)
        perturb(delta, d, N, D)

        D //= 2
        d //= 2

    heights = HeightGrid(grid)
    _log.info("Terrain generated: %d x %d (D=%.2f, seed=%d, range %.3f..%.3f)",
              heights.size, heights.size, params.dimension, params.seed,
              heights.min_height, heights.max_height)
    return heights


def _lerp(t: float, a: Color, b: Color) -> Color:
    return (a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1]), a[2] + t * (b[2] - a[2]))


def terrain_color(h: float, blend_width: float = BLEND_WIDTH) -> Color:
    """Band color for a normalized height in [0, 1], blended linearly across each threshold."""
    for i, (thresh, color) in enumerate(TERRAIN_BANDS):
        if h < thresh - blend_width:
            return color
        if h < thresh + blend_width:
            upper = TERRAIN_BANDS[i + 1][1] if i + 1 < len(TERRAIN_BANDS) else TOP_BAND
            t = (h - (thresh - blend_width)) / (2.0 * blend_width)
            return _lerp(t, color, upper)
    return TOP_BAND


def color_heights(grid: HeightGrid) -> np.ndarray:
    """Per-cell colors, shape (size, size, 3), using this grid's own min/max."""
    norm = grid.normalized()
    out = np.empty(norm.shape + (3,), dtype=np.float64)
    for idx, h in np.ndenumerate(norm):
        out[idx] = terrain_color(float(h))
    return out


def terrain_mesh(grid: HeightGrid, footprint: float = DEFAULT_FOOTPRINT) -> MeshData:
    """Triangulated, colored terrain surface.

    Vertex ``y * size + x`` sits at ``(x*s, y*s, heights[y][x])`` with
    ``s = footprint / (size - 1)``; heights are not rescaled. Each cell
    contributes the triangles ``(v0, v1, v2)`` and ``(v1, v3, v2)``.
    """
    size = grid.size
    s = footprint / (size - 1)
    ys, xs = np.meshgrid(np.arange(size), np.arange(size), indexing="ij")
    vertices = np.column_stack([xs.ravel() * s, ys.ravel() * s, grid.heights.ravel()])
    colors = color_heights(grid).reshape(-1, 3)

    faces = []
    for y in range(size - 1):
        for x in range(size - 1):
            v0 = y * size + x
            v1 = v0 + 1
            v2 = (y + 1) * size + x
            v3 = v2 + 1
            faces.append([v0, v1, v2])
            faces.append([v1, v3, v2])
    faces_arr = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    assert len(faces_arr) == 2 * (size - 1) ** 2
    return MeshData(vertices=vertices, colors=colors, faces=faces_arr)


def terrain_filename(n: int, dimension: float, seed: int, suffix: str = ".rd") -> str:
    dim = f"{dimension:.1f}".replace(".", "_")
    return f"t{n}d{dim}s{seed % 1000}{suffix}"


def terrain_camera(footprint: float = DEFAULT_FOOTPRINT) -> Tuple[Tuple[float, float, float], Tuple[float, float, float]]:
    """Eye and look-at point viewing the terrain from above one corner."""
    half = footprint / 2.0
    return (1.5 * footprint, 1.5 * footprint, half), (half, half, -0.18 * footprint)
