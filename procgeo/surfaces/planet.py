"""Noise-displaced planet surfaces.

A unit icosphere is pushed outward along each vertex direction by fractal
Perlin noise. Directions with negative noise stay on the unit sphere and read
as ocean floor.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from ..core.errors import ParameterError, require_positive, require_range
from ..core.mesh import MeshData, vertex_normals
from ..core.rng import RandomSource
from ..core.utils import get_logger

_log = get_logger()

Color = Tuple[float, float, float]

MAX_SUBDIVISIONS = 7
TABLE_SIZE = 256

DEEP_WATER = (0x00 / 255.0, 0x33 / 255.0, 0x66 / 255.0)
SHALLOW_WATER = (0x00 / 255.0, 0x66 / 255.0, 0x99 / 255.0)
SAND = (0xC2 / 255.0, 0xB2 / 255.0, 0x80 / 255.0)
GRASS = (0x55 / 255.0, 0x90 / 255.0, 0x20 / 255.0)
ROCK = (0x80 / 255.0, 0x80 / 255.0, 0x80 / 255.0)
SNOW = (1.0, 1.0, 1.0)

SHALLOW_BAND = 0.02
SAND_BAND = 0.06
GRASS_LIMIT = 0.2
ROCK_LIMIT = 0.3

# Eye and look-at point framing the whole planet; scene up is +z.
PLANET_CAMERA = ((0.0, -2.5, 0.0), (0.0, 0.0, 0.0))

_T = (1.0 + 5.0 ** 0.5) / 2.0
ICOSAHEDRON_VERTICES = np.array(
    [
        [-1, _T, 0], [1, _T, 0], [-1, -_T, 0], [1, -_T, 0],
        [0, -1, _T], [0, 1, _T], [0, -1, -_T], [0, 1, -_T],
        [_T, 0, -1], [_T, 0, 1], [-_T, 0, -1], [-_T, 0, 1],
    ],
    dtype=np.float64,
)
# Counter-clockwise seen from outside.
ICOSAHEDRON_FACES = np.array(
    [
        [0, 11, 5], [0, 5, 1], [0, 1, 7], [0, 7, 10], [0, 10, 11],
        [1, 5, 9], [5, 11, 4], [11, 10, 2], [10, 7, 6], [7, 1, 8],
        [3, 9, 4], [3, 4, 2], [3, 2, 6], [3, 6, 8], [3, 8, 9],
        [4, 9, 5], [2, 4, 11], [6, 2, 10], [8, 6, 7], [9, 8, 1],
    ],
    dtype=np.int64,
)


@dataclass(frozen=True)
class PlanetParams:
    subdivisions: int = 3
    noise_scale: float = 1.5
    octaves: int = 6
    persistence: float = 0.5
    lacunarity: float = 2.0
    strength: float = 0.4
    ocean_level: float = 0.05

    def __post_init__(self) -> None:
        if not 0 <= self.subdivisions <= MAX_SUBDIVISIONS:
            raise ParameterError(
                "subdivisions",
                f"subdivisions must be within [0, {MAX_SUBDIVISIONS}] (got {self.subdivisions}).",
            )
        if self.octaves < 1:
            raise ParameterError("octaves", f"octaves must be at least 1 (got {self.octaves}).")
        require_positive("noise_scale", self.noise_scale)
        if not 0.0 < self.persistence <= 1.0:
            raise ParameterError("persistence", f"persistence must be within (0, 1] (got {self.persistence}).")
        require_range("lacunarity", self.lacunarity, 1.0, 8.0)
        require_positive("strength", self.strength)
        if self.ocean_level < 0.0:
            raise ParameterError("ocean_level", f"ocean_level must not be negative (got {self.ocean_level}).")


def _fade(t: np.ndarray) -> np.ndarray:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _lerp(t: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return a + t * (b - a)


def _grad(h: np.ndarray, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
    h = h & 15
    u = np.where(h < 8, x, y)
    v = np.where(h < 4, y, np.where((h == 12) | (h == 14), x, z))
    return np.where(h & 1, -u, u) + np.where(h & 2, -v, v)


class PerlinNoise:
    """Improved 3D Perlin noise over a seeded permutation table.

    The table is a Fisher-Yates shuffle of ``0..255`` driven by ``rng`` and
    doubled to 512 entries so lattice lookups never wrap. Noise is zero on
    every integer lattice point.
    """

    def __init__(self, rng: RandomSource) -> None:
        perm = list(range(TABLE_SIZE))
        for i in range(TABLE_SIZE - 1, 0, -1):
            j = int(rng.uniform() * (i + 1))
            perm[i], perm[j] = perm[j], perm[i]
        self.permutation = np.array(perm, dtype=np.int64)
        self._p = np.concatenate([self.permutation, self.permutation])

    def noise(self, points: np.ndarray) -> np.ndarray:
        """Noise values for an ``(N, 3)`` array of points."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        cell = np.floor(pts)
        X, Y, Z = (cell.astype(np.int64) & (TABLE_SIZE - 1)).T
        x, y, z = (pts - cell).T
        u, v, w = _fade(x), _fade(y), _fade(z)

        p = self._p
        A = p[X] + Y
        AA = p[A] + Z
        AB = p[A + 1] + Z
        B = p[X + 1] + Y
        BA = p[B] + Z
        BB = p[B + 1] + Z

        near = _lerp(
            v,
            _lerp(u, _grad(p[AA], x, y, z), _grad(p[BA], x - 1, y, z)),
            _lerp(u, _grad(p[AB], x, y - 1, z), _grad(p[BB], x - 1, y - 1, z)),
        )
        far = _lerp(
            v,
            _lerp(u, _grad(p[AA + 1], x, y, z - 1), _grad(p[BA + 1], x - 1, y, z - 1)),
            _lerp(u, _grad(p[AB + 1], x, y - 1, z - 1), _grad(p[BB + 1], x - 1, y - 1, z - 1)),
        )
        return _lerp(w, near, far)

    def fbm(
        self,
        points: np.ndarray,
        octaves: int,
        persistence: float,
        lacunarity: float,
        scale: float = 1.0,
    ) -> np.ndarray:
        """Fractal sum of octaves, divided by the total amplitude and clipped to [-1, 1]."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        total = np.zeros(len(pts), dtype=np.float64)
        frequency, amplitude, norm = 1.0, 1.0, 0.0
        for _ in range(octaves):
            total += amplitude * self.noise(pts * (frequency * scale))
            norm += amplitude
            frequency *= lacunarity
            amplitude *= persistence
        return np.clip(total / norm, -1.0, 1.0)


def icosphere(subdivisions: int) -> Tuple[np.ndarray, np.ndarray]:
    """Unit icosphere: each level splits every triangle into four.

    Returns ``(vertices, faces)`` with ``10 * 4**k + 2`` vertices and
    ``20 * 4**k`` faces for ``k`` subdivisions.
    """
    verts = [v / np.linalg.norm(v) for v in ICOSAHEDRON_VERTICES]
    faces = [tuple(int(i) for i in f) for f in ICOSAHEDRON_FACES]

    for _ in range(subdivisions):
        cache: Dict[Tuple[int, int], int] = {}

        def midpoint(a: int, b: int) -> int:
            key = (a, b) if a < b else (b, a)
            if key not in cache:
                m = verts[a] + verts[b]
                verts.append(m / np.linalg.norm(m))
                cache[key] = len(verts) - 1
            return cache[key]

        refined = []
        for a, b, c in faces:
            ab, bc, ca = midpoint(a, b), midpoint(b, c), midpoint(c, a)
            refined.extend([(a, ab, ca), (b, bc, ab), (c, ca, bc), (ab, bc, ca)])
        faces = refined

    return np.asarray(verts, dtype=np.float64), np.asarray(faces, dtype=np.int64)


def planet_color(elevation: float, ocean_level: float) -> Color:
    if elevation < ocean_level:
        return DEEP_WATER
    if elevation < ocean_level + SHALLOW_BAND:
        return SHALLOW_WATER
    if elevation < ocean_level + SAND_BAND:
        return SAND
    if elevation < GRASS_LIMIT:
        return GRASS
    if elevation < ROCK_LIMIT:
        return ROCK
    return SNOW


def planet_colors(elevation: np.ndarray, ocean_level: float) -> np.ndarray:
    """Band colors, shape (N, 3), for an array of elevations."""
    e = np.asarray(elevation, dtype=np.float64).reshape(-1)
    choices = [
        e < ocean_level,
        e < ocean_level + SHALLOW_BAND,
        e < ocean_level + SAND_BAND,
        e < GRASS_LIMIT,
        e < ROCK_LIMIT,
    ]
    palette = [DEEP_WATER, SHALLOW_WATER, SAND, GRASS, ROCK]
    out = np.empty((len(e), 3), dtype=np.float64)
    for channel in range(3):
        out[:, channel] = np.select(choices, [c[channel] for c in palette], default=SNOW[channel])
    return out


@dataclass(frozen=True)
class PlanetSurface:
    """Unit directions, their elevations above the unit sphere, and triangle indices."""
    directions: np.ndarray
    elevation: np.ndarray
    faces: np.ndarray
    ocean_level: float

    @property
    def vertices(self) -> np.ndarray:
        return self.directions * (1.0 + self.elevation)[:, None]

    def to_mesh(self) -> MeshData:
        vertices = self.vertices
        return MeshData(
            vertices=vertices,
            normals=vertex_normals(vertices, self.faces),
            colors=planet_colors(self.elevation, self.ocean_level),
            faces=self.faces,
        )


def generate_planet(params: PlanetParams, rng: RandomSource) -> PlanetSurface:
    """Displace a unit icosphere by ``strength * max(0, fbm)``.

    Elevations therefore lie in ``[0, strength]``. The noise table is the
    only thing drawn from ``rng``, so one seed always gives one planet.
    """
    directions, faces = icosphere(params.subdivisions)
    noise = PerlinNoise(rng)
    value = noise.fbm(
        directions,
        params.octaves,
        params.persistence,
        params.lacunarity,
        scale=params.noise_scale,
    )
    elevation = params.strength * np.maximum(value, 0.0)
    surface = PlanetSurface(directions=directions, elevation=elevation, faces=faces, ocean_level=params.ocean_level)
    land = float(np.mean(elevation >= params.ocean_level))
    _log.info("Planet generated: %d vertices, %d faces (octaves=%d, strength=%.2f, land %.0f%%)",
              len(directions), len(faces), params.octaves, params.strength, 100.0 * land)
    return surface
