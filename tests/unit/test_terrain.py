import numpy as np
import pytest

from procgeo.core.errors import ParameterError
from procgeo.terrain.fractal import (
    BLEND_WIDTH,
    DEEP_WATER,
    GRASS,
    SAND,
    SHALLOW_WATER,
    SNOW,
    HeightGrid,
    TerrainParams,
    color_heights,
    generate_terrain,
    terrain_color,
    terrain_camera,
    terrain_filename,
    terrain_mesh,
)


def test_terrain_is_deterministic_for_a_seed() -> None:
    params = TerrainParams(n=2, dimension=2.5, seed=42, sigma=1.0)
    first = generate_terrain(params)
    second = generate_terrain(params)
    assert first.heights.shape == (5, 5)
    np.testing.assert_array_equal(first.heights, second.heights)


def test_terrain_corners_are_seeded_and_differ_by_seed() -> None:
    a = generate_terrain(TerrainParams(n=3, dimension=2.2, seed=1))
    b = generate_terrain(TerrainParams(n=3, dimension=2.2, seed=2))
    assert np.all(a.corners() != 0.0)
    assert not np.allclose(a.corners(), b.corners())


def test_terrain_fills_every_cell() -> None:
    grid = generate_terrain(TerrainParams(n=5, dimension=2.8, seed=9, sigma=3.0))
    assert grid.size == 33
    assert np.all(np.isfinite(grid.heights))
    assert np.count_nonzero(grid.heights == 0.0) == 0


def test_min_max_follow_each_grid() -> None:
    low = HeightGrid(np.full((3, 3), -1.0))
    high = HeightGrid(np.arange(9, dtype=float).reshape(3, 3))
    assert (low.min_height, low.max_height) == (-1.0, -1.0)
    assert (high.min_height, high.max_height) == (0.0, 8.0)
    high.heights[1, 1] = 100.0
    assert high.max_height == 100.0


def test_normalized_flat_grid_is_zero() -> None:
    np.testing.assert_array_equal(HeightGrid(np.ones((3, 3))).normalized(), np.zeros((3, 3)))


@pytest.mark.parametrize(
    "h, expected",
    [
        (0.0, DEEP_WATER),
        (0.10, DEEP_WATER),
        (0.25, SHALLOW_WATER),
        (0.35, SAND),
        (0.50, GRASS),
        (0.95, SNOW),
        (1.0, SNOW),
    ],
)
def test_terrain_color_bands(h, expected) -> None:
    np.testing.assert_allclose(terrain_color(h), expected)


def test_terrain_color_blends_at_threshold_midpoint() -> None:
    mid = terrain_color(0.20)
    expected = 0.5 * (np.array(DEEP_WATER) + np.array(SHALLOW_WATER))
    np.testing.assert_allclose(mid, expected)
    start = terrain_color(0.20 - BLEND_WIDTH)
    np.testing.assert_allclose(start, DEEP_WATER)


def test_terrain_color_is_continuous() -> None:
    hs = np.linspace(0.0, 1.0, 2001)
    colors = np.array([terrain_color(h) for h in hs])
    jumps = np.abs(np.diff(colors, axis=0)).max(axis=1)
    # Each blend spans 2 * BLEND_WIDTH, so a step of 1/2000 moves at most step/(2*bw) of a color gap.
    assert jumps.max() < (1.0 / 2000) / (2 * BLEND_WIDTH) + 1e-9


def test_color_heights_uses_grid_range() -> None:
    grid = HeightGrid(np.array([[0.0, 10.0], [5.0, 2.0]]))
    colors = color_heights(grid)
    np.testing.assert_allclose(colors[0, 0], DEEP_WATER)
    np.testing.assert_allclose(colors[0, 1], SNOW)
    np.testing.assert_allclose(colors[1, 0], GRASS)


def test_terrain_mesh_layout() -> None:
    grid = generate_terrain(TerrainParams(n=2, dimension=2.5, seed=42))
    mesh = terrain_mesh(grid)
    size = grid.size
    assert mesh.num_vertices == size * size
    assert mesh.num_faces == (size - 1) ** 2 * 2
    # vertex y*size + x carries heights[y][x]
    np.testing.assert_allclose(mesh.vertices[1 * size + 3], [3 * 25.0, 1 * 25.0, grid.heights[1][3]])
    np.testing.assert_array_equal(mesh.faces[0], [0, 1, size])
    np.testing.assert_array_equal(mesh.faces[1], [1, size + 1, size])
    assert mesh.vertices[:, 0].max() == pytest.approx(100.0)


@pytest.mark.parametrize(
    "kwargs, param",
    [
        (dict(n=0, dimension=2.5, seed=1), "n"),
        (dict(n=3, dimension=1.9, seed=1), "dimension"),
        (dict(n=3, dimension=3.1, seed=1), "dimension"),
        (dict(n=3, dimension=2.5, seed=1, sigma=0.0), "sigma"),
    ],
)
def test_terrain_validation(kwargs, param) -> None:
    with pytest.raises(ParameterError) as info:
        TerrainParams(**kwargs)
    assert info.value.param == param


def test_terrain_filename() -> None:
    assert terrain_filename(6, 2.5, 12345) == "t6d2_5s345.rd"


def test_terrain_camera_looks_at_center() -> None:
    eye, at = terrain_camera()
    assert eye == (150.0, 150.0, 50.0)
    assert at == pytest.approx((50.0, 50.0, -18.0))


def test_negative_seed_is_deterministic() -> None:
    params = TerrainParams(n=2, dimension=2.5, seed=-7, sigma=1.0)
    first = generate_terrain(params)
    second = generate_terrain(params)
    np.testing.assert_array_equal(first.heights, second.heights)
    assert not np.array_equal(first.heights, generate_terrain(TerrainParams(n=2, dimension=2.5, seed=7)).heights)
    assert terrain_filename(2, 2.5, -7) == "t2d2_5s993.rd"
