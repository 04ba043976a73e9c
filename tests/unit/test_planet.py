import numpy as np
import pytest

from procgeo.core.errors import ParameterError
from procgeo.core.rng import RandomSource
from procgeo.surfaces.planet import (
    DEEP_WATER,
    GRASS,
    ROCK,
    SAND,
    SHALLOW_WATER,
    SNOW,
    PerlinNoise,
    PlanetParams,
    generate_planet,
    icosphere,
    planet_color,
    planet_colors,
)


def test_planet_is_deterministic_for_a_seed() -> None:
    params = PlanetParams(subdivisions=2)
    first = generate_planet(params, RandomSource(seed=7)).to_mesh()
    second = generate_planet(params, RandomSource(seed=7)).to_mesh()
    other = generate_planet(params, RandomSource(seed=8)).to_mesh()
    np.testing.assert_array_equal(first.vertices, second.vertices)
    np.testing.assert_array_equal(first.colors, second.colors)
    assert not np.array_equal(first.vertices, other.vertices)


def test_planet_accepts_negative_seeds() -> None:
    params = PlanetParams(subdivisions=1)
    a = generate_planet(params, RandomSource(seed=-11))
    b = generate_planet(params, RandomSource(seed=-11))
    np.testing.assert_array_equal(a.elevation, b.elevation)


@pytest.mark.parametrize("strength", [0.05, 0.2, 1.0])
def test_displacement_stays_within_strength(strength: float) -> None:
    surface = generate_planet(PlanetParams(subdivisions=3, strength=strength), RandomSource(seed=3))
    mesh = surface.to_mesh()
    height = np.linalg.norm(mesh.vertices, axis=1) - 1.0
    assert height.min() >= -1e-12
    assert height.max() <= strength + 1e-12
    # Some of the surface rises and some stays at sea floor.
    assert np.any(height > 0.0)
    assert np.any(surface.elevation == 0.0)
    np.testing.assert_allclose(height, surface.elevation, atol=1e-12)


def test_elevation_scales_with_strength() -> None:
    low = generate_planet(PlanetParams(subdivisions=2, strength=0.1), RandomSource(seed=5))
    high = generate_planet(PlanetParams(subdivisions=2, strength=0.3), RandomSource(seed=5))
    np.testing.assert_allclose(high.elevation, 3.0 * low.elevation, atol=1e-12)


def test_vertices_move_along_their_directions() -> None:
    surface = generate_planet(PlanetParams(subdivisions=2), RandomSource(seed=1))
    unit = surface.vertices / np.linalg.norm(surface.vertices, axis=1)[:, None]
    np.testing.assert_allclose(unit, surface.directions, atol=1e-12)


def test_permutation_is_a_shuffle_of_the_table() -> None:
    a = PerlinNoise(RandomSource(seed=1))
    b = PerlinNoise(RandomSource(seed=2))
    np.testing.assert_array_equal(np.sort(a.permutation), np.arange(256))
    assert not np.array_equal(a.permutation, np.arange(256))
    assert not np.array_equal(a.permutation, b.permutation)


def test_noise_vanishes_on_lattice_points() -> None:
    noise = PerlinNoise(RandomSource(seed=4))
    lattice = np.array([[0, 0, 0], [1, 2, 3], [-4, 7, -1], [255, 256, -300]], dtype=np.float64)
    np.testing.assert_allclose(noise.noise(lattice), 0.0, atol=1e-12)
    off = noise.noise(np.array([[0.3, 0.6, 0.2], [1.7, 2.4, 3.9]]))
    assert np.all(np.abs(off) <= 1.5)
    assert np.any(off != 0.0)


def test_noise_is_smooth() -> None:
    noise = PerlinNoise(RandomSource(seed=4))
    p = np.array([[0.31, 0.52, 0.77]])
    step = np.array([[1e-6, 0.0, 0.0]])
    assert abs(noise.noise(p + step)[0] - noise.noise(p)[0]) < 1e-4


def test_fbm_single_octave_is_scaled_noise() -> None:
    noise = PerlinNoise(RandomSource(seed=9))
    pts = np.array([[0.1, 0.2, 0.3], [0.9, -0.4, 0.5], [-0.7, 0.7, 0.1]])
    expected = np.clip(noise.noise(pts * 1.5), -1.0, 1.0)
    np.testing.assert_allclose(noise.fbm(pts, 1, 0.5, 2.0, scale=1.5), expected)
    many = noise.fbm(pts, 6, 0.5, 2.0, scale=1.5)
    assert np.all(np.abs(many) <= 1.0)


@pytest.mark.parametrize("k", [0, 1, 2, 3])
def test_icosphere_counts_and_orientation(k: int) -> None:
    vertices, faces = icosphere(k)
    assert vertices.shape == (10 * 4 ** k + 2, 3)
    assert faces.shape == (20 * 4 ** k, 3)
    np.testing.assert_allclose(np.linalg.norm(vertices, axis=1), 1.0)
    tris = vertices[faces]
    n = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    assert np.all(np.einsum("ij,ij->i", n, tris.mean(axis=1)) > 0.0)
    # Closed surface: every edge is shared by exactly two faces.
    edges = np.sort(np.concatenate([faces[:, [0, 1]], faces[:, [1, 2]], faces[:, [2, 0]]]), axis=1)
    _, counts = np.unique(edges, axis=0, return_counts=True)
    assert np.all(counts == 2)


def test_mesh_normals_point_outward() -> None:
    surface = generate_planet(PlanetParams(subdivisions=2, strength=0.01), RandomSource(seed=2))
    mesh = surface.to_mesh()
    np.testing.assert_allclose(np.linalg.norm(mesh.normals, axis=1), 1.0)
    assert np.all(np.einsum("ij,ij->i", mesh.normals, surface.directions) > 0.9)
    assert mesh.num_faces == 320


@pytest.mark.parametrize(
    "elevation, expected",
    [
        (0.0, DEEP_WATER),
        (0.049, DEEP_WATER),
        (0.05, SHALLOW_WATER),
        (0.08, SAND),
        (0.15, GRASS),
        (0.25, ROCK),
        (0.35, SNOW),
    ],
)
def test_planet_color_bands(elevation: float, expected) -> None:
    assert planet_color(elevation, 0.05) == expected


def test_vectorized_colors_match_scalar_bands() -> None:
    elevation = np.linspace(0.0, 0.4, 41)
    colors = planet_colors(elevation, 0.1)
    for e, c in zip(elevation, colors):
        assert tuple(c) == pytest.approx(planet_color(float(e), 0.1))


@pytest.mark.parametrize(
    "kwargs, param",
    [
        ({"subdivisions": -1}, "subdivisions"),
        ({"subdivisions": 8}, "subdivisions"),
        ({"octaves": 0}, "octaves"),
        ({"noise_scale": 0.0}, "noise_scale"),
        ({"persistence": 0.0}, "persistence"),
        ({"persistence": 1.5}, "persistence"),
        ({"lacunarity": 0.5}, "lacunarity"),
        ({"strength": -0.1}, "strength"),
        ({"ocean_level": -0.01}, "ocean_level"),
    ],
)
def test_planet_params_validation(kwargs, param: str) -> None:
    with pytest.raises(ParameterError) as exc:
        PlanetParams(**kwargs)
    assert exc.value.param == param
