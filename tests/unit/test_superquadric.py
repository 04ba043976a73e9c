import numpy as np
import pytest

from procgeo.core.errors import ParameterError
from procgeo.core.mesh import quads
from procgeo.surfaces.superquadric import (
    SphereParams,
    TorusParams,
    evaluate_superquadric_sphere,
    evaluate_superquadric_torus,
)


@pytest.mark.parametrize("radius", [0.5, 1.0, 2.0, 7.5])
def test_round_sphere_points_lie_on_radius(radius: float) -> None:
    grid = evaluate_superquadric_sphere(SphereParams(radius, 1.0, 1.0, -radius, radius, 360.0), divisions=12)
    r = np.linalg.norm(grid.positions, axis=-1)
    np.testing.assert_allclose(r, radius, rtol=1e-9)


def test_sphere_equator_point() -> None:
    grid = evaluate_superquadric_sphere(SphereParams(2.0, 1.0, 1.0, -2.0, 2.0, 360.0), divisions=4)
    assert grid.positions.shape == (5, 5, 3)
    np.testing.assert_allclose(grid.positions[0, 2], [2.0, 0.0, 0.0], atol=1e-12)
    attr = grid.point(0, 2)
    assert attr.position[3] == 1.0


def test_sphere_normals_are_unit_length() -> None:
    grid = evaluate_superquadric_sphere(SphereParams(1.0, 0.4, 2.5, -1.0, 1.0, 360.0), divisions=16)
    lengths = np.linalg.norm(grid.normals, axis=-1)
    counted = grid.counts > 0
    np.testing.assert_allclose(lengths[counted], 1.0, atol=1e-3)
    assert np.all(np.isfinite(grid.normals))


def test_collapsed_pole_rows_are_not_counted() -> None:
    grid = evaluate_superquadric_sphere(SphereParams(2.0, 1.0, 1.0, -2.0, 2.0, 360.0), divisions=4)
    # South pole quads have a zero-length longitude edge and no cross product.
    np.testing.assert_array_equal(grid.counts[:, 0], 0)
    np.testing.assert_array_equal(grid.normals[:, 0], 0.0)
    # North pole quads are proper triangles and still count.
    np.testing.assert_array_equal(grid.counts[:, -1], [1, 2, 2, 2, 1])
    assert np.all(grid.normals[:, -1, 2] > 0.8)
    lengths = np.linalg.norm(grid.normals, axis=-1)
    np.testing.assert_allclose(lengths[grid.counts > 0], 1.0, atol=1e-3)
    assert grid.counts[2, 2] == 4


def test_round_sphere_normals_point_outward() -> None:
    grid = evaluate_superquadric_sphere(SphereParams(1.0, 1.0, 1.0, -0.9, 0.9, 360.0), divisions=24)
    dots = np.sum(grid.normals * grid.positions, axis=-1)
    assert np.all(dots[2:-2, 2:-2] > 0.95)


def test_quads_emit_grid_corners_in_order() -> None:
    grid = evaluate_superquadric_sphere(SphereParams(1.0, 1.0, 1.0, -1.0, 1.0, 360.0), divisions=3)
    seen = 0
    for ui, vi, corners, normals, _flat in quads(grid):
        np.testing.assert_array_equal(corners[0], grid.positions[ui, vi])
        np.testing.assert_array_equal(corners[1], grid.positions[ui + 1, vi])
        np.testing.assert_array_equal(corners[2], grid.positions[ui + 1, vi + 1])
        np.testing.assert_array_equal(corners[3], grid.positions[ui, vi + 1])
        np.testing.assert_array_equal(normals[2], grid.normals[ui + 1, vi + 1])
        seen += 1
    assert seen == 9


def test_sphere_z_bounds_are_clamped_not_rejected() -> None:
    grid = evaluate_superquadric_sphere(SphereParams(1.0, 1.0, 1.0, -5.0, 5.0, 360.0), divisions=6)
    assert grid.positions[..., 2].min() == pytest.approx(-1.0)
    assert grid.positions[..., 2].max() == pytest.approx(1.0)


def test_sphere_partial_theta_and_z_cut() -> None:
    grid = evaluate_superquadric_sphere(SphereParams(1.0, 1.0, 1.0, 0.0, 0.5, 90.0), divisions=8)
    assert grid.positions[..., 2].min() == pytest.approx(0.0, abs=1e-12)
    assert grid.positions[..., 2].max() == pytest.approx(0.5)
    assert np.all(grid.positions[..., 0] >= -1e-12)
    assert np.all(grid.positions[..., 1] >= -1e-12)


@pytest.mark.parametrize(
    "kwargs, param",
    [
        (dict(radius=0.0, zmin=-1.0, zmax=1.0), "radius"),
        (dict(radius=-1.0, zmin=-1.0, zmax=1.0), "radius"),
        (dict(radius=1.0, zmin=0.5, zmax=0.5), "zmin"),
        (dict(radius=1.0, zmin=1.0, zmax=-1.0), "zmin"),
        (dict(radius=1.0, thetamax=0.0), "thetamax"),
        (dict(radius=1.0, thetamax=361.0), "thetamax"),
    ],
)
def test_sphere_validation(kwargs, param) -> None:
    with pytest.raises(ParameterError) as info:
        SphereParams(**kwargs)
    assert info.value.param == param
    assert param in str(info.value)


def test_divisions_must_be_positive() -> None:
    with pytest.raises(ParameterError):
        evaluate_superquadric_sphere(SphereParams(), divisions=0)


def test_torus_round_tube_distance() -> None:
    r1, r2 = 2.0, 0.5
    grid = evaluate_superquadric_torus(TorusParams(r1, r2, 1.0, 1.0, -180.0, 180.0, 360.0), divisions=16)
    p = grid.positions
    ring = np.hypot(p[..., 0], p[..., 1]) - r1
    np.testing.assert_allclose(np.hypot(ring, p[..., 2]), r2, atol=1e-9)


def test_torus_phi_bounds_clamped() -> None:
    grid = evaluate_superquadric_torus(TorusParams(1.0, 0.25, 1.0, 1.0, -400.0, 400.0), divisions=8)
    expected = evaluate_superquadric_torus(TorusParams(1.0, 0.25, 1.0, 1.0, -180.0, 180.0), divisions=8)
    np.testing.assert_allclose(grid.positions, expected.positions)


@pytest.mark.parametrize(
    "kwargs, param",
    [
        (dict(radius1=0.0), "radius1"),
        (dict(radius2=-0.1), "radius2"),
        (dict(phimin=10.0, phimax=10.0), "phimin"),
        (dict(thetamax=-5.0), "thetamax"),
    ],
)
def test_torus_validation(kwargs, param) -> None:
    with pytest.raises(ParameterError) as info:
        TorusParams(**kwargs)
    assert info.value.param == param


def test_sphere_grid_to_mesh_counts() -> None:
    grid = evaluate_superquadric_sphere(SphereParams(radius=1.0), divisions=5)
    mesh = grid.to_mesh(color=(0.2, 0.4, 0.6))
    assert mesh.num_vertices == 36
    assert mesh.faces.shape == (25, 4)
    np.testing.assert_allclose(mesh.colors[0], [0.2, 0.4, 0.6])
