import logging

import numpy as np
import pytest

from procgeo.core.errors import ParameterError
from procgeo.core.rng import RandomSource
from procgeo.scene.objects import (
    CelestialObject,
    ObjectKind,
    StarfieldConfig,
    build_scene_mesh,
    evaluate_object,
    generate_starfield,
    solar_system,
)


def test_solar_system_layout() -> None:
    objects = solar_system()
    assert len(objects) == 8
    assert objects[0].emits_light
    assert sum(o.kind is ObjectKind.TORUS for o in objects) == 3
    for o in objects:
        if o.kind is ObjectKind.TORUS:
            assert o.radius1 > 0 and o.radius2 > 0


def test_torus_needs_radii() -> None:
    with pytest.raises(ParameterError):
        CelestialObject(kind=ObjectKind.TORUS, radius1=1.0, radius2=0.0)


def test_translated_sphere_is_centered_on_position() -> None:
    obj = CelestialObject(position=(2.0, -1.0, 5.0), scale=(0.5, 0.5, 0.5), kind=ObjectKind.REGULAR_SPHERE)
    mesh = evaluate_object(obj, divisions=12)
    d = np.linalg.norm(mesh.vertices - np.array([2.0, -1.0, 5.0]), axis=1)
    assert np.allclose(d, 0.5)
    assert mesh.num_vertices == 13 * 13
    assert mesh.num_faces == 12 * 12


def test_rotation_keeps_normals_unit() -> None:
    obj = CelestialObject(rotation_deg=(30.0, 40.0, 50.0), scale=(1.0, 2.0, 0.5), north=0.5, east=2.0)
    mesh = evaluate_object(obj, divisions=10)
    lengths = np.linalg.norm(mesh.normals, axis=1)
    nonzero = lengths > 0
    assert np.allclose(lengths[nonzero], 1.0)


def test_torus_object_is_rotated_about_x() -> None:
    ring = CelestialObject(rotation_deg=(90.0, 0.0, 0.0), kind=ObjectKind.TORUS, radius1=3.0, radius2=0.1)
    mesh = evaluate_object(ring, divisions=16)
    # A torus lying in XY stands up in XZ after a quarter turn about X.
    assert np.ptp(mesh.vertices[:, 1]) < 0.25
    assert np.ptp(mesh.vertices[:, 2]) > 5.0


def test_scene_mesh_merges_every_object() -> None:
    objects = solar_system()
    mesh = build_scene_mesh(objects, divisions=8)
    assert mesh.num_vertices == len(objects) * 81
    assert mesh.num_faces == len(objects) * 64
    assert mesh.faces.max() < mesh.num_vertices


def test_starfield_counts() -> None:
    stars = generate_starfield(StarfieldConfig(total=20, superquadric=4, light=3), RandomSource(seed=7))
    assert len(stars) == 20
    assert sum(s.kind is ObjectKind.REGULAR_SPHERE for s in stars) == 13
    assert sum(s.emits_light for s in stars) == 3
    for s in stars:
        r = float(np.linalg.norm(s.position))
        assert 7.0 <= r <= 15.0


def test_starfield_is_seeded() -> None:
    a = generate_starfield(StarfieldConfig(), RandomSource(seed=3))
    b = generate_starfield(StarfieldConfig(), RandomSource(seed=3))
    assert a == b


@pytest.mark.parametrize(
    "cfg, expected",
    [
        (StarfieldConfig(total=0), (40, 8, 5)),
        (StarfieldConfig(total=10, superquadric=12, light=1), (10, 8, 1)),
        (StarfieldConfig(total=10, superquadric=4, light=9), (10, 4, 5)),
        (StarfieldConfig(total=12, superquadric=2, light=3), (12, 2, 3)),
    ],
)
def test_starfield_count_repair(cfg, expected, caplog) -> None:
    caplog.set_level(logging.WARNING, logger="procgeo")
    r = cfg.resolved()
    assert (r.total, r.superquadric, r.light) == expected
    if expected != (cfg.total, cfg.superquadric, cfg.light):
        assert caplog.records
