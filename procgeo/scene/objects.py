"""Celestial scene records and the object-kind dispatch.

Objects are plain frozen records; the kind is a closed enum and
:func:`evaluate_object` is the single place that maps a kind to an evaluator.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterable, List, Tuple

import numpy as np

from ..core.errors import ParameterError
from ..core.mesh import MeshData, SurfaceGrid, merge_meshes
from ..core.rng import RandomSource
from ..core.utils import ensure_unit_vectors, get_logger, rotation_xyz
from ..surfaces.superquadric import (
    DEFAULT_DIVISIONS,
    SphereParams,
    TorusParams,
    evaluate_superquadric_sphere,
    evaluate_superquadric_torus,
)

_log = get_logger()

Vec3 = Tuple[float, float, float]


class ObjectKind(Enum):
    REGULAR_SPHERE = "sphere"
    SUPERQUADRIC_SPHERE = "sqsphere"
    TORUS = "sqtorus"


class SurfaceKind(Enum):
    MATTE = "matte"
    PLASTIC = "plastic"
    METAL = "metal"


@dataclass(frozen=True)
class Material:
    surface: SurfaceKind = SurfaceKind.PLASTIC
    ka: float = 0.3
    kd: float = 0.9
    ks: float = 0.5
    specular: Vec3 = (0.8, 0.8, 0.8)
    exponent: float = 10.0


@dataclass(frozen=True)
class CelestialObject:
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation_deg: Vec3 = (0.0, 0.0, 0.0)
    scale: Vec3 = (1.0, 1.0, 1.0)
    north: float = 1.0
    east: float = 1.0
    color: Vec3 = (1.0, 1.0, 1.0)
    kind: ObjectKind = ObjectKind.SUPERQUADRIC_SPHERE
    radius1: float = 0.0
    radius2: float = 0.0
    emits_light: bool = False
    light_intensity: float = 0.0
    material: Material = field(default_factory=Material)

    def __post_init__(self) -> None:
        if self.kind is ObjectKind.TORUS and (self.radius1 <= 0.0 or self.radius2 <= 0.0):
            raise ParameterError("radius1", "Torus objects need positive radius1 and radius2.")


def make_sun(intensity: float = 12.0) -> CelestialObject:
    return CelestialObject(
        north=0.3,
        east=0.3,
        color=(1.0, 1.0, 0.7),
        emits_light=True,
        light_intensity=intensity,
        material=Material(SurfaceKind.METAL, 1.0, 1.0, 0.2, (1.0, 1.0, 0.7), 10.0),
    )


def make_planet(position: Vec3, scale: float, north: float, east: float, color: Vec3) -> CelestialObject:
    return CelestialObject(
        position=position,
        scale=(scale, scale, scale),
        north=north,
        east=east,
        color=color,
        material=Material(SurfaceKind.PLASTIC, 0.3, 0.9, 0.5, (0.8, 0.8, 0.8), 10.0),
    )


def make_ring(angle_x: float, angle_y: float, radius1: float, radius2: float,
              north: float, east: float, color: Vec3) -> CelestialObject:
    return CelestialObject(
        rotation_deg=(angle_x, angle_y, 0.0),
        north=north,
        east=east,
        color=color,
        kind=ObjectKind.TORUS,
        radius1=radius1,
        radius2=radius2,
        material=Material(SurfaceKind.PLASTIC, 0.15, 0.7, 0.3, (0.4, 0.4, 0.6), 8.0),
    )


def solar_system() -> List[CelestialObject]:
    """Sun, planets, moon and asteroid followed by the gear torus and the two rings."""
    bodies = [
        make_sun(),
        make_planet((-3.0, 0.0, 3.0), 0.8, 2.0, 2.0, (0.4, 0.4, 0.8)),
        make_planet((4.0, -1.0, -2.0), 1.2, 0.5, 2.0, (0.3, 0.8, 0.3)),
        make_planet((5.5, 0.0, -3.0), 0.4, 2.0, 0.5, (0.8, 0.8, 0.8)),
        CelestialObject(
            position=(-3.0, -1.0, -3.0),
            rotation_deg=(15.0, 20.0, 0.0),
            scale=(0.3, 0.3, 1.0),
            north=0.3,
            east=0.3,
            color=(0.7, 0.6, 0.5),
            material=Material(SurfaceKind.PLASTIC, 0.2, 0.9, 0.3, (0.5, 0.5, 0.5), 5.0),
        ),
    ]
    tori = [
        CelestialObject(
            position=(-4.0, 2.0, -3.0),
            rotation_deg=(75.0, 0.0, 0.0),
            north=1.0,
            east=0.2,
            color=(0.9, 0.7, 0.5),
            kind=ObjectKind.TORUS,
            radius1=0.8,
            radius2=0.4,
            material=Material(SurfaceKind.PLASTIC, 0.2, 0.9, 0.4, (0.6, 0.6, 0.6), 5.0),
        ),
        make_ring(30.0, 0.0, 4.0, 0.1, 1.0, 0.2, (0.5, 0.5, 0.8)),
        make_ring(0.0, 45.0, 5.5, 0.2, 2.0, 2.0, (0.5, 0.5, 0.5)),
    ]
    return bodies + tori


def _regular_sphere(obj: CelestialObject, divisions: int) -> SurfaceGrid:
    return evaluate_superquadric_sphere(SphereParams(radius=1.0), divisions)


def _superquadric_sphere(obj: CelestialObject, divisions: int) -> SurfaceGrid:
    return evaluate_superquadric_sphere(SphereParams(radius=1.0, north=obj.north, east=obj.east), divisions)


def _torus(obj: CelestialObject, divisions: int) -> SurfaceGrid:
    return evaluate_superquadric_torus(
        TorusParams(radius1=obj.radius1, radius2=obj.radius2, north=obj.north, east=obj.east), divisions
    )


_EVALUATORS: Dict[ObjectKind, Callable[[CelestialObject, int], SurfaceGrid]] = {
    ObjectKind.REGULAR_SPHERE: _regular_sphere,
    ObjectKind.SUPERQUADRIC_SPHERE: _superquadric_sphere,
    ObjectKind.TORUS: _torus,
}


def evaluate_object(obj: CelestialObject, divisions: int = DEFAULT_DIVISIONS) -> MeshData:
    """Evaluate an object's surface and place it in world space.

    Points are scaled, rotated (``Rx @ Ry @ Rz``) and translated; normals go
    through the inverse-transpose of the linear part and are renormalized.
    """
    grid = _EVALUATORS[obj.kind](obj, divisions)
    mesh = grid.to_mesh(color=obj.color)

    S = np.diag(np.asarray(obj.scale, dtype=np.float64))
    M = rotation_xyz(*obj.rotation_deg) @ S
    vertices = mesh.vertices @ M.T + np.asarray(obj.position, dtype=np.float64)
    with np.errstate(divide="ignore"):
        inv_scale = np.where(np.asarray(obj.scale) != 0.0, 1.0 / np.asarray(obj.scale, dtype=np.float64), 0.0)
    N = rotation_xyz(*obj.rotation_deg) @ np.diag(inv_scale)
    normals = ensure_unit_vectors(mesh.normals @ N.T)
    return MeshData(vertices=vertices, normals=normals, colors=mesh.colors, faces=mesh.faces)


def build_scene_mesh(objects: Iterable[CelestialObject], divisions: int = DEFAULT_DIVISIONS) -> MeshData:
    objects = list(objects)
    mesh = merge_meshes(evaluate_object(obj, divisions) for obj in objects)
    _log.info("Scene built: %d objects → %d vertices, %d faces", len(objects), mesh.num_vertices, mesh.num_faces)
    return mesh


@dataclass(frozen=True)
class StarfieldConfig:
    """Star counts; out-of-range values are replaced the way the scene tool always did."""
    total: int = 40
    superquadric: int = 8
    light: int = 5

    def resolved(self) -> "StarfieldConfig":
        defaults = StarfieldConfig()
        total, sq, light = self.total, self.superquadric, self.light
        if total <= 0:
            _log.warning("Invalid star count %d, using default value: %d", total, defaults.total)
            total = defaults.total
        if not (0 <= sq <= total):
            _log.warning("Invalid superquadric star count %d, using default value: %d", sq, defaults.superquadric)
            sq = defaults.superquadric
        if not (0 <= light <= total - sq):
            _log.warning("Invalid light-emitting star count %d, using default value: %d", light, defaults.light)
            light = defaults.light
        if sq + light > total:
            sq = total // 2
            light = total - sq
            _log.warning("Adjusted star counts to match total. Superquadric: %d, Light-emitting: %d", sq, light)
        return replace(self, total=total, superquadric=sq, light=light)


_SQ_STAR_COLORS: Tuple[Vec3, ...] = ((0.7, 0.7, 1.0), (1.0, 0.7, 0.7), (1.0, 1.0, 0.8))
_LIGHT_STAR_COLORS: Tuple[Vec3, ...] = ((0.6, 0.6, 1.0), (1.0, 0.6, 0.6), (1.0, 1.0, 0.8))


def _spherical(radius: float, theta: float, phi: float) -> Vec3:
    return (radius * math.sin(theta) * math.cos(phi),
            radius * math.sin(theta) * math.sin(phi),
            radius * math.cos(theta))


def generate_starfield(cfg: StarfieldConfig, rng: RandomSource) -> List[CelestialObject]:
    cfg = cfg.resolved()
    stars: List[CelestialObject] = []

    for _ in range(cfg.total - cfg.superquadric - cfg.light):
        phi = rng.uniform_range(0.0, 2.0 * math.pi)
        theta = rng.uniform_range(0.0, math.pi)
        radius = rng.uniform_range(8.0, 15.0)
        s = rng.uniform_range(0.03, 0.08)
        brightness = rng.uniform_range(0.7, 1.0)
        stars.append(CelestialObject(
            position=_spherical(radius, theta, phi),
            scale=(s, s, s),
            color=(brightness, brightness, brightness),
            kind=ObjectKind.REGULAR_SPHERE,
            material=Material(SurfaceKind.MATTE, 0.8, 0.9, 0.0),
        ))

    for i in range(cfg.superquadric):
        phi = rng.uniform_range(0.0, 2.0 * math.pi)
        theta = rng.uniform_range(0.0, math.pi)
        radius = rng.uniform_range(7.0, 13.0)
        s = rng.uniform_range(0.08, 0.15)
        north = rng.uniform_range(0.2, 0.5)
        east = rng.uniform_range(0.2, 0.5)
        rot = (rng.uniform_range(0.0, 90.0), rng.uniform_range(0.0, 90.0), rng.uniform_range(0.0, 90.0))
        stars.append(CelestialObject(
            position=_spherical(radius, theta, phi),
            rotation_deg=rot,
            scale=(s, s, s),
            north=north,
            east=east,
            color=_SQ_STAR_COLORS[i % 3],
        ))

    for i in range(cfg.light):
        phi = 2.0 * math.pi * i / cfg.light
        theta = math.pi * (0.3 + 0.4 * rng.uniform())
        radius = 10.0 + rng.uniform_range(-1.0, 1.0)
        stars.append(CelestialObject(
            position=_spherical(radius, theta, phi),
            scale=(0.25, 0.25, 0.25),
            color=_LIGHT_STAR_COLORS[i % 3],
            emits_light=True,
            light_intensity=0.3,
        ))

    _log.debug("Starfield: %d regular, %d superquadric, %d light-emitting",
               cfg.total - cfg.superquadric - cfg.light, cfg.superquadric, cfg.light)
    return stars
