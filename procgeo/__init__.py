"""procgeo – procedural geometry generators.

Three independent pipelines share a seeded random source and a small mesh
container:
- Superquadric sphere/torus evaluation with averaged normals (surfaces.superquadric)
- Diamond-square fractal terrain with banded coloring (terrain.fractal)
- Neutron transport: one-shot shell tracks and a time-stepped population
  (transport.static, transport.dynamic)

A noise-displaced icosphere planet (surfaces.planet) and a celestial demo
scene (scene.objects) built from the superquadric evaluators round it out;
core.exporter turns results into PLY, NPZ, LAS/LAZ or scene-stream files.
"""

from .core.errors import ParameterError
from .core.rng import RandomSource
from .core.mesh import PointAttr, SurfaceGrid, MeshData
from .core.exporter import LasWriter, PlyWriter, NpzWriter, RdWriter
from .surfaces.superquadric import (SphereParams, TorusParams,
                                    evaluate_superquadric_sphere, evaluate_superquadric_torus)
from .surfaces.planet import PerlinNoise, PlanetParams, generate_planet
from .terrain.fractal import HeightGrid, TerrainParams, generate_terrain, terrain_color, terrain_mesh
from .transport.static import StaticTransportConfig, generate_tracks
from .transport.dynamic import DynamicTransportConfig, NeutronSimulation, EnergyGroup
from .scene.objects import CelestialObject, ObjectKind, build_scene_mesh, solar_system
