from .planet import (
    PLANET_CAMERA,
    PerlinNoise,
    PlanetParams,
    PlanetSurface,
    generate_planet,
    icosphere,
    planet_color,
    planet_colors,
)
from .superquadric import (
    DEFAULT_DIVISIONS,
    SphereParams,
    TorusParams,
    evaluate_superquadric_sphere,
    evaluate_superquadric_torus,
)

__all__ = [
    "DEFAULT_DIVISIONS",
    "PLANET_CAMERA",
    "PerlinNoise",
    "PlanetParams",
    "PlanetSurface",
    "SphereParams",
    "TorusParams",
    "evaluate_superquadric_sphere",
    "evaluate_superquadric_torus",
    "generate_planet",
    "icosphere",
    "planet_color",
    "planet_colors",
]
