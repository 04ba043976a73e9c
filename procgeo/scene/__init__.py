from .objects import (
    CelestialObject,
    Material,
    ObjectKind,
    StarfieldConfig,
    SurfaceKind,
    build_scene_mesh,
    evaluate_object,
    generate_starfield,
    make_planet,
    make_ring,
    make_sun,
    solar_system,
)

__all__ = [
    "CelestialObject",
    "Material",
    "ObjectKind",
    "StarfieldConfig",
    "SurfaceKind",
    "build_scene_mesh",
    "evaluate_object",
    "generate_starfield",
    "make_planet",
    "make_ring",
    "make_sun",
    "solar_system",
]
