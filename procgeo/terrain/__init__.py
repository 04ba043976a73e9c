from .fractal import (
    HeightGrid,
    TerrainParams,
    color_heights,
    generate_terrain,
    terrain_camera,
    terrain_color,
    terrain_filename,
    terrain_mesh,
)

__all__ = [
    "HeightGrid",
    "TerrainParams",
    "color_heights",
    "generate_terrain",
    "terrain_camera",
    "terrain_color",
    "terrain_filename",
    "terrain_mesh",
]
