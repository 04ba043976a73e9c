from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from ..config import JobConfig, load_config
from ..core.mesh import MeshData
from ..core.rng import DEFAULT_SEED, RandomSource
from ..runtime.builders import (
    build_dynamic_transport,
    build_planet,
    build_sphere,
    build_starfield,
    build_static_transport,
    build_terrain,
    build_torus,
    build_writer,
    format_for_path,
)
from ..scene.objects import build_scene_mesh, generate_starfield, solar_system
from ..surfaces.planet import PLANET_CAMERA, generate_planet
from ..surfaces.superquadric import evaluate_superquadric_sphere, evaluate_superquadric_torus
from ..terrain.fractal import generate_terrain, terrain_camera, terrain_mesh
from ..transport.dynamic import run_dynamic
from ..transport.static import generate_tracks


@dataclass(frozen=True)
class GenerationResult:
    """Summary of a generation run driven by a configuration file."""

    stats: Dict[str, int]
    output_path: Path
    config: JobConfig


def _meshes(cfg: JobConfig, seed: int, stats: Dict[str, int]) -> Iterator[MeshData]:
    gen = cfg.generator
    if gen.kind == "sqsphere":
        grid = evaluate_superquadric_sphere(build_sphere(gen), gen.divisions)
        stats["grid_points"] = (grid.divisions + 1) ** 2
        yield grid.to_mesh(color=gen.color)
    elif gen.kind == "sqtorus":
        grid = evaluate_superquadric_torus(build_torus(gen), gen.divisions)
        stats["grid_points"] = (grid.divisions + 1) ** 2
        yield grid.to_mesh(color=gen.color)
    elif gen.kind == "terrain":
        heights = generate_terrain(build_terrain(gen, seed))
        stats["grid_points"] = heights.size ** 2
        yield terrain_mesh(heights, footprint=gen.footprint)
    elif gen.kind == "planet":
        surface = generate_planet(build_planet(gen), RandomSource(seed=seed))
        stats["land_vertices"] = int((surface.elevation >= gen.ocean_level).sum())
        yield surface.to_mesh()
    elif gen.kind == "static_transport":
        result = generate_tracks(build_static_transport(gen), RandomSource(seed=seed))
        stats["tracks"] = len(result.tracks)
        stats["fission_events"] = len(result.fission_events)
        yield result.to_mesh(shells=gen.shells)
    elif gen.kind == "dynamic_transport":
        frames = 0
        for frame in run_dynamic(build_dynamic_transport(gen), RandomSource(seed=seed)):
            frames += 1
            yield frame.to_mesh()
        stats["frames"] = frames
    elif gen.kind == "scene":
        rng = RandomSource(seed=seed)
        objects = generate_starfield(build_starfield(gen), rng)
        if gen.include_solar_system:
            objects += solar_system()
        stats["objects"] = len(objects)
        yield build_scene_mesh(objects, gen.divisions)
    else:
        raise ValueError(f"Unsupported generator kind: {gen.kind}")


def generate_from_config(
    config: Union[str, Path, JobConfig],
    *,
    output: Optional[Path] = None,
    seed: Optional[int] = None,
) -> GenerationResult:
    """Run the generator described by a configuration file or object.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~procgeo.config.schema.JobConfig`.
    output:
        Optional override for the output file. The extension drives the
        format (``.ply``, ``.npz``, ``.las``, ``.laz`` or ``.rd``).
    seed:
        Optional RNG seed. Falls back to the value in the config or ``12345``.

    Returns
    -------
    GenerationResult
        Basic statistics (vertices, faces, lines written plus generator
        specific counts), the resolved output path and the configuration used.
    """

    cfg = load_config(config) if not isinstance(config, JobConfig) else config.model_copy(deep=True)

    if output is not None:
        out_path = Path(output).resolve()
        cfg.output.path = out_path
        cfg.output.format = format_for_path(out_path)  # type: ignore[assignment]
        if cfg.output.format == "las":
            cfg.output.compress = False
    else:
        cfg.output.path = Path(cfg.output.path).resolve()
    cfg.output.path.parent.mkdir(parents=True, exist_ok=True)
    # Re-run the cross-field checks after overrides.
    cfg = JobConfig.model_validate(cfg.model_dump())

    run_seed = seed if seed is not None else (cfg.seed if cfg.seed is not None else DEFAULT_SEED)
    animated = cfg.generator.kind == "dynamic_transport"
    camera = None
    if cfg.generator.kind == "terrain":
        camera = terrain_camera(cfg.generator.footprint)
    elif cfg.generator.kind == "planet":
        camera = PLANET_CAMERA
    writer = build_writer(cfg.output, animated=animated, title=cfg.generator.kind, camera=camera)

    stats: Dict[str, int] = {"vertices": 0, "faces": 0, "lines": 0}
    try:
        for mesh in _meshes(cfg, run_seed, stats):
            stats["vertices"] += mesh.num_vertices
            stats["faces"] += mesh.num_faces
            stats["lines"] += len(mesh.lines)
            writer.write(mesh)
    finally:
        writer.close()

    return GenerationResult(stats=stats, output_path=Path(cfg.output.path), config=cfg)


def summarize(result: GenerationResult) -> Tuple[str, ...]:
    return tuple(f"{k}={v}" for k, v in sorted(result.stats.items()))
