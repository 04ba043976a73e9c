from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from ..config.schema import OutputConfig
from ..core.errors import ParameterError
from ..core.mesh import MeshData
from ..core.rng import RandomSource
from ..runtime.builders import build_writer, format_for_path
from ..scene.objects import StarfieldConfig, build_scene_mesh, generate_starfield, solar_system
from ..sdk.run import generate_from_config, summarize
from ..surfaces.planet import PLANET_CAMERA, PlanetParams, generate_planet
from ..surfaces.superquadric import (
    SphereParams,
    TorusParams,
    evaluate_superquadric_sphere,
    evaluate_superquadric_torus,
)
from ..terrain.fractal import TerrainParams, generate_terrain, terrain_camera, terrain_filename, terrain_mesh
from ..transport.dynamic import DynamicTransportConfig, run_dynamic
from ..transport.static import StaticTransportConfig, generate_tracks

app = typer.Typer(help="procgeo procedural geometry generators")
superquadric_app = typer.Typer(help="Superquadric surfaces")
transport_app = typer.Typer(help="Neutron transport tracks and populations")
scene_app = typer.Typer(help="Composite scenes")
app.add_typer(superquadric_app, name="superquadric")
app.add_typer(transport_app, name="transport")
app.add_typer(scene_app, name="scene")

LOW_NEUTRON_WARNING = 200


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("procgeo").setLevel(numeric)


def _bad_parameter(exc: ParameterError) -> typer.BadParameter:
    return typer.BadParameter(str(exc), param_hint=f"--{exc.param.replace('_', '-')}")


def _write(output: Path, *meshes: MeshData, animated: bool = False, title: str = "procgeo", camera=None) -> Path:
    out = output.resolve()
    try:
        fmt = format_for_path(out)
    except ValueError:
        raise typer.BadParameter("Output must end with .ply, .npz, .las, .laz or .rd", param_hint="--output")
    writer = build_writer(OutputConfig(path=out, format=fmt), animated=animated, title=title, camera=camera)
    try:
        for mesh in meshes:
            writer.write(mesh)
    finally:
        writer.close()
    return out


@app.command("run")
def run(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML generator configuration."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output path (extension selects format)."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Override RNG seed."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Run a generator described by a YAML configuration file."""

    _configure_logging(log_level)
    try:
        result = generate_from_config(config, output=output, seed=seed)
    except ParameterError as exc:
        raise _bad_parameter(exc)
    typer.echo(f"Wrote {result.output_path} ({', '.join(summarize(result))})")


@app.command("terrain")
def terrain(
    n: int = typer.Option(6, "--n", help="Grid exponent; the grid is 2^n + 1 on a side."),
    dimension: float = typer.Option(2.5, "--dimension", "-D", help="Fractal dimension in [2, 3]."),
    seed: int = typer.Option(12345, "--seed", help="Random seed."),
    sigma: float = typer.Option(1.0, "--sigma", help="Initial displacement standard deviation."),
    footprint: float = typer.Option(100.0, "--footprint", help="World-space edge length of the terrain."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output path; defaults to t{n}d{D}s{seed}.rd."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Generate a diamond-square terrain mesh."""

    _configure_logging(log_level)
    try:
        params = TerrainParams(n=n, dimension=dimension, seed=seed, sigma=sigma)
    except ParameterError as exc:
        raise _bad_parameter(exc)
    out = output if output is not None else Path(terrain_filename(n, dimension, seed))
    grid = generate_terrain(params)
    written = _write(out, terrain_mesh(grid, footprint=footprint), title="Fractal Terrain", camera=terrain_camera(footprint))
    typer.echo(f"Terrain {grid.size}x{grid.size} → {written}")


@superquadric_app.command("sphere")
def superquadric_sphere(
    output: Path = typer.Argument(..., help="Output path (.ply, .npz, .las, .rd)."),
    radius: float = typer.Option(1.0, "--radius", help="Sphere radius."),
    north: float = typer.Option(1.0, "--north", help="North (latitude) exponent."),
    east: float = typer.Option(1.0, "--east", help="East (longitude) exponent."),
    zmin: Optional[float] = typer.Option(None, "--zmin", help="Lower z cut (defaults to -radius)."),
    zmax: Optional[float] = typer.Option(None, "--zmax", help="Upper z cut (defaults to radius)."),
    thetamax: float = typer.Option(360.0, "--thetamax", help="Longitude sweep in degrees, (0, 360]."),
    divisions: int = typer.Option(20, "--divisions", help="Subdivisions per parameter axis."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Evaluate a superquadric sphere."""

    _configure_logging(log_level)
    try:
        params = SphereParams(
            radius=radius,
            north=north,
            east=east,
            zmin=-radius if zmin is None else zmin,
            zmax=radius if zmax is None else zmax,
            thetamax=thetamax,
        )
        grid = evaluate_superquadric_sphere(params, divisions)
    except ParameterError as exc:
        raise _bad_parameter(exc)
    written = _write(output, grid.to_mesh(), title="Superquadric Sphere")
    typer.echo(f"Sphere grid {divisions + 1}x{divisions + 1} → {written}")


@superquadric_app.command("torus")
def superquadric_torus(
    output: Path = typer.Argument(..., help="Output path (.ply, .npz, .las, .rd)."),
    radius1: float = typer.Option(1.0, "--radius1", help="Distance from the center to the tube center."),
    radius2: float = typer.Option(0.25, "--radius2", help="Tube radius."),
    north: float = typer.Option(1.0, "--north", help="North exponent."),
    east: float = typer.Option(1.0, "--east", help="East exponent."),
    phimin: float = typer.Option(-180.0, "--phimin", help="Tube sweep start in degrees."),
    phimax: float = typer.Option(180.0, "--phimax", help="Tube sweep end in degrees."),
    thetamax: float = typer.Option(360.0, "--thetamax", help="Ring sweep in degrees, (0, 360]."),
    divisions: int = typer.Option(20, "--divisions", help="Subdivisions per parameter axis."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Evaluate a superquadric torus."""

    _configure_logging(log_level)
    try:
        params = TorusParams(radius1, radius2, north, east, phimin, phimax, thetamax)
        grid = evaluate_superquadric_torus(params, divisions)
    except ParameterError as exc:
        raise _bad_parameter(exc)
    written = _write(output, grid.to_mesh(), title="Superquadric Torus")
    typer.echo(f"Torus grid {divisions + 1}x{divisions + 1} → {written}")


@transport_app.command("static")
def transport_static(
    output: Path = typer.Argument(..., help="Output path (.ply, .npz, .las, .rd)."),
    tracks: int = typer.Option(250, "--tracks", help="Number of independent tracks."),
    points_per_track: int = typer.Option(20, "--points-per-track", help="Points sampled along each track."),
    curvature: float = typer.Option(0.4, "--curvature", help="Per-step direction perturbation."),
    core_radius: float = typer.Option(3.0, "--core-radius", help="Core shell radius."),
    reflector_radius: float = typer.Option(6.0, "--reflector-radius", help="Reflector shell radius."),
    fission_probability: float = typer.Option(0.0, "--fission-probability", help="Per-step fission chance."),
    seed: int = typer.Option(12345, "--seed", help="Random seed."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Trace one-shot neutron tracks through the shell model."""

    _configure_logging(log_level)
    try:
        cfg = StaticTransportConfig(
            tracks=tracks,
            points_per_track=points_per_track,
            curvature=curvature,
            core_radius=core_radius,
            reflector_radius=reflector_radius,
            fission_probability=fission_probability,
        )
    except ParameterError as exc:
        raise _bad_parameter(exc)
    result = generate_tracks(cfg, RandomSource(seed=seed))
    written = _write(output, result.to_mesh(), title="Neutron Tracks")
    typer.echo(f"{len(result.tracks)} tracks, {len(result.fission_events)} fission events → {written}")


@transport_app.command("dynamic")
def transport_dynamic(
    output: Path = typer.Argument(..., help="Output path (.npz, .las, .rd)."),
    neutrons: int = typer.Option(250, "--neutrons", help="Neutron pool size."),
    frames: int = typer.Option(50, "--frames", help="Number of timesteps to record."),
    timestep: float = typer.Option(0.5, "--timestep", help="Simulated time per frame."),
    absorption: float = typer.Option(0.1, "--absorption", help="Absorption share of interactions."),
    fission: float = typer.Option(0.15, "--fission", help="Fission share of interactions."),
    mean_free_path: float = typer.Option(2.0, "--mean-free-path", help="Base mean free path."),
    seed: int = typer.Option(12345, "--seed", help="Random seed."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Record a time-stepped neutron population, one frame per step."""

    _configure_logging(log_level)
    if output.suffix.lower() == ".ply":
        raise typer.BadParameter("Animated output must be .npz, .las, .laz or .rd", param_hint="--output")
    if neutrons < LOW_NEUTRON_WARNING:
        typer.echo(f"Warning: {neutrons} neutrons is a small population; results will be sparse.", err=True)
    try:
        cfg = DynamicTransportConfig(
            neutrons=neutrons,
            frames=frames,
            timestep=timestep,
            absorption_probability=absorption,
            fission_probability=fission,
            mean_free_path=mean_free_path,
        )
    except ParameterError as exc:
        raise _bad_parameter(exc)
    meshes = [frame.to_mesh() for frame in run_dynamic(cfg, RandomSource(seed=seed))]
    written = _write(output, *meshes, animated=True, title="Neutron Population")
    typer.echo(f"{len(meshes)} frames → {written}")


@scene_app.command("solar")
def scene_solar(
    output: Path = typer.Argument(..., help="Output path (.ply, .npz, .las, .rd)."),
    divisions: int = typer.Option(20, "--divisions", help="Subdivisions per object."),
    stars: int = typer.Option(40, "--stars", help="Total number of stars."),
    sq_stars: int = typer.Option(8, "--sq-stars", help="Superquadric stars among the total."),
    light_stars: int = typer.Option(5, "--light-stars", help="Light-emitting stars among the total."),
    seed: int = typer.Option(12345, "--seed", help="Random seed."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Build the superquadric solar system with a starfield."""

    _configure_logging(log_level)
    starfield = generate_starfield(StarfieldConfig(stars, sq_stars, light_stars), RandomSource(seed=seed))
    try:
        mesh = build_scene_mesh(starfield + solar_system(), divisions)
    except ParameterError as exc:
        raise _bad_parameter(exc)
    written = _write(output, mesh, title="Superquadrics Demo")
    typer.echo(f"{len(starfield)} stars + solar system → {written}")


@scene_app.command("planet")
def scene_planet(
    output: Path = typer.Argument(..., help="Output path (.ply, .npz, .las, .rd)."),
    subdivisions: int = typer.Option(3, "--subdivisions", help="Icosphere refinement levels, [0, 7]."),
    noise_scale: float = typer.Option(1.5, "--noise-scale", help="Base noise frequency on the unit sphere."),
    octaves: int = typer.Option(6, "--octaves", help="Noise octaves summed."),
    persistence: float = typer.Option(0.5, "--persistence", help="Amplitude ratio between octaves, (0, 1]."),
    lacunarity: float = typer.Option(2.0, "--lacunarity", help="Frequency ratio between octaves."),
    strength: float = typer.Option(0.4, "--strength", help="Largest displacement above the unit sphere."),
    ocean_level: float = typer.Option(0.05, "--ocean-level", help="Elevation below which the surface is water."),
    seed: int = typer.Option(12345, "--seed", help="Random seed."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Displace an icosphere with fractal Perlin noise."""

    _configure_logging(log_level)
    try:
        params = PlanetParams(
            subdivisions=subdivisions,
            noise_scale=noise_scale,
            octaves=octaves,
            persistence=persistence,
            lacunarity=lacunarity,
            strength=strength,
            ocean_level=ocean_level,
        )
    except ParameterError as exc:
        raise _bad_parameter(exc)
    surface = generate_planet(params, RandomSource(seed=seed))
    written = _write(output, surface.to_mesh(), title="Perlin Planet", camera=PLANET_CAMERA)
    typer.echo(f"Planet {len(surface.directions)} vertices → {written}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
