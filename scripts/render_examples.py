from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from procgeo.core.rng import RandomSource
from procgeo.scene.objects import build_scene_mesh, solar_system
from procgeo.surfaces.planet import PlanetParams, generate_planet
from procgeo.surfaces.superquadric import SphereParams, TorusParams, evaluate_superquadric_sphere, evaluate_superquadric_torus
from procgeo.terrain.fractal import TerrainParams, color_heights, generate_terrain
from procgeo.transport.static import StaticTransportConfig, generate_tracks

matplotlib.use("Agg")

IMAGE_DIR = Path("examples/images")


@dataclass(frozen=True)
class ExampleSpec:
    name: str
    render: Callable[[plt.Figure], None]


def _render_terrain(fig: plt.Figure) -> None:
    grid = generate_terrain(TerrainParams(n=7, dimension=2.3, seed=42))
    colors = color_heights(grid)
    ax = fig.add_subplot(1, 1, 1)
    # heights are indexed [y][x] on export; show them the same way
    ax.imshow(colors, origin="lower")
    ax.set_title(f"Fractal terrain {grid.size}x{grid.size} (D=2.3)")
    ax.set_xlabel("x")
    ax.set_ylabel("y")


def _render_superquadrics(fig: plt.Figure) -> None:
    shapes = [
        ("n=0.3 e=0.3", evaluate_superquadric_sphere(SphereParams(1.0, 0.3, 0.3, -1.0, 1.0), 30)),
        ("n=2 e=2", evaluate_superquadric_sphere(SphereParams(1.0, 2.0, 2.0, -1.0, 1.0), 30)),
        ("torus n=1 e=0.2", evaluate_superquadric_torus(TorusParams(1.0, 0.4, 1.0, 0.2), 30)),
    ]
    for i, (title, grid) in enumerate(shapes):
        ax = fig.add_subplot(1, len(shapes), i + 1, projection="3d")
        p = grid.positions
        ax.plot_wireframe(p[..., 0], p[..., 1], p[..., 2], linewidth=0.4)
        ax.set_title(title)
        ax.set_box_aspect((1, 1, 1))


def _render_tracks(fig: plt.Figure) -> None:
    result = generate_tracks(StaticTransportConfig(tracks=120), RandomSource(seed=7))
    ax = fig.add_subplot(1, 1, 1, projection="3d")
    for a, b, color in result.segments():
        ax.plot([a[0], b[0]], [a[1], b[1]], [a[2], b[2]], color=color, linewidth=0.6)
    ax.set_title("Static neutron tracks")


def _render_scene(fig: plt.Figure) -> None:
    mesh = build_scene_mesh(solar_system(), divisions=16)
    ax = fig.add_subplot(1, 1, 1, projection="3d")
    v = mesh.vertices
    ax.scatter(v[:, 0], v[:, 1], v[:, 2], c=np.clip(mesh.colors, 0.0, 1.0), s=0.5)
    ax.set_title("Superquadric solar system")



def _render_planet(fig: plt.Figure) -> None:
    mesh = generate_planet(PlanetParams(subdivisions=4), RandomSource(seed=12345)).to_mesh()
    ax = fig.add_subplot(1, 1, 1, projection="3d")
    tris = mesh.vertices[mesh.faces]
    ax.scatter(tris[..., 0].mean(axis=1), tris[..., 1].mean(axis=1), tris[..., 2].mean(axis=1),
               c=mesh.colors[mesh.faces].mean(axis=1), s=1.0)
    ax.set_box_aspect((1, 1, 1))
    ax.set_title("Perlin planet")


EXAMPLES: List[ExampleSpec] = [
    ExampleSpec(name="terrain", render=_render_terrain),
    ExampleSpec(name="superquadrics", render=_render_superquadrics),
    ExampleSpec(name="static_tracks", render=_render_tracks),
    ExampleSpec(name="solar_system", render=_render_scene),
    ExampleSpec(name="planet", render=_render_planet),
]


def render_example(spec: ExampleSpec) -> Path:
    fig = plt.figure(figsize=(9, 5), dpi=150)
    spec.render(fig)
    fig.tight_layout()
    out_path = IMAGE_DIR / f"{spec.name}.png"
    fig.savefig(out_path)
    plt.close(fig)
    return out_path


def generate_examples(names: List[str]) -> None:
    IMAGE_DIR.mkdir(parents=True, exist_ok=True)
    selected = EXAMPLES if not names else [spec for spec in EXAMPLES if spec.name in names]
    if not selected:
        raise ValueError("No matching examples selected.")
    for spec in selected:
        logging.info("Rendering '%s'", spec.name)
        logging.info("Saved %s", render_example(spec))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render procgeo example previews.")
    parser.add_argument("--example", "-e", action="append", help="Example name to render (default: all).")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="[%(levelname)s] %(message)s")
    generate_examples(args.example or [])


if __name__ == "__main__":
    main()
