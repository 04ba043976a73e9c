from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple, Union

from ..config.schema import (
    DynamicTransportConfigModel,
    OutputConfig,
    PlanetConfig,
    SceneConfig,
    SphereConfig,
    StaticTransportConfigModel,
    TerrainConfig,
    TorusConfig,
)
from ..core.exporter import LasWriter, NpzWriter, PlyWriter, RdWriter
from ..scene.objects import StarfieldConfig
from ..surfaces.planet import PlanetParams
from ..surfaces.superquadric import SphereParams, TorusParams
from ..terrain.fractal import TerrainParams
from ..transport.dynamic import DynamicTransportConfig
from ..transport.static import StaticTransportConfig

Vec3 = Tuple[float, float, float]
Writer = Union[LasWriter, NpzWriter, PlyWriter, RdWriter]

OUTPUT_SUFFIXES = {".ply": "ply", ".npz": "npz", ".las": "las", ".laz": "laz", ".rd": "rd"}


def build_sphere(cfg: SphereConfig) -> SphereParams:
    zmin = -cfg.radius if cfg.zmin is None else cfg.zmin
    zmax = cfg.radius if cfg.zmax is None else cfg.zmax
    return SphereParams(
        radius=cfg.radius,
        north=cfg.north,
        east=cfg.east,
        zmin=zmin,
        zmax=zmax,
        thetamax=cfg.thetamax,
    )


def build_torus(cfg: TorusConfig) -> TorusParams:
    return TorusParams(
        radius1=cfg.radius1,
        radius2=cfg.radius2,
        north=cfg.north,
        east=cfg.east,
        phimin=cfg.phimin,
        phimax=cfg.phimax,
        thetamax=cfg.thetamax,
    )


def build_terrain(cfg: TerrainConfig, seed: int) -> TerrainParams:
    return TerrainParams(n=cfg.n, dimension=cfg.dimension, seed=seed, sigma=cfg.sigma)


def build_planet(cfg: PlanetConfig) -> PlanetParams:
    return PlanetParams(**cfg.model_dump(exclude={"kind"}))


def build_static_transport(cfg: StaticTransportConfigModel) -> StaticTransportConfig:
    return StaticTransportConfig(**cfg.model_dump(exclude={"kind", "shells"}))


def build_dynamic_transport(cfg: DynamicTransportConfigModel) -> DynamicTransportConfig:
    return DynamicTransportConfig(**cfg.model_dump(exclude={"kind"}))


def build_starfield(cfg: SceneConfig) -> StarfieldConfig:
    sf = cfg.starfield
    return StarfieldConfig(total=sf.total, superquadric=sf.superquadric, light=sf.light)


def format_for_path(path: Union[str, Path]) -> str:
    ext = Path(path).suffix.lower()
    if ext not in OUTPUT_SUFFIXES:
        raise ValueError(f"Unsupported output extension '{ext}'")
    return OUTPUT_SUFFIXES[ext]


def build_writer(
    out_cfg: OutputConfig,
    *,
    animated: bool = False,
    title: str = "procgeo",
    camera: Optional[Tuple[Vec3, Vec3]] = None,
) -> Writer:
    format_lower = out_cfg.format.lower()
    if format_lower in {"las", "laz"}:
        compress = out_cfg.compress
        if compress is None:
            compress = format_lower == "laz"
        return LasWriter(str(out_cfg.path), compress=compress)
    if format_lower == "npz":
        return NpzWriter(str(out_cfg.path))
    if format_lower == "ply":
        return PlyWriter(str(out_cfg.path))
    if format_lower == "rd":
        if camera is None:
            return RdWriter(str(out_cfg.path), title=title, animated=animated)
        eye, at = camera
        return RdWriter(str(out_cfg.path), title=title, animated=animated, camera_eye=eye, camera_at=at)
    raise ValueError(f"Unsupported output format: {out_cfg.format}")
