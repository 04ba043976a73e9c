from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, model_validator


class SphereConfig(BaseModel):
    kind: Literal["sqsphere"]
    radius: float = 1.0
    north: float = 1.0
    east: float = 1.0
    zmin: Optional[float] = None
    zmax: Optional[float] = None
    thetamax: float = 360.0
    divisions: int = 20
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)


class TorusConfig(BaseModel):
    kind: Literal["sqtorus"]
    radius1: float = 1.0
    radius2: float = 0.25
    north: float = 1.0
    east: float = 1.0
    phimin: float = -180.0
    phimax: float = 180.0
    thetamax: float = 360.0
    divisions: int = 20
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)


class TerrainConfig(BaseModel):
    kind: Literal["terrain"]
    n: int = 6
    dimension: float = 2.5
    sigma: float = 1.0
    footprint: float = 100.0


class PlanetConfig(BaseModel):
    kind: Literal["planet"]
    subdivisions: int = 3
    noise_scale: float = 1.5
    octaves: int = 6
    persistence: float = 0.5
    lacunarity: float = 2.0
    strength: float = 0.4
    ocean_level: float = 0.05


class StaticTransportConfigModel(BaseModel):
    kind: Literal["static_transport"]
    tracks: int = 250
    points_per_track: int = 20
    max_track_length: float = 15.0
    source_radius: float = 0.5
    core_radius: float = 3.0
    reflector_radius: float = 6.0
    curvature: float = 0.4
    core_absorption: float = 0.1
    reflector_absorption: float = 0.4
    outer_absorption: float = 0.8
    fission_probability: float = 0.0
    escape_radius: Optional[float] = None
    shells: bool = True


class DynamicTransportConfigModel(BaseModel):
    kind: Literal["dynamic_transport"]
    neutrons: int = 250
    frames: int = 50
    timestep: float = 0.5
    max_lifetime: float = 100.0
    absorption_probability: float = 0.1
    fission_probability: float = 0.15
    mean_free_path: float = 2.0
    source_radius: float = 0.5
    max_distance: float = 10.0
    energy_factor: float = 0.1
    respawn_period: float = 10.0
    max_fission_events: int = 20


class StarfieldConfigModel(BaseModel):
    total: int = 40
    superquadric: int = 8
    light: int = 5


class SceneConfig(BaseModel):
    kind: Literal["scene"]
    divisions: int = 20
    starfield: StarfieldConfigModel = StarfieldConfigModel()
    include_solar_system: bool = True


GeneratorConfig = Annotated[
    Union[
        SphereConfig,
        TorusConfig,
        TerrainConfig,
        PlanetConfig,
        StaticTransportConfigModel,
        DynamicTransportConfigModel,
        SceneConfig,
    ],
    Field(discriminator="kind"),
]


class OutputConfig(BaseModel):
    path: Path
    format: Literal["ply", "npz", "las", "laz", "rd"] = "ply"
    compress: Optional[bool] = None

    @model_validator(mode="after")
    def _validate_format(self) -> "OutputConfig":
        if self.format == "laz" and self.compress is False:
            raise ValueError("format 'laz' implies compress=True")
        return self


class JobConfig(BaseModel):
    generator: GeneratorConfig
    output: OutputConfig
    seed: Optional[int] = None

    @model_validator(mode="after")
    def _check_output(self) -> "JobConfig":
        if self.generator.kind == "dynamic_transport" and self.output.format == "ply":
            raise ValueError("dynamic_transport produces frames; use npz, las or rd output")
        return self


def load_config(path: str | Path) -> JobConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    cfg = JobConfig.model_validate(data)
    if not cfg.output.path.is_absolute():
        cfg.output.path = (path.parent / cfg.output.path).resolve()
    return cfg
