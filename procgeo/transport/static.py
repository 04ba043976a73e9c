"""One-shot neutron tracks through a core / reflector / outer shell model.

Each step draws a flat absorption probability for the shell the neutron is
in. This is a different approximation from the exponential mean-free-path
model in :mod:`procgeo.transport.dynamic`; the two are kept separate.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, List, Literal, Optional, Tuple

import numpy as np

from ..core.errors import ParameterError, require_positive, require_probability
from ..core.mesh import MeshData
from ..core.rng import RandomSource
from ..core.utils import get_logger, safe_normalize
from .common import FissionEvent, shell_wireframe

_log = get_logger()

Termination = Literal["absorbed", "fission", "escaped", "max_length"]

_DEFAULT_AXIS = np.array([0.0, 0.0, 1.0])
LINE_THICKNESS = 1.5


class Region(IntEnum):
    CORE = 0
    REFLECTOR = 1
    OUTER = 2


REGION_COLORS = {
    Region.CORE: (1.0, 0.3, 0.3),
    Region.REFLECTOR: (0.3, 0.7, 1.0),
    Region.OUTER: (1.0, 1.0, 0.3),
}


@dataclass(frozen=True)
class StaticTransportConfig:
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

    def __post_init__(self) -> None:
        if self.tracks < 0:
            raise ParameterError("tracks", f"tracks must be non-negative (got {self.tracks}).")
        if self.points_per_track < 1:
            raise ParameterError("points_per_track", f"points_per_track must be at least 1 (got {self.points_per_track}).")
        require_positive("max_track_length", self.max_track_length)
        require_positive("source_radius", self.source_radius)
        require_positive("core_radius", self.core_radius)
        if self.reflector_radius <= self.core_radius:
            raise ParameterError("reflector_radius", "reflector_radius must exceed core_radius.")
        if self.curvature < 0.0:
            raise ParameterError("curvature", f"curvature must be non-negative (got {self.curvature}).")
        for name in ("core_absorption", "reflector_absorption", "outer_absorption", "fission_probability"):
            require_probability(name, getattr(self, name))
        if self.escape_radius is not None:
            require_positive("escape_radius", self.escape_radius)

    @property
    def step_length(self) -> float:
        return self.max_track_length / self.points_per_track

    @property
    def resolved_escape_radius(self) -> float:
        return self.escape_radius if self.escape_radius is not None else 1.5 * self.reflector_radius

    def region(self, dist: float) -> Region:
        if dist < self.core_radius:
            return Region.CORE
        if dist < self.reflector_radius:
            return Region.REFLECTOR
        return Region.OUTER

    def absorption(self, region: Region) -> float:
        return (self.core_absorption, self.reflector_absorption, self.outer_absorption)[region]


@dataclass
class Track:
    """A fixed-length track; points after the terminating one are inactive."""
    points: np.ndarray                 # (P, 3)
    active: np.ndarray                 # (P,) bool
    regions: np.ndarray                # (P,) Region values
    termination: Termination = "max_length"

    @property
    def colors(self) -> np.ndarray:
        return np.asarray([REGION_COLORS[Region(r)] for r in self.regions], dtype=np.float64)

    @property
    def num_active(self) -> int:
        return int(self.active.sum())

    def segments(self) -> Iterator[Tuple[np.ndarray, np.ndarray, Tuple[float, float, float]]]:
        """Consecutive active point pairs with the color of the segment start."""
        for i in range(len(self.points) - 1):
            if self.active[i] and self.active[i + 1]:
                yield self.points[i], self.points[i + 1], REGION_COLORS[Region(int(self.regions[i]))]


@dataclass
class StaticTransportResult:
    config: StaticTransportConfig
    tracks: List[Track] = field(default_factory=list)
    fission_events: List[FissionEvent] = field(default_factory=list)

    @property
    def tube_radius(self) -> float:
        return LINE_THICKNESS / 40.0

    def segments(self) -> Iterator[Tuple[np.ndarray, np.ndarray, Tuple[float, float, float]]]:
        for track in self.tracks:
            yield from track.segments()

    def termination_counts(self) -> dict:
        counts = {"absorbed": 0, "fission": 0, "escaped": 0, "max_length": 0}
        for track in self.tracks:
            counts[track.termination] += 1
        return counts

    def to_mesh(self, shells: bool = True) -> MeshData:
        """Track segments as colored lines, optionally with core and reflector wireframes."""
        lines: List[np.ndarray] = []
        colors: List[Tuple[float, float, float]] = []
        for a, b, color in self.segments():
            lines.append(np.stack([a, b]))
            colors.append(color)
        if shells:
            for radius, region in ((self.config.core_radius, Region.CORE),
                                   (self.config.reflector_radius, Region.REFLECTOR)):
                wire = shell_wireframe(radius)
                lines.extend(wire)
                colors.extend([REGION_COLORS[region]] * len(wire))
        points = np.asarray([e.position for e in self.fission_events], dtype=np.float64).reshape(-1, 3)
        return MeshData(
            vertices=points,
            colors=np.tile([1.0, 1.0, 0.0], (len(points), 1)),
            lines=np.asarray(lines).reshape(-1, 2, 3),
            line_colors=np.asarray(colors).reshape(-1, 3),
        )


def _trace(cfg: StaticTransportConfig, rng: RandomSource, events: List[FissionEvent]) -> Track:
    P = cfg.points_per_track
    points = np.zeros((P, 3), dtype=np.float64)
    active = np.zeros(P, dtype=bool)
    regions = np.full(P, int(Region.OUTER), dtype=np.int64)

    pos, radial = rng.point_in_sphere(cfg.source_radius)
    jitter = np.array([(rng.uniform() - 0.5) * 0.5 for _ in range(3)])
    direction = safe_normalize(radial + jitter, fallback=_DEFAULT_AXIS)

    points[0] = pos
    regions[0] = cfg.region(float(np.linalg.norm(pos)))
    active[0] = True

    escape = cfg.resolved_escape_radius
    step = cfg.step_length
    termination: Termination = "max_length"
    for i in range(1, P):
        perturb = np.array([(rng.uniform() * 2.0 - 1.0) * cfg.curvature for _ in range(3)])
        # An exactly cancelled direction keeps its previous heading.
        direction = safe_normalize(direction + perturb, fallback=direction)
        pos = pos + direction * step

        dist = float(np.linalg.norm(pos))
        region = cfg.region(dist)
        points[i] = pos
        regions[i] = region
        active[i] = True

        if rng.uniform() < cfg.absorption(region):
            termination = "absorbed"
            break
        if cfg.fission_probability > 0.0 and rng.uniform() < cfg.fission_probability:
            events.append(FissionEvent.at(pos, float(i)))
            termination = "fission"
            break
        if dist > escape:
            termination = "escaped"
            break

    return Track(points=points, active=active, regions=regions, termination=termination)


def generate_tracks(cfg: StaticTransportConfig, rng: RandomSource) -> StaticTransportResult:
    """Trace ``cfg.tracks`` independent tracks from the source sphere."""
    result = StaticTransportResult(config=cfg)
    for _ in range(cfg.tracks):
        result.tracks.append(_trace(cfg, rng, result.fission_events))
    counts = result.termination_counts()
    _log.info("Static transport: %d tracks (absorbed=%d, fission=%d, escaped=%d, full length=%d)",
              cfg.tracks, counts["absorbed"], counts["fission"], counts["escaped"], counts["max_length"])
    return result
