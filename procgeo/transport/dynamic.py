"""Time-stepped neutron population with three energy groups.

Interactions use an exponential per-step probability built from an
energy-dependent mean free path. The pool has a fixed number of slots:
neutrons are deactivated, never removed, and new ones reuse idle slots.
"""
from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Deque, Iterator, List, Literal, Optional, Tuple

import numpy as np

from ..core.errors import ParameterError, require_positive, require_probability
from ..core.mesh import MeshData
from ..core.rng import RandomSource
from ..core.utils import get_logger
from .common import FissionEvent

_log = get_logger()

Cause = Literal["lifetime", "escaped", "absorbed", "fission"]


class EnergyGroup(IntEnum):
    FAST = 0
    EPITHERMAL = 1
    THERMAL = 2


GROUP_ENERGIES = (10.0, 5.0, 1.0)
GROUP_COLORS = ((1.0, 0.2, 0.0), (1.0, 0.8, 0.0), (0.0, 0.5, 1.0))
# Row: current group, column: group after scattering. Lower-triangular part is
# zero, so a scatter never raises the energy.
SCATTERING_MATRIX = (
    (0.5, 0.4, 0.1),
    (0.0, 0.6, 0.4),
    (0.0, 0.0, 1.0),
)

FISSION_DISPLAY_AGE = 5.0
MAX_DIRECTION_LINES = 30


def group_speed(group: EnergyGroup) -> float:
    return math.sqrt(GROUP_ENERGIES[group]) * 2.0


@dataclass(frozen=True)
class DynamicTransportConfig:
    neutrons: int = 250
    max_lifetime: float = 100.0
    absorption_probability: float = 0.1
    fission_probability: float = 0.15
    mean_free_path: float = 2.0
    source_radius: float = 0.5
    max_distance: float = 10.0
    timestep: float = 0.5
    frames: int = 50
    energy_factor: float = 0.1
    respawn_period: float = 10.0
    max_fission_events: int = 20

    def __post_init__(self) -> None:
        if self.neutrons < 0:
            raise ParameterError("neutrons", f"neutrons must be non-negative (got {self.neutrons}).")
        if self.frames < 0:
            raise ParameterError("frames", f"frames must be non-negative (got {self.frames}).")
        require_positive("max_lifetime", self.max_lifetime)
        require_probability("absorption_probability", self.absorption_probability)
        require_probability("fission_probability", self.fission_probability)
        if self.absorption_probability + self.fission_probability > 1.0:
            raise ParameterError(
                "fission_probability",
                "absorption_probability + fission_probability must not exceed 1.",
            )
        require_positive("mean_free_path", self.mean_free_path)
        require_positive("source_radius", self.source_radius)
        require_positive("max_distance", self.max_distance)
        require_positive("timestep", self.timestep)
        require_positive("respawn_period", self.respawn_period)
        if self.energy_factor < 0.0:
            raise ParameterError("energy_factor", f"energy_factor must be non-negative (got {self.energy_factor}).")
        if self.max_fission_events < 0:
            raise ParameterError("max_fission_events", "max_fission_events must be non-negative.")

    @property
    def scatter_probability(self) -> float:
        return 1.0 - self.absorption_probability - self.fission_probability


@dataclass
class Neutron:
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    direction: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))
    group: EnergyGroup = EnergyGroup.FAST
    lifetime: float = 0.0
    active: bool = False
    cause: Optional[Cause] = None

    def reset(self, position: np.ndarray, direction: np.ndarray) -> None:
        self.position = np.asarray(position, dtype=np.float64).copy()
        self.direction = direction
        self.group = EnergyGroup.FAST
        self.lifetime = 0.0
        self.active = True
        self.cause = None

    def deactivate(self, cause: Cause) -> None:
        self.active = False
        self.cause = cause

    @property
    def distance(self) -> float:
        return float(np.linalg.norm(self.position))


@dataclass
class SimulationClock:
    """Simulated time, advanced by a fixed timestep per update."""
    timestep: float
    time: float = 0.0

    def tick(self) -> float:
        self.time += self.timestep
        return self.time

    def crossed_period(self, period: float) -> bool:
        return math.fmod(self.time, period) < self.timestep


@dataclass(frozen=True)
class NeutronView:
    position: Tuple[float, float, float]
    group: EnergyGroup
    size: float
    color: Tuple[float, float, float]


@dataclass(frozen=True)
class FissionView:
    position: Tuple[float, float, float]
    age: float
    fade: float
    size: float


@dataclass(frozen=True)
class TransportFrame:
    """Snapshot of the live population for an output sink."""
    index: int
    time: float
    neutrons: Tuple[NeutronView, ...]
    fissions: Tuple[FissionView, ...]
    direction_lines: np.ndarray          # (K, 2, 3)
    line_colors: np.ndarray              # (K, 3)

    def to_mesh(self) -> MeshData:
        pts = [n.position for n in self.neutrons] + [f.position for f in self.fissions]
        cols = [n.color for n in self.neutrons] + [(1.0, 1.0, 0.0)] * len(self.fissions)
        return MeshData(
            vertices=np.asarray(pts, dtype=np.float64).reshape(-1, 3),
            colors=np.asarray(cols, dtype=np.float64).reshape(-1, 3),
            lines=self.direction_lines,
            line_colors=self.line_colors,
        )


class NeutronSimulation:
    """Fixed-size neutron pool advanced one timestep per :meth:`step` call."""

    def __init__(self, cfg: DynamicTransportConfig, rng: RandomSource) -> None:
        self.cfg = cfg
        self.rng = rng
        self.clock = SimulationClock(cfg.timestep)
        self.pool: List[Neutron] = [Neutron() for _ in range(cfg.neutrons)]
        self.fission_events: Deque[FissionEvent] = deque(maxlen=cfg.max_fission_events)
        self.steps = 0
        self.spawn_shortfall = 0
        for neutron in self.pool[: cfg.neutrons // 3]:
            self._source(neutron)

    @property
    def time(self) -> float:
        return self.clock.time

    @property
    def active_count(self) -> int:
        return sum(1 for n in self.pool if n.active)

    def _source(self, neutron: Neutron) -> None:
        pos, _ = self.rng.point_in_sphere(self.cfg.source_radius)
        neutron.reset(pos, self.rng.unit_direction())

    def _idle_slots(self) -> Iterator[Neutron]:
        return (n for n in self.pool if not n.active)

    def step(self) -> None:
        """Advance every active neutron by one timestep."""
        self.clock.tick()
        self.steps += 1
        if self.clock.crossed_period(self.cfg.respawn_period):
            batch = self.cfg.neutrons // 10
            count = 0
            for neutron in self._idle_slots():
                if count >= batch:
                    break
                self._source(neutron)
                count += 1
            _log.debug("t=%.2f: respawned %d neutrons", self.time, count)

        births: List[Tuple[np.ndarray, int]] = []
        for neutron in self.pool:
            if neutron.active:
                self._update(neutron, births)

        for position, wanted in births:
            spawned = 0
            for slot in self._idle_slots():
                if spawned >= wanted:
                    break
                slot.reset(position, self.rng.unit_direction())
                spawned += 1
            if spawned < wanted:
                self.spawn_shortfall += wanted - spawned
                _log.debug("Fission at t=%.2f spawned %d of %d neutrons (pool full)", self.time, spawned, wanted)

    def _update(self, neutron: Neutron, births: List[Tuple[np.ndarray, int]]) -> None:
        cfg = self.cfg
        dt = cfg.timestep
        neutron.lifetime += dt
        if neutron.lifetime > cfg.max_lifetime:
            neutron.deactivate("lifetime")
            return

        mfp = cfg.mean_free_path * (1.0 + GROUP_ENERGIES[neutron.group] * cfg.energy_factor)
        p_interact = 1.0 - math.exp(-dt / mfp)
        if self.rng.uniform() < p_interact:
            r = self.rng.uniform()
            if r < cfg.scatter_probability:
                neutron.direction = self.rng.unit_direction()
                neutron.group = EnergyGroup(self.rng.pick(SCATTERING_MATRIX[neutron.group]))
            elif r < 1.0 - cfg.fission_probability:
                neutron.deactivate("absorbed")
                return
            else:
                neutron.deactivate("fission")
                wanted = 3 if self.rng.uniform() < 0.5 else 2
                self.fission_events.append(FissionEvent.at(neutron.position, self.time))
                births.append((neutron.position.copy(), wanted))
                return

        neutron.position = neutron.position + neutron.direction * group_speed(neutron.group) * dt
        if neutron.distance > cfg.max_distance:
            neutron.deactivate("escaped")

    def frame(self) -> TransportFrame:
        """Current population as display records."""
        neutrons = []
        lines = []
        line_colors = []
        for n in self.pool:
            if not n.active:
                continue
            pos = tuple(float(c) for c in n.position)
            neutrons.append(NeutronView(pos, n.group, 0.2 - int(n.group) * 0.03, GROUP_COLORS[n.group]))  # type: ignore[arg-type]
            if len(lines) < MAX_DIRECTION_LINES:
                length = math.sqrt(GROUP_ENERGIES[n.group]) * 0.5
                lines.append(np.stack([n.position, n.position + n.direction * length]))
                line_colors.append(GROUP_COLORS[n.group])

        fissions = []
        for event in self.fission_events:
            age = self.time - event.time
            if age < FISSION_DISPLAY_AGE:
                fissions.append(FissionView(event.position, age, 1.0 - age / FISSION_DISPLAY_AGE, 0.5 * (1.0 + age)))

        return TransportFrame(
            index=self.steps,
            time=self.time,
            neutrons=tuple(neutrons),
            fissions=tuple(fissions),
            direction_lines=np.asarray(lines, dtype=np.float64).reshape(-1, 2, 3),
            line_colors=np.asarray(line_colors, dtype=np.float64).reshape(-1, 3),
        )


def run_dynamic(cfg: DynamicTransportConfig, rng: RandomSource, frames: Optional[int] = None) -> Iterator[TransportFrame]:
    """Yield one frame per timestep, ``frames`` (default ``cfg.frames``) times."""
    sim = NeutronSimulation(cfg, rng)
    total = cfg.frames if frames is None else frames
    for _ in range(total):
        sim.step()
        yield sim.frame()
    _log.info("Dynamic transport: %d frames, %d active, %d fission events kept",
              total, sim.active_count, len(sim.fission_events))
