"""Superquadric sphere and torus evaluation.

Both evaluators fill a full :class:`~procgeo.core.mesh.SurfaceGrid` before any
geometry leaves this module; normals are averaged per vertex afterwards.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace

import numpy as np

from ..core.errors import ParameterError, require_positive
from ..core.mesh import SurfaceGrid, accumulate_normals
from ..core.utils import degrees, get_logger, radians, sign_power

_log = get_logger()

DEFAULT_DIVISIONS = 20


@dataclass(frozen=True)
class SphereParams:
    radius: float = 1.0
    north: float = 1.0
    east: float = 1.0
    zmin: float = -math.inf
    zmax: float = math.inf
    thetamax: float = 360.0

    def __post_init__(self) -> None:
        if self.zmin > self.zmax:
            raise ParameterError("zmin", f"zmin must not exceed zmax (got {self.zmin} > {self.zmax}).")
        require_positive("radius", self.radius)
        _check_thetamax(self.thetamax)
        if self.zmin == self.zmax:
            raise ParameterError("zmin", "zmin and zmax must differ.")

    def clamped(self) -> "SphereParams":
        zmin = max(self.zmin, -self.radius)
        zmax = min(self.zmax, self.radius)
        if (zmin, zmax) != (self.zmin, self.zmax):
            _log.debug("Clamped z range [%g, %g] -> [%g, %g]", self.zmin, self.zmax, zmin, zmax)
        if zmin >= zmax:
            raise ParameterError("zmin", f"z range [{self.zmin}, {self.zmax}] lies outside the sphere.")
        return replace(self, zmin=zmin, zmax=zmax)


@dataclass(frozen=True)
class TorusParams:
    radius1: float = 1.0
    radius2: float = 0.25
    north: float = 1.0
    east: float = 1.0
    phimin: float = -180.0
    phimax: float = 180.0
    thetamax: float = 360.0

    def __post_init__(self) -> None:
        require_positive("radius1", self.radius1)
        require_positive("radius2", self.radius2)
        _check_thetamax(self.thetamax)
        if self.phimin >= self.phimax:
            raise ParameterError("phimin", f"phimin must be below phimax (got {self.phimin} >= {self.phimax}).")

    def clamped(self) -> "TorusParams":
        phimin = max(self.phimin, -180.0)
        phimax = min(self.phimax, 180.0)
        if phimin >= phimax:
            raise ParameterError("phimin", f"phi range [{self.phimin}, {self.phimax}] lies outside [-180, 180].")
        return replace(self, phimin=phimin, phimax=phimax)


def _check_thetamax(thetamax: float) -> None:
    if not (0.0 < thetamax <= 360.0):
        raise ParameterError("thetamax", f"thetamax must be within (0, 360] (got {thetamax}).")


def _check_divisions(divisions: int) -> None:
    if divisions < 1:
        raise ParameterError("divisions", f"divisions must be at least 1 (got {divisions}).")


def _angles(divisions: int, theta_max_deg: float, phi_lo_deg: float, phi_hi_deg: float):
    steps = np.arange(divisions + 1, dtype=np.float64) / divisions
    theta = radians(steps * theta_max_deg)
    phi = radians(phi_lo_deg + steps * (phi_hi_deg - phi_lo_deg))
    # indexing="ij" keeps grid[ui, vi] == (theta[ui], phi[vi])
    return np.meshgrid(theta, phi, indexing="ij")


def evaluate_superquadric_sphere(params: SphereParams, divisions: int = DEFAULT_DIVISIONS) -> SurfaceGrid:
    """Evaluate a superquadric sphere on a (divisions+1)^2 parameter grid.

    Parameters
    ----------
    params:
        Validated shape parameters. ``zmin``/``zmax`` are clamped to
        ``[-radius, radius]`` before the latitude range is derived.
    divisions:
        Number of subdivisions along each parameter axis.

    Returns
    -------
    SurfaceGrid
        Positions indexed ``[ui, vi]`` (longitude, latitude) with averaged
        per-vertex normals.
    """
    _check_divisions(divisions)
    p = params.clamped()
    phimin = float(degrees(math.asin(p.zmin / p.radius)))
    phimax = float(degrees(math.asin(p.zmax / p.radius)))
    theta, phi = _angles(divisions, p.thetamax, phimin, phimax)

    cos_phi = sign_power(np.cos(phi), p.north)
    x = p.radius * sign_power(np.cos(theta), p.east) * cos_phi
    y = p.radius * sign_power(np.sin(theta), p.east) * cos_phi
    z = p.radius * sign_power(np.sin(phi), p.north)

    grid = accumulate_normals(SurfaceGrid(np.stack([x, y, z], axis=-1)))
    _log.debug("Superquadric sphere: %d x %d grid (r=%g, n=%g, e=%g)",
               divisions + 1, divisions + 1, p.radius, p.north, p.east)
    return grid


def evaluate_superquadric_torus(params: TorusParams, divisions: int = DEFAULT_DIVISIONS) -> SurfaceGrid:
    """Evaluate a superquadric torus; ``phimin``/``phimax`` are clamped to [-180, 180]."""
    _check_divisions(divisions)
    p = params.clamped()
    theta, phi = _angles(divisions, p.thetamax, p.phimin, p.phimax)

    ring = p.radius1 + p.radius2 * sign_power(np.cos(phi), p.north)
    x = sign_power(np.cos(theta), p.east) * ring
    y = sign_power(np.sin(theta), p.east) * ring
    z = p.radius2 * sign_power(np.sin(phi), p.north)

    grid = accumulate_normals(SurfaceGrid(np.stack([x, y, z], axis=-1)))
    _log.debug("Superquadric torus: %d x %d grid (r1=%g, r2=%g)", divisions + 1, divisions + 1, p.radius1, p.radius2)
    return grid
