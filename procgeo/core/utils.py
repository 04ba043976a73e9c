from __future__ import annotations
import numpy as np
import math
import logging

def get_logger(name: str = "procgeo") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def ensure_unit_vectors(v: np.ndarray, eps: float = 1e-4) -> np.ndarray:
    """Normalize rows of ``v``; rows shorter than ``eps`` are returned unchanged."""
    norms = np.linalg.norm(v, axis=-1, keepdims=True)
    return np.divide(v, norms, out=np.array(v, dtype=np.float64, copy=True), where=norms > eps)

def safe_normalize(v: np.ndarray, eps: float = 1e-12, fallback: np.ndarray | None = None) -> np.ndarray:
    n = float(np.linalg.norm(v))
    if n > eps and math.isfinite(n):
        return v / n
    if fallback is not None:
        return np.asarray(fallback, dtype=np.float64)
    return np.asarray(v, dtype=np.float64)

def sign_power(v: float | np.ndarray, e: float) -> float | np.ndarray:
    # sign(0) is +1 so the pole rows stay at |0|^e == 0 without flipping.
    s = np.where(np.asarray(v) >= 0.0, 1.0, -1.0)
    return s * np.abs(v) ** e

def radians(deg: float | np.ndarray) -> float | np.ndarray:
    return np.deg2rad(deg)

def degrees(rad: float | np.ndarray) -> float | np.ndarray:
    return np.rad2deg(rad)

def rotation_xyz(rx_deg: float, ry_deg: float, rz_deg: float) -> np.ndarray:
    """Rotation composed as Rx @ Ry @ Rz (degrees); Z acts on the point first."""
    rx, ry, rz = (math.radians(a) for a in (rx_deg, ry_deg, rz_deg))
    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    cz, sz = math.cos(rz), math.sin(rz)
    Rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]], dtype=np.float64)
    Ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]], dtype=np.float64)
    Rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]], dtype=np.float64)
    return Rx @ Ry @ Rz
