from __future__ import annotations


class ParameterError(ValueError):
    """A generator parameter violates its documented range.

    Raised before any grid, pool or mesh is allocated, so callers never see
    partial output. ``param`` names the offending parameter.
    """

    def __init__(self, param: str, message: str) -> None:
        super().__init__(message)
        self.param = param


def require_positive(name: str, value: float) -> None:
    if not value > 0.0:
        raise ParameterError(name, f"{name} must be positive (got {value}).")


def require_range(name: str, value: float, lo: float, hi: float) -> None:
    if not (lo <= value <= hi):
        raise ParameterError(name, f"{name} must be within [{lo}, {hi}] (got {value}).")


def require_probability(name: str, value: float) -> None:
    require_range(name, value, 0.0, 1.0)
