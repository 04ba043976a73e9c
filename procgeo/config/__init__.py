"""Configuration loading utilities for procgeo."""

from .schema import (
    JobConfig,
    load_config,
)

__all__ = ["JobConfig", "load_config"]
