"""Configuration loading utilities for shapefit."""

from .schema import (
    DetectionConfig,
    ScenarioConfig,
    load_config,
)

__all__ = ["DetectionConfig", "ScenarioConfig", "load_config"]
