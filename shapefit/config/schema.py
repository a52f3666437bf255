from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from ..shapes import SHAPE_FACTORY

PointCloudFormat = Literal["npz", "ply", "las", "laz"]


class InputConfig(BaseModel):
    path: Path
    format: Optional[PointCloudFormat] = None


class DetectionConfig(BaseModel):
    normal_threshold: float = Field(0.9, ge=0.0, le=1.0)
    epsilon: float = Field(0.01, gt=0.0)


class SampleConfig(BaseModel):
    indices: Optional[List[int]] = None

    @field_validator("indices")
    @classmethod
    def _distinct_non_negative(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        if any(i < 0 for i in v):
            raise ValueError("sample indices must be non-negative")
        if len(set(v)) != len(v):
            raise ValueError("sample indices must be distinct")
        return v


class OutputConfig(BaseModel):
    path: Path
    format: Optional[PointCloudFormat] = None


class ScenarioConfig(BaseModel):
    input: InputConfig
    shape: str = "plane"
    detection: DetectionConfig = DetectionConfig()
    sample: SampleConfig = SampleConfig()
    output: Optional[OutputConfig] = None
    seed: Optional[int] = None
    log_level: str = "INFO"

    @field_validator("shape")
    @classmethod
    def _known_shape(cls, v: str) -> str:
        if v.lower() not in SHAPE_FACTORY:
            raise ValueError(f"Unknown shape '{v}'. Available: {sorted(SHAPE_FACTORY)}")
        return v.lower()


def load_config(path: str | Path) -> ScenarioConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    cfg = ScenarioConfig.model_validate(data)
    if not cfg.input.path.is_absolute():
        cfg.input.path = (path.parent / cfg.input.path).resolve()
    if cfg.output is not None and not cfg.output.path.is_absolute():
        cfg.output.path = (path.parent / cfg.output.path).resolve()
    return cfg
