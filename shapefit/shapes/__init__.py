"""Primitive shape variants and the name -> class registry."""

from typing import Dict, Type

from .base import FitStatus, ParameterSpace, Shape
from .plane import Plane

SHAPE_FACTORY: Dict[str, Type[Shape]] = {
    "plane": Plane,
}


def create_shape(name: str) -> Shape:
    cls = SHAPE_FACTORY.get(name.lower())
    if cls is None:
        raise ValueError(f"Unknown shape '{name}'. Available: {sorted(SHAPE_FACTORY)}")
    return cls()


__all__ = ["FitStatus", "ParameterSpace", "Shape", "Plane", "SHAPE_FACTORY", "create_shape"]
