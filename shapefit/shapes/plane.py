from __future__ import annotations
from typing import List, Optional, Sequence, Tuple
import numpy as np

from ..core.utils import normalized
from .base import ParameterSpace, Shape

# Minimum length of the unnormalized sample cross product; below it the
# three points are treated as collinear.
_SINGULAR_EPS = 1e-4


class Plane(Shape):
    """Infinite plane ``normal . X + d = 0`` fit from three oriented points.

    The local frame ``(basis1, basis2)`` is anchored at the first sample point
    and spans the plane; it drives the 2D parameterization used for growing
    connected components.
    """
    name = "plane"
    minimum_sample_size = 3
    supports_connected_component = True
    wraps_u = False
    wraps_v = False

    def __init__(self) -> None:
        super().__init__()
        self.normal: Optional[np.ndarray] = None
        self.d: Optional[float] = None
        self.point_on_primitive: Optional[np.ndarray] = None
        self.basis1: Optional[np.ndarray] = None
        self.basis2: Optional[np.ndarray] = None

    @property
    def plane_normal(self) -> Optional[np.ndarray]:
        return self.normal

    def to_plane_equation(self) -> Tuple[float, float, float, float]:
        assert self.normal is not None and self.d is not None
        return (float(self.normal[0]), float(self.normal[1]), float(self.normal[2]), float(self.d))

    def _fit(self, indices: List[int]) -> bool:
        p1 = self.point(indices[0])
        p2 = self.point(indices[1])
        p3 = self.point(indices[2])

        normal = np.cross(p1 - p2, p1 - p3)
        length = float(np.linalg.norm(normal))
        if length < _SINGULAR_EPS:
            return False

        self.normal = normal * (1.0 / length)
        self.d = -float(np.dot(p1, self.normal))

        threshold = float(self.normal_threshold)
        for i in indices:
            n = self.normal_of(i)
            if abs(float(np.dot(n, self.normal))) < threshold * float(np.linalg.norm(n)):
                return False

        self.point_on_primitive = np.array(p1, dtype=np.float64)
        self.basis1 = normalized(np.cross(p1 - p2, self.normal))
        self.basis2 = normalized(np.cross(self.basis1, self.normal))
        return True

    def squared_distance_to_point(self, p: np.ndarray) -> float:
        offset = float(np.dot(np.asarray(p, dtype=np.float64) - self.point_on_primitive, self.normal))
        return offset * offset

    def squared_distances(self, indices: Sequence[int]) -> np.ndarray:
        assert self._cloud is not None
        offsets = (self._cloud.positions(indices) - self.point_on_primitive) @ self.normal
        return offsets * offsets

    def cos_to_normals(self, indices: Sequence[int]) -> np.ndarray:
        assert self._cloud is not None
        return np.abs(self._cloud.normals_at(indices) @ self.normal)

    def parameters(self, indices: Sequence[int]) -> ParameterSpace:
        assert self._cloud is not None
        if len(indices) == 0:
            raise ValueError("parameters() requires at least one index")
        rel = self._cloud.positions(indices) - self.point_on_primitive
        uv = np.column_stack([rel @ self.basis1, rel @ self.basis2])
        return ParameterSpace(uv=uv, min=uv.min(axis=0), max=uv.max(axis=0))

    def info(self) -> str:
        coeffs = self.to_plane_equation() if self.is_valid else (float("nan"),) * 4
        nx, ny, nz, d = (c + 0.0 for c in coeffs)  # no "-0" in the output
        sign = "-" if d < 0 else "+"
        return f"Type: plane ({nx:g}, {ny:g}, {nz:g})x {sign} {abs(d):g} = 0 #Pts: {len(self.indices)}"
