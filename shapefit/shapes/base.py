from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence
import numpy as np

from ..core.pointcloud import PointCloud
from ..core.utils import get_logger

_log = get_logger()


class FitStatus(str, Enum):
    UNFIT = "unfit"
    INVALID = "invalid"
    VALID = "valid"


@dataclass(frozen=True)
class ParameterSpace:
    """2D surface coordinates of a point sequence and their bounding box."""
    uv: np.ndarray                        # (K, 2)
    min: np.ndarray                       # (2,) -> (u_min, v_min)
    max: np.ndarray                       # (2,) -> (u_max, v_max)


class Shape:
    """Contract shared by every primitive variant.

    A shape is fit once from a minimal sample of a :class:`PointCloud`.
    Rejection of the sample is reported through :attr:`status`, never raised;
    the query methods assume :attr:`is_valid` and are not guarded.

    ``indices`` holds the member points attributed to the shape. Only the
    growing/scoring code writes to it, through :meth:`assign`.
    """
    name: str = "base"
    minimum_sample_size: int = 0
    supports_connected_component: bool = False
    wraps_u: bool = False
    wraps_v: bool = False

    def __init__(self) -> None:
        self.status = FitStatus.UNFIT
        self.indices: List[int] = []
        self.normal_threshold: Optional[float] = None
        self._cloud: Optional[PointCloud] = None

    @property
    def is_valid(self) -> bool:
        return self.status is FitStatus.VALID

    def fit(self, cloud: PointCloud, indices: Sequence[int], normal_threshold: float) -> FitStatus:
        """Fit the shape from a minimal sample and validate it against the sample normals."""
        if self.status is not FitStatus.UNFIT:
            raise RuntimeError(f"{self.name} shape has already been fit.")
        indices = [int(i) for i in indices]
        if len(indices) != self.minimum_sample_size:
            raise ValueError(
                f"{self.name} requires {self.minimum_sample_size} sample indices, got {len(indices)}"
            )
        self._cloud = cloud
        self.normal_threshold = float(normal_threshold)
        ok = self._fit(indices)
        self.status = FitStatus.VALID if ok else FitStatus.INVALID
        if not ok:
            _log.debug("Rejected %s sample %s", self.name, indices)
        return self.status

    def assign(self, indices: Sequence[int]) -> None:
        self.indices.extend(int(i) for i in indices)

    def point(self, index: int) -> np.ndarray:
        assert self._cloud is not None
        return self._cloud.position(index)

    def normal_of(self, index: int) -> np.ndarray:
        assert self._cloud is not None
        return self._cloud.normal(index)

    # -- variant hooks --
    def _fit(self, indices: List[int]) -> bool:  # pragma: no cover - abstract
        raise NotImplementedError

    def squared_distance_to_point(self, p: np.ndarray) -> float:  # pragma: no cover - abstract
        raise NotImplementedError

    def squared_distances(self, indices: Sequence[int]) -> np.ndarray:  # pragma: no cover - abstract
        raise NotImplementedError

    def cos_to_normals(self, indices: Sequence[int]) -> np.ndarray:  # pragma: no cover - abstract
        raise NotImplementedError

    def parameters(self, indices: Sequence[int]) -> ParameterSpace:  # pragma: no cover - abstract
        raise NotImplementedError

    def info(self) -> str:  # pragma: no cover - abstract
        raise NotImplementedError

    # -- derived queries --
    def squared_distance(self, index: int) -> float:
        return self.squared_distance_to_point(self.point(index))

    def cos_to_normal(self, index: int) -> float:
        return float(self.cos_to_normals([index])[0])

    def distance(self, index: int) -> float:
        return float(np.sqrt(self.squared_distance(index)))

    def distances(self, indices: Sequence[int]) -> np.ndarray:
        return np.sqrt(self.squared_distances(indices))

    def compliant_indices(self, indices: Sequence[int], epsilon: float, normal_threshold: float) -> np.ndarray:
        """Indices within ``epsilon`` of the surface whose normals align at least ``normal_threshold``."""
        idx = np.asarray(indices, dtype=np.int64)
        if idx.size == 0:
            return idx
        mask = self.squared_distances(idx) <= epsilon * epsilon
        mask &= self.cos_to_normals(idx) >= normal_threshold
        return idx[mask]

    def __str__(self) -> str:
        return self.info()
