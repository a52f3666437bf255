from __future__ import annotations
from dataclasses import dataclass, field
import numpy as np
from typing import Dict, Sequence

@dataclass
class PointCloud:
    """Point positions with reported surface normals, addressed by row index.

    Normals are stored as given. Shapes compare against their magnitude, so
    they are never normalized here.
    """
    xyz: np.ndarray                       # (N, 3)
    normals: np.ndarray                   # (N, 3)
    attrs: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.xyz = np.asarray(self.xyz, dtype=np.float64)
        self.normals = np.asarray(self.normals, dtype=np.float64)
        if self.xyz.ndim != 2 or self.xyz.shape[1] != 3:
            raise ValueError(f"xyz must have shape (N, 3), got {self.xyz.shape}")
        if self.normals.shape != self.xyz.shape:
            raise ValueError(f"normals shape {self.normals.shape} != xyz shape {self.xyz.shape}")
        n = len(self.xyz)
        for k, v in list(self.attrs.items()):
            v = np.asarray(v)
            if v.ndim == 0 or v.shape[0] != n:
                raise ValueError(f"Attribute '{k}' first dim {v.shape[:1]} != {n}")
            self.attrs[k] = v

    def __len__(self) -> int:
        return len(self.xyz)

    def position(self, index: int) -> np.ndarray:
        return self.xyz[index]

    def normal(self, index: int) -> np.ndarray:
        return self.normals[index]

    def positions(self, indices: Sequence[int]) -> np.ndarray:
        return self.xyz[np.asarray(indices, dtype=np.int64)]

    def normals_at(self, indices: Sequence[int]) -> np.ndarray:
        return self.normals[np.asarray(indices, dtype=np.int64)]
