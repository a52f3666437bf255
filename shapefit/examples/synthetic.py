from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from ..core.io import build_writer
from ..core.pointcloud import PointCloud
from ..core.utils import ensure_unit_vectors


def _grid_plane(size: float, divisions: int, z: float) -> Tuple[np.ndarray, np.ndarray]:
    lin = np.linspace(-size / 2.0, size / 2.0, divisions + 1, dtype=np.float64)
    xv, yv = np.meshgrid(lin, lin, indexing="ij")
    xyz = np.column_stack([xv.ravel(), yv.ravel(), np.full_like(xv.ravel(), z)])
    normals = np.tile(np.array([0.0, 0.0, 1.0]), (xyz.shape[0], 1))
    return xyz, normals


def _rotation_to(normal: np.ndarray) -> np.ndarray:
    """Rotation taking +Z onto ``normal`` (Rodrigues)."""
    z = np.array([0.0, 0.0, 1.0])
    n = normal / np.linalg.norm(normal)
    axis = np.cross(z, n)
    s = float(np.linalg.norm(axis))
    c = float(np.dot(z, n))
    if s < 1e-12:
        return np.eye(3) if c > 0 else np.diag([1.0, -1.0, -1.0])
    k = axis / s
    K = np.array([[0.0, -k[2], k[1]], [k[2], 0.0, -k[0]], [-k[1], k[0], 0.0]])
    return np.eye(3) + s * K + (1.0 - c) * (K @ K)


def planar_cloud(
    size: float = 10.0,
    divisions: int = 20,
    normal: Tuple[float, float, float] = (0.0, 0.0, 1.0),
    offset: Tuple[float, float, float] = (0.0, 0.0, 0.0),
    sigma_m: float = 0.0,
    sigma_normal_deg: float = 0.0,
    outliers: int = 0,
    rng: Optional[np.random.Generator] = None,
) -> PointCloud:
    """Regular grid on a plane with optional position/normal noise and outliers.

    The ``inlier`` attribute marks grid points (True) against the uniformly
    scattered outliers (False).
    """
    rng = rng or np.random.default_rng(0)
    xyz, normals = _grid_plane(size=size, divisions=divisions, z=0.0)
    R = _rotation_to(np.asarray(normal, dtype=np.float64))
    xyz = xyz @ R.T + np.asarray(offset, dtype=np.float64)
    normals = normals @ R.T

    if sigma_m > 0:
        xyz = xyz + rng.normal(0.0, sigma_m, size=xyz.shape)
    if sigma_normal_deg > 0:
        jitter = rng.normal(0.0, np.deg2rad(sigma_normal_deg), size=normals.shape)
        normals = ensure_unit_vectors(normals + jitter)

    inlier = np.ones(len(xyz), dtype=bool)
    if outliers > 0:
        lo = xyz.min(axis=0) - size * 0.25
        hi = xyz.max(axis=0) + size * 0.25
        out_xyz = rng.uniform(lo, hi, size=(outliers, 3))
        out_nrm = ensure_unit_vectors(rng.normal(size=(outliers, 3)))
        xyz = np.vstack([xyz, out_xyz])
        normals = np.vstack([normals, out_nrm])
        inlier = np.concatenate([inlier, np.zeros(outliers, dtype=bool)])

    return PointCloud(xyz=xyz, normals=normals, attrs={"inlier": inlier})


def generate_cloud(preset: str, size: float, path: Path, divisions: int = 20, seed: int = 0) -> PointCloud:
    preset = preset.lower()
    rng = np.random.default_rng(seed)
    if preset == "plane":
        cloud = planar_cloud(size=size, divisions=divisions, rng=rng)
    elif preset == "tilted":
        cloud = planar_cloud(size=size, divisions=divisions, normal=(1.0, -1.0, 2.0),
                             offset=(0.0, 0.0, size * 0.1), rng=rng)
    elif preset == "noisy":
        cloud = planar_cloud(size=size, divisions=divisions, normal=(0.2, 0.1, 1.0),
                             sigma_m=size * 1e-3, sigma_normal_deg=2.0,
                             outliers=(divisions + 1) ** 2 // 5, rng=rng)
    else:
        raise ValueError(f"Unknown synthetic cloud preset '{preset}'.")

    build_writer(path).write(cloud)
    return cloud
