from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from ..config import ScenarioConfig, load_config
from ..core.io import build_writer, infer_format, read_point_cloud
from ..core.pointcloud import PointCloud
from ..core.utils import get_logger
from ..shapes import FitStatus, Shape, create_shape

_log = get_logger()


@dataclass(frozen=True)
class FitRunResult:
    """Outcome of fitting one minimal sample described by a configuration."""

    shape: Shape
    status: FitStatus
    sample: List[int]
    members: np.ndarray
    output_path: Optional[Path]
    config: ScenarioConfig


def draw_sample(n_points: int, size: int, rng: np.random.Generator) -> List[int]:
    if n_points < size:
        raise ValueError(f"Point cloud has {n_points} points, need at least {size}")
    return [int(i) for i in rng.choice(n_points, size=size, replace=False)]


def evaluate_shape(shape: Shape, cloud: PointCloud, epsilon: float, normal_threshold: float) -> Dict[str, np.ndarray]:
    """Per-point distances, surface coordinates, alignment and membership for a valid shape."""
    idx = np.arange(len(cloud), dtype=np.int64)
    dist2 = shape.squared_distances(idx)
    cos = shape.cos_to_normals(idx)
    params = shape.parameters(idx)
    member = np.zeros(len(cloud), dtype=bool)
    member[shape.compliant_indices(idx, epsilon, normal_threshold)] = True
    return {
        "dist2": dist2,
        "u": params.uv[:, 0],
        "v": params.uv[:, 1],
        "cos": cos,
        "member": member,
    }


def fit_from_config(
    config: Union[str, Path, ScenarioConfig],
    *,
    output: Optional[Path] = None,
    seed: Optional[int] = None,
    indices: Optional[Sequence[int]] = None,
) -> FitRunResult:
    """Fit one shape hypothesis described by a configuration file or object.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~shapefit.config.schema.ScenarioConfig`.
    output:
        Optional override for the per-point result file. The extension drives
        the format (``.npz``, ``.ply``, ``.las`` or ``.laz``).
    seed:
        Optional RNG seed used when no sample indices are configured. Falls
        back to the value in the config or ``12345``.
    indices:
        Optional minimal sample overriding the configured one.

    Returns
    -------
    FitRunResult
        The fitted shape, its status, the sample used, the member indices
        assigned to the shape, and the resolved output path (``None`` when no
        output was written).
    """

    cfg = load_config(config) if not isinstance(config, ScenarioConfig) else config.model_copy(deep=True)
    if indices is not None:
        cfg.sample.indices = [int(i) for i in indices]

    out_path: Optional[Path] = None
    out_format: Optional[str] = None
    if output is not None:
        out_path = Path(output).resolve()
        infer_format(out_path)
    elif cfg.output is not None:
        out_path = Path(cfg.output.path).resolve()
        out_format = cfg.output.format

    cloud = read_point_cloud(cfg.input.path, cfg.input.format)
    shape = create_shape(cfg.shape)

    if cfg.sample.indices is not None:
        sample = list(cfg.sample.indices)
        if max(sample, default=-1) >= len(cloud):
            raise ValueError(f"Sample index out of range for {len(cloud)} points: {sample}")
    else:
        run_seed = seed if seed is not None else (cfg.seed if cfg.seed is not None else 12345)
        sample = draw_sample(len(cloud), shape.minimum_sample_size, np.random.default_rng(run_seed))

    status = shape.fit(cloud, sample, cfg.detection.normal_threshold)
    members = np.zeros((0,), dtype=np.int64)
    if status is FitStatus.VALID:
        results = evaluate_shape(shape, cloud, cfg.detection.epsilon, cfg.detection.normal_threshold)
        members = np.flatnonzero(results["member"])
        shape.assign(members)
        _log.info("%s", shape.info())
        if out_path is not None:
            build_writer(out_path, out_format).write(cloud, results)
    else:
        _log.info("Sample %s rejected for shape '%s'", sample, shape.name)
        out_path = None

    return FitRunResult(
        shape=shape,
        status=status,
        sample=sample,
        members=members,
        output_path=out_path,
        config=cfg,
    )
