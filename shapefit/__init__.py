"""shapefit – primitive shape fitting for point-cloud shape detection.

This package contains the fitting core used by RANSAC-style detectors:
- PointCloud container and readers/writers (core.pointcloud, core.io)
- Shape contract shared by all primitive variants (shapes.base)
- Plane primitive (shapes.plane)
- YAML/pydantic configuration (config) and a config-driven runner (sdk)

Sampling strategy, spatial indexing and connected-component extraction live
outside this package and talk to shapes only through the Shape contract.
"""

from .core.pointcloud import PointCloud
from .core.io import read_point_cloud, LasWriter, PlyWriter, NpzWriter
from .shapes import FitStatus, ParameterSpace, Shape, Plane, SHAPE_FACTORY, create_shape
from .config import DetectionConfig, ScenarioConfig, load_config
from .sdk import FitRunResult, fit_from_config
