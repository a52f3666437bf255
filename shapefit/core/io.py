from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import numpy as np
import pathlib

import laspy  # type: ignore
from .pointcloud import PointCloud
from .utils import get_logger

_log = get_logger()

SUPPORTED_FORMATS = ("npz", "ply", "las", "laz")

_PLY_TYPES = {
    "char": np.int8, "int8": np.int8, "uchar": np.uint8, "uint8": np.uint8,
    "short": np.int16, "int16": np.int16, "ushort": np.uint16, "uint16": np.uint16,
    "int": np.int32, "int32": np.int32, "uint": np.uint32, "uint32": np.uint32,
    "float": np.float32, "float32": np.float32, "double": np.float64, "float64": np.float64,
}

_LAS_NORMAL_DIMS = ("NormalX", "NormalY", "NormalZ")


def infer_format(path: str | pathlib.Path, fmt: Optional[str] = None) -> str:
    fmt = (fmt or pathlib.Path(path).suffix.lstrip(".")).lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported point cloud format '{fmt}'")
    return fmt


def read_point_cloud(path: str | pathlib.Path, fmt: Optional[str] = None) -> PointCloud:
    """Load positions and normals from ``.npz``, ASCII ``.ply`` or ``.las``/``.laz``."""
    path = pathlib.Path(path)
    fmt = infer_format(path, fmt)
    if fmt == "npz":
        cloud = _read_npz(path)
    elif fmt == "ply":
        cloud = _read_ascii_ply(path)
    else:
        cloud = _read_las(path)
    _log.info("Loaded %d points from %s", len(cloud), path.name)
    return cloud


def _read_npz(path: pathlib.Path) -> PointCloud:
    with np.load(path) as data:
        arrays = {k: data[k] for k in data.files}
    if "xyz" not in arrays:
        raise ValueError(f"{path.name}: missing 'xyz' array")
    xyz = arrays.pop("xyz")
    normals = arrays.pop("normal", None)
    if normals is None:
        normals = arrays.pop("normals", None)
    if normals is None:
        raise ValueError(f"{path.name}: missing 'normal' array")
    n = len(xyz)
    attrs = {k: v for k, v in arrays.items() if v.ndim >= 1 and v.shape[0] == n}
    return PointCloud(xyz=xyz, normals=normals, attrs=attrs)


def _read_ascii_ply(path: pathlib.Path) -> PointCloud:
    with open(path, "r", encoding="utf-8") as f:
        if f.readline().strip() != "ply":
            raise ValueError(f"{path.name}: not a PLY file")
        elements: List[Tuple[str, int, List[Tuple[str, Optional[str]]]]] = []
        fmt_line = ""
        for line in f:
            tokens = line.split()
            if not tokens or tokens[0] in ("comment", "obj_info"):
                continue
            if tokens[0] == "format":
                fmt_line = tokens[1]
            elif tokens[0] == "element":
                elements.append((tokens[1], int(tokens[2]), []))
            elif tokens[0] == "property":
                # list properties carry (count type, item type, name)
                prop_type = None if tokens[1] == "list" else tokens[1]
                elements[-1][2].append((tokens[-1], prop_type))
            elif tokens[0] == "end_header":
                break
        if fmt_line != "ascii":
            raise ValueError(f"{path.name}: only ASCII PLY is supported, got '{fmt_line}'")

        columns: Dict[str, np.ndarray] = {}
        for name, count, props in elements:
            rows = [f.readline().split() for _ in range(count)]
            if name != "vertex":
                continue
            table = np.asarray(rows, dtype=np.float64).reshape(count, len(props))
            for j, (prop, prop_type) in enumerate(props):
                if prop_type is not None:
                    columns[prop] = table[:, j].astype(_PLY_TYPES.get(prop_type, np.float64))

    missing = [k for k in ("x", "y", "z", "nx", "ny", "nz") if k not in columns]
    if missing:
        raise ValueError(f"{path.name}: vertex element lacks properties {missing}")
    xyz = np.column_stack([columns.pop(k) for k in ("x", "y", "z")])
    normals = np.column_stack([columns.pop(k) for k in ("nx", "ny", "nz")])
    return PointCloud(xyz=xyz, normals=normals, attrs=columns)


def _read_las(path: pathlib.Path) -> PointCloud:
    las = laspy.read(path)
    names = set(las.point_format.dimension_names)
    if not all(k in names for k in _LAS_NORMAL_DIMS):
        raise ValueError(f"{path.name}: missing NormalX/NormalY/NormalZ extra dimensions")
    xyz = np.column_stack([np.asarray(las.x), np.asarray(las.y), np.asarray(las.z)])
    normals = np.column_stack([np.asarray(las[k], dtype=np.float64) for k in _LAS_NORMAL_DIMS])
    return PointCloud(xyz=xyz, normals=normals)


@dataclass
class LasWriter:
    """LAS/LAZ writer using laspy (v2+).

    Normals and per-point result arrays are stored as ExtraBytes dimensions.
    """
    path: str
    point_format: int = 6
    compress: bool = False
    scale: tuple[float, float, float] = (1e-4, 1e-4, 1e-4)
    offset: Optional[tuple[float, float, float]] = None

    def write(self, cloud: PointCloud, results: Optional[Dict[str, np.ndarray]] = None) -> None:
        results = results or {}
        hdr = laspy.LasHeader(point_format=laspy.PointFormat(self.point_format), version="1.4")
        hdr.scales = self.scale
        if self.offset is None:
            mn = np.min(cloud.xyz, axis=0) if len(cloud) else np.zeros(3)
            hdr.offsets = (float(mn[0]), float(mn[1]), float(mn[2]))
        else:
            hdr.offsets = self.offset

        extras: Dict[str, str] = {name: "float64" for name in _LAS_NORMAL_DIMS}
        for k, v in results.items():
            if v.ndim == 1:
                extras[k] = "uint8" if v.dtype == bool else "float64"
        for name, dtype in extras.items():
            hdr.add_extra_dim(laspy.ExtraBytesParams(name=name, type=dtype))

        pts = laspy.ScaleAwarePointRecord.zeros(len(cloud), header=hdr)
        pts.x = cloud.xyz[:, 0]
        pts.y = cloud.xyz[:, 1]
        pts.z = cloud.xyz[:, 2]
        for j, name in enumerate(_LAS_NORMAL_DIMS):
            pts[name] = cloud.normals[:, j]
        for name, dtype in extras.items():
            if name in results:
                pts[name] = results[name].astype(dtype, copy=False)

        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with laspy.open(path, mode="w", header=hdr, do_compress=self.compress) as fh:
            fh.write_points(pts)
        _log.info("Wrote %s (PF=%d, compress=%s)", path.name, self.point_format, self.compress)


# Minimal PLY and NPZ writers
class PlyWriter:
    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, cloud: PointCloud, results: Optional[Dict[str, np.ndarray]] = None) -> None:
        results = {k: v for k, v in (results or {}).items() if v.ndim == 1}
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        names = sorted(results)
        with open(path, "w", encoding="utf-8") as f:
            f.write("ply\nformat ascii 1.0\n")
            f.write(f"element vertex {len(cloud)}\n")
            f.write("property double x\nproperty double y\nproperty double z\n")
            f.write("property double nx\nproperty double ny\nproperty double nz\n")
            for name in names:
                f.write(f"property {'uchar' if results[name].dtype == bool else 'double'} {name}\n")
            f.write("end_header\n")
            for i in range(len(cloud)):
                x, y, z = cloud.xyz[i]
                nx, ny, nz = cloud.normals[i]
                extra = "".join(f" {int(results[k][i])}" if results[k].dtype == bool else f" {float(results[k][i])!r}" for k in names)
                f.write(f"{float(x)!r} {float(y)!r} {float(z)!r} {float(nx)!r} {float(ny)!r} {float(nz)!r}{extra}\n")


class NpzWriter:
    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, cloud: PointCloud, results: Optional[Dict[str, np.ndarray]] = None) -> None:
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        out: Dict[str, np.ndarray] = {"xyz": cloud.xyz, "normal": cloud.normals}
        out.update(cloud.attrs)
        out.update(results or {})
        np.savez_compressed(path, **out)


def build_writer(path: str | pathlib.Path, fmt: Optional[str] = None):
    fmt = infer_format(path, fmt)
    if fmt in {"las", "laz"}:
        return LasWriter(str(path), compress=fmt == "laz")
    if fmt == "npz":
        return NpzWriter(str(path))
    return PlyWriter(str(path))
