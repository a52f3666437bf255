from __future__ import annotations

from pathlib import Path

import numpy as np
import yaml
from typer.testing import CliRunner

from shapefit.cli.main import app


def _write_config(path: Path, cloud_name: str, output_name: str, indices) -> None:
    config = {
        "input": {"path": cloud_name},
        "shape": "plane",
        "detection": {"normal_threshold": 0.9, "epsilon": 0.05},
        "sample": {"indices": indices},
        "output": {"path": output_name},
    }
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)


def test_cli_generate_and_fit_npz(tmp_path: Path) -> None:
    runner = CliRunner()
    cloud_path = tmp_path / "cloud.npz"
    result = runner.invoke(app, ["generate", str(cloud_path), "--preset", "tilted", "--divisions", "10"])
    assert result.exit_code == 0, result.stdout
    assert cloud_path.exists()

    cfg_path = tmp_path / "fit.yaml"
    _write_config(cfg_path, cloud_path.name, "result.npz", [0, 10, 110])
    result = runner.invoke(app, ["fit", str(cfg_path)])
    assert result.exit_code == 0, result.stdout
    assert "Type: plane" in result.stdout
    assert "#Pts: 121" in result.stdout

    data = np.load(tmp_path / "result.npz")
    assert data["member"].all()
    np.testing.assert_allclose(data["dist2"], 0.0, atol=1e-10)


def test_cli_fit_las_with_index_override(tmp_path: Path) -> None:
    runner = CliRunner()
    cloud_path = tmp_path / "cloud.las"
    result = runner.invoke(app, ["generate", str(cloud_path), "--preset", "noisy", "--divisions", "10", "--seed", "3"])
    assert result.exit_code == 0, result.stdout

    cfg_path = tmp_path / "fit.yaml"
    _write_config(cfg_path, cloud_path.name, "result.las", [0, 1, 2])
    out_path = tmp_path / "override.npz"
    result = runner.invoke(
        app,
        ["fit", str(cfg_path), "-i", "0", "-i", "10", "-i", "110", "--output", str(out_path)],
    )
    assert result.exit_code == 0, result.stdout
    assert out_path.exists()
    assert not (tmp_path / "result.las").exists()


def test_cli_fit_rejected_sample_exits_nonzero(tmp_path: Path) -> None:
    runner = CliRunner()
    cloud_path = tmp_path / "cloud.ply"
    assert runner.invoke(app, ["generate", str(cloud_path), "--divisions", "4"]).exit_code == 0

    cfg_path = tmp_path / "fit.yaml"
    _write_config(cfg_path, cloud_path.name, "result.npz", [0, 1, 2])
    result = runner.invoke(app, ["fit", str(cfg_path)])
    assert result.exit_code == 1
    assert "rejected" in result.stdout
    assert not (tmp_path / "result.npz").exists()


def test_cli_rejects_bad_extension(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["generate", str(tmp_path / "cloud.xyz")])
    assert result.exit_code != 0
    assert not (tmp_path / "cloud.xyz").exists()


def test_cli_fit_invalid_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "fit.yaml"
    with open(cfg_path, "w", encoding="utf-8") as f:
        yaml.safe_dump({"input": {"path": "cloud.npz"}, "detection": {"normal_threshold": 2.0}}, f)
    result = CliRunner().invoke(app, ["fit", str(cfg_path)])
    assert result.exit_code == 2


def test_cli_generate_divisions_sets_grid_size(tmp_path: Path) -> None:
    cloud_path = tmp_path / "grid.ply"
    result = CliRunner().invoke(app, ["generate", str(cloud_path), "--divisions", "6", "--size", "3"])
    assert result.exit_code == 0, result.stdout
    assert "Wrote 49 points" in result.stdout

    from shapefit.core.io import read_point_cloud

    cloud = read_point_cloud(cloud_path)
    assert len(cloud) == 49
    np.testing.assert_allclose(cloud.xyz[:, 0].max() - cloud.xyz[:, 0].min(), 3.0)
