from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from ..config import load_config
from ..core.io import SUPPORTED_FORMATS
from ..examples.synthetic import generate_cloud
from ..sdk.run import fit_from_config
from ..shapes import FitStatus

app = typer.Typer(help="shapefit primitive fitting utilities")


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("shapefit").setLevel(numeric)


@app.command("fit")
def fit(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override result path (extension sets format)."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Override random seed used to draw the sample."),
    index: Optional[List[int]] = typer.Option(None, "--index", "-i", help="Sample point index (repeat per point)."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Fit one shape hypothesis from a minimal sample and score the cloud against it."""

    try:
        cfg = load_config(config)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="CONFIG") from exc
    _configure_logging(log_level or cfg.log_level)
    if output is not None and output.suffix.lower().lstrip(".") not in SUPPORTED_FORMATS:
        raise typer.BadParameter(f"Unsupported output extension '{output.suffix}'", param_hint="--output")
    if index and len(set(index)) != len(index):
        raise typer.BadParameter("Sample indices must be distinct.", param_hint="--index")

    try:
        result = fit_from_config(cfg, output=output, seed=seed, indices=list(index) if index else None)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if result.status is not FitStatus.VALID:
        typer.echo(f"Sample {result.sample} rejected ({result.status.value})")
        raise typer.Exit(code=1)

    typer.echo(result.shape.info())
    if result.output_path is not None:
        typer.echo(f"Wrote per-point results → {result.output_path}")


@app.command("generate")
def generate(
    output: Path = typer.Argument(..., help="Output point cloud path (.npz/.ply/.las/.laz)."),
    preset: str = typer.Option("plane", "--preset", help="Synthetic cloud preset (plane, tilted, noisy)."),
    size: float = typer.Option(10.0, "--size", help="Plane extent."),
    divisions: int = typer.Option(20, "--divisions", help="Grid divisions per side."),
    seed: int = typer.Option(0, "--seed", help="Random seed for noise and outliers."),
) -> None:
    """Generate a synthetic planar point cloud with normals."""

    out = output.resolve()
    if out.suffix.lower().lstrip(".") not in SUPPORTED_FORMATS:
        raise typer.BadParameter("Output must end with .npz, .ply, .las, or .laz", param_hint="OUTPUT")
    try:
        cloud = generate_cloud(preset=preset, size=size, path=out, divisions=divisions, seed=seed)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--preset") from exc
    typer.echo(f"Wrote {len(cloud)} points to {out}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
