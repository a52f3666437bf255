"""Programmatic entry points for fitting shapes from configuration files."""

from .run import FitRunResult, draw_sample, evaluate_shape, fit_from_config

__all__ = ["FitRunResult", "draw_sample", "evaluate_shape", "fit_from_config"]
