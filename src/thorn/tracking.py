"""MLflow tracking for Thorn renders."""

from __future__ import annotations

import os
from typing import Any, Dict, List

import mlflow
import numpy as np
import pandas as pd
from matplotlib import pyplot as plt
from mlflow.exceptions import MlflowException

from .errors import TrackingError
from .report import RenderReport

DEFAULT_TRACKING_URI = "sqlite:///mlflow.db"
EXPERIMENT_NAME = "thorn"


def log_to_mlflow(report: RenderReport, suite_name: str = "default") -> None:
    """Log a finished render to MLflow with its parameters, timings and image.

    Args:
        report: Render outputs (config, grid, timing, output path)
        suite_name: Name of the sweep suite, used for tagging/filtering
    """
    if os.environ.get("SKIP_MLFLOW"):
        return

    tracking_uri = _resolve_tracking_uri()
    try:
        _log_run(report, suite_name, tracking_uri)
    except MlflowException as exc:
        raise TrackingError(f"MLflow tracking at {tracking_uri} failed: {exc}") from exc


def _log_run(report: RenderReport, suite_name: str, tracking_uri: str) -> None:
    mlflow.set_tracking_uri(tracking_uri)
    mlflow.set_experiment(EXPERIMENT_NAME)

    config = report.config
    with mlflow.start_run(run_name=config.run_name) as run:
        mlflow.set_tags({"node_name": os.uname().nodename, "suite": suite_name})
        mlflow.log_params(config.to_dict())

        timing = report.timing or {}
        metrics = {
            "wall_time": float(timing.get("wall_time", 0.0)),
            "comp_time": float(timing.get("comp_time", 0.0)),
            "write_time": float(timing.get("write_time", 0.0)),
            "max_count": float(report.max_count),
            "escaped_fraction": report.escaped_fraction,
        }
        for key, value in metrics.items():
            mlflow.log_metric(key, value)

        if report.grid is not None:
            mlflow.log_table(_count_table(report.grid), "counts.json")

            fig, ax = plt.subplots(figsize=(6, 6))
            ax.imshow(report.grid, cmap="gray")
            mlflow.log_figure(fig, "figures/thorn.png")
            plt.close(fig)

        if report.output is not None and report.output.exists():
            mlflow.log_artifact(str(report.output), "pgm")

        print(f"[MLflow] Logged run: {config.run_name} (suite: {suite_name})")
        print(f"[MLflow] Run ID: {run.info.run_id}")


def _count_table(grid: np.ndarray) -> Dict[str, List[Any]]:
    """Tabulate how many pixels stopped at each iteration count."""
    values, counts = np.unique(grid, return_counts=True)
    frame = pd.DataFrame({"iterations": values.astype(int), "pixels": counts.astype(int)})
    return frame.to_dict(orient="list")


def _resolve_tracking_uri() -> str:
    """Resolve tracking URI."""
    return os.environ.get("MLFLOW_TRACKING_URI") or DEFAULT_TRACKING_URI
