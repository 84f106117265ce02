"""Thorn fractal renderer - numba evaluator with a binary PGM writer."""

__version__ = "1.0.0"

# Core computation, config and encoder - lightweight
from .computation import compute_grid
from .config import RenderConfig, default_render_config
from .errors import AllocationError, InvalidParametersError, ThornError
from .pgm import write_pgm
from .report import RenderReport


# Conditional imports - only loaded when needed
def __getattr__(name):
    """Lazy loading of heavy modules."""
    if name == "log_to_mlflow":
        from .tracking import log_to_mlflow

        return log_to_mlflow
    elif name == "load_sweep_configs":
        from .config import load_sweep_configs

        return load_sweep_configs
    elif name == "render":
        from .execution import render

        return render
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "RenderConfig",
    "default_render_config",
    "compute_grid",
    "write_pgm",
    "render",
    "RenderReport",
    "ThornError",
    "InvalidParametersError",
    "AllocationError",
    "load_sweep_configs",
    "log_to_mlflow",
]
