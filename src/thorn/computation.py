from __future__ import annotations

import math
from typing import Tuple

import numba
import numpy as np
from numba import njit, prange

from .config import RenderConfig
from .errors import AllocationError

__all__ = ["allocate_grid", "grid_constants", "thorn_escape", "compute_rows", "compute_grid"]

GRID_DTYPE = np.uint16


def allocate_grid(config: RenderConfig) -> np.ndarray:
    """Allocate the (height, width) count grid; every cell is filled by the kernel."""
    try:
        return np.empty((config.height, config.width), dtype=GRID_DTYPE)
    except MemoryError as exc:
        raise AllocationError(
            f"Cannot allocate {config.width}x{config.height} iteration grid"
        ) from exc


def grid_constants(config: RenderConfig) -> Tuple[float, float, float, float]:
    x_min, x_max = float(config.xlim[0]), float(config.xlim[1])
    y_min, y_max = float(config.ylim[0]), float(config.ylim[1])
    return x_min, x_max - x_min, y_min, y_max - y_min


@njit(error_model="numpy")
def thorn_escape(zr: float, zi: float, cx: float, cy: float, max_iterations: int, escape: float) -> int:
    """Count iterations of the Thorn recurrence starting at ``zr + i*zi``.

    Post-increment do-while: the body always runs once and the stored count
    lies in ``[1, max_iterations + 1]``. A NaN magnitude fails the ``< escape``
    test and ends the loop.
    """
    k = 0
    ir = zr
    ii = zi
    while True:
        a = ir
        b = ii
        ir = a / math.cos(b) + cx
        ii = b / math.sin(a) + cy
        running = k < max_iterations
        k += 1
        if not (running and ir * ir + ii * ii < escape):
            break
    return k


@njit(parallel=True, error_model="numpy")
def _compute_rows(
    grid: np.ndarray,
    start_row: int,
    end_row: int,
    x_min: float,
    x_span: float,
    y_min: float,
    y_span: float,
    cx: float,
    cy: float,
    max_iterations: int,
    escape: float,
) -> None:
    height, width = grid.shape
    for i in prange(start_row, end_row):
        zi = y_min + i * y_span / height
        for j in range(width):
            zr = x_min + j * x_span / width
            grid[i, j] = thorn_escape(zr, zi, cx, cy, max_iterations, escape)


def compute_rows(config: RenderConfig, grid: np.ndarray, start_row: int, end_row: int) -> np.ndarray:
    """Fill rows ``[start_row, end_row)`` of ``grid`` in parallel and return it."""
    x_min, x_span, y_min, y_span = grid_constants(config)
    _compute_rows(
        grid,
        start_row,
        min(end_row, config.height),
        x_min,
        x_span,
        y_min,
        y_span,
        float(config.cx),
        float(config.cy),
        int(config.max_iterations),
        float(config.escape),
    )
    return grid


def compute_grid(config: RenderConfig) -> np.ndarray:
    """Evaluate the Thorn fractal over the whole window."""
    config.validate()
    grid = allocate_grid(config)
    if config.n_threads is not None:
        previous = numba.get_num_threads()
        numba.set_num_threads(min(config.n_threads, numba.config.NUMBA_NUM_THREADS))
        try:
            return compute_rows(config, grid, 0, config.height)
        finally:
            numba.set_num_threads(previous)
    return compute_rows(config, grid, 0, config.height)
