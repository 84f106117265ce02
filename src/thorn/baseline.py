"""Baseline serial Thorn implementation."""

from __future__ import annotations

import math

import numpy as np

from .config import RenderConfig


def compute_thorn(config: RenderConfig) -> np.ndarray:
    """Compute the Thorn fractal one pixel at a time, without numba."""
    width, height = config.width, config.height
    image = np.zeros((height, width), dtype=np.uint16)

    xspan = np.float64(config.xlim[1]) - np.float64(config.xlim[0])
    yspan = np.float64(config.ylim[1]) - np.float64(config.ylim[0])

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for i in range(height):
            zi = np.float64(config.ylim[0]) + i * yspan / height
            for j in range(width):
                zr = np.float64(config.xlim[0]) + j * xspan / width
                k = 0
                ir, ii = zr, zi
                while True:
                    a, b = ir, ii
                    ir = a / np.float64(math.cos(b)) + config.cx
                    ii = b / np.float64(math.sin(a)) + config.cy
                    running = k < config.max_iterations
                    k += 1
                    if not (running and ir * ir + ii * ii < config.escape):
                        break
                image[i, j] = k

    return image
