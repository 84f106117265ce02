"""Structured results returned from a render."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from .config import RenderConfig


@dataclass(frozen=True)
class RenderReport:
    """Container for outputs produced by ``render``."""

    config: RenderConfig
    grid: Optional[np.ndarray]
    timing: Dict[str, Any]
    output: Optional[Path] = None

    @property
    def max_count(self) -> int:
        if self.grid is None or self.grid.size == 0:
            return 0
        return int(self.grid.max())

    @property
    def escaped_fraction(self) -> float:
        """Fraction of pixels that stopped before hitting the iteration cap.

        Orbits that turn NaN also stop early (at count 1), so they are
        counted here alongside pixels that genuinely escaped.
        """
        if self.grid is None or self.grid.size == 0:
            return 0.0
        return float(np.mean(self.grid <= self.config.max_iterations))
