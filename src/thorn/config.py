"""Render configuration, validation and YAML sweep loading for Thorn renders."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from itertools import product
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

from .errors import InvalidParametersError

# Counts are stored as uint16 and the do-while loop can store max_iterations + 1.
MAX_ITERATIONS_LIMIT = 2**16 - 2

PI_SUFFIX = "pi"


@dataclass(frozen=True)
class RenderConfig:
    """Parameters for a single render of the Thorn fractal."""

    width: int = 1024
    height: int = 768
    xlim: Tuple[float, float] = (-math.pi, math.pi)
    ylim: Tuple[float, float] = (-math.pi, math.pi)
    cx: float = 9.984
    cy: float = 7.55
    max_iterations: int = 1024
    escape: float = 1e4
    n_threads: Optional[int] = None

    @property
    def run_name(self) -> str:
        """Generate a run name embedding the image size and fractal constant."""
        return f"thorn_{self.width}x{self.height}_cx{self.cx:g}_cy{self.cy:g}"

    @property
    def comment(self) -> str:
        return f"Thorn fractal: cx={self.cx:g}, cy={self.cy:g}"

    @property
    def image_size(self) -> str:
        return f"{self.width}x{self.height}"

    def to_dict(self) -> dict:
        """Convert to dictionary for MLflow logging."""
        return asdict(self)

    def validate(self) -> "RenderConfig":
        """Raise ``InvalidParametersError`` unless the parameters describe a renderable grid."""
        if self.width <= 0 or self.height <= 0:
            raise InvalidParametersError(
                f"Image size must be positive, got {self.width}x{self.height}"
            )
        for name, value in (
            ("xmin", self.xlim[0]),
            ("xmax", self.xlim[1]),
            ("ymin", self.ylim[0]),
            ("ymax", self.ylim[1]),
            ("cx", self.cx),
            ("cy", self.cy),
            ("escape", self.escape),
        ):
            if not math.isfinite(value):
                raise InvalidParametersError(f"{name} must be finite, got {value!r}")
        if self.xlim[0] >= self.xlim[1]:
            raise InvalidParametersError(f"Empty x window: xmin={self.xlim[0]} >= xmax={self.xlim[1]}")
        if self.ylim[0] >= self.ylim[1]:
            raise InvalidParametersError(f"Empty y window: ymin={self.ylim[0]} >= ymax={self.ylim[1]}")
        if not 0 <= self.max_iterations <= MAX_ITERATIONS_LIMIT:
            raise InvalidParametersError(
                f"max_iterations must lie in [0, {MAX_ITERATIONS_LIMIT}], got {self.max_iterations}"
            )
        if self.escape <= 0:
            raise InvalidParametersError(f"escape must be positive, got {self.escape}")
        if self.n_threads is not None and self.n_threads < 1:
            raise InvalidParametersError(f"n_threads must be at least 1, got {self.n_threads}")
        return self


DEFAULT_RENDER_CONFIG = RenderConfig()


def default_render_config(**overrides: object) -> RenderConfig:
    """Return the canonical default config optionally overridden with kwargs."""
    return _build_render_config(overrides)


def parse_bound(value: str | float | int) -> float:
    """Parse a window bound; a ``pi`` suffix scales by pi (``-0.5pi``, ``pi``)."""
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().lower()
    if text.endswith(PI_SUFFIX):
        factor = text[: -len(PI_SUFFIX)].rstrip("*")
        if factor in ("", "+"):
            return math.pi
        if factor == "-":
            return -math.pi
        return float(factor) * math.pi
    return float(text)


def parse_limits(value: str | Iterable[object]) -> Tuple[float, float]:
    """Parse ``"lo:hi"`` (or a two-element sequence) into a bound pair."""
    if isinstance(value, str):
        parts = value.split(":")
    else:
        parts = list(value)
    if len(parts) != 2:
        raise InvalidParametersError(f"Expected two bounds 'lo:hi', got {value!r}")
    try:
        lo, hi = (parse_bound(p) for p in parts)
    except ValueError as exc:
        raise InvalidParametersError(f"Malformed bounds {value!r}: {exc}") from exc
    return lo, hi


def parse_image_size(value: str) -> Tuple[int, int]:
    try:
        width_str, height_str = value.lower().split("x")
        return int(width_str.strip()), int(height_str.strip())
    except ValueError as exc:
        raise InvalidParametersError(f"Image size must look like WIDTHxHEIGHT, got {value!r}") from exc


def load_sweep_configs(yaml_path: str | Path) -> List[RenderConfig]:
    """Load YAML config and generate all parameter sweep combinations.

    Supports a top-level ``sweep`` as well as the suite format that nests
    multiple experiments under ``experiments``.
    """
    with open(yaml_path) as f:
        cfg = yaml.safe_load(f) or {}

    global_defaults: Dict[str, object] = cfg.get("defaults", {}) or {}

    if "experiments" in cfg:
        configs: List[RenderConfig] = []
        for exp in cfg.get("experiments") or []:
            exp_defaults = {**global_defaults, **(exp.get("defaults", {}) or {})}
            configs.extend(_expand_sweep(exp_defaults, exp.get("sweep") or {}))
        return configs

    sweep: Dict[str, object] = cfg.get("sweep", {}) or {}
    return _expand_sweep(global_defaults, sweep)


def load_named_sweep_configs(
    yaml_path: str | Path,
    suite: str | None = None,
) -> List[tuple[str, List[RenderConfig]]]:
    with open(yaml_path) as f:
        cfg = yaml.safe_load(f) or {}

    defaults: Dict[str, object] = cfg.get("defaults", {}) or {}
    experiments = cfg.get("experiments")
    results: List[tuple[str, List[RenderConfig]]] = []

    if experiments:
        for exp in experiments:
            name = exp.get("name")
            if not name:
                continue
            if suite and name != suite:
                continue
            exp_defaults = {**defaults, **(exp.get("defaults", {}) or {})}
            results.append((name, _expand_sweep(exp_defaults, exp.get("sweep") or {})))
        if suite and not results:
            raise ValueError(f"Suite '{suite}' not found in {yaml_path}")
        return results

    configs = _expand_sweep(defaults, cfg.get("sweep", {}) or {})
    label = cfg.get("name") or Path(yaml_path).stem
    return [(label, configs)]


def get_config_by_index(yaml_path: str | Path, index: int) -> RenderConfig:
    """Get a specific config by index from sweep."""
    configs = load_sweep_configs(yaml_path)
    if index < 0 or index >= len(configs):
        raise ValueError(f"Config index {index} out of range [0, {len(configs) - 1}]")
    return configs[index]


def _build_render_config(raw_data: Dict[str, object]) -> RenderConfig:
    data = _coerce_dimensions(raw_data)
    if "xlim" in data:
        data["xlim"] = parse_limits(data["xlim"])  # type: ignore[arg-type]
    if "ylim" in data:
        data["ylim"] = parse_limits(data["ylim"])  # type: ignore[arg-type]
    for key in ("cx", "cy", "escape"):
        if key in data:
            data[key] = float(data[key])  # type: ignore[arg-type]
    if "max_iterations" in data:
        data["max_iterations"] = int(data["max_iterations"])  # type: ignore[arg-type]
    try:
        config = replace(DEFAULT_RENDER_CONFIG, **data)
    except TypeError as exc:
        raise InvalidParametersError(str(exc)) from exc
    return config.validate()


def _expand_sweep(defaults: Dict[str, object], sweep: Dict[str, object]) -> List[RenderConfig]:
    """Expand sweep definition into RenderConfig instances."""
    param_grid = {k: sweep[k] for k in sweep if k != "image_shape"}
    shape_options = sweep.get("image_shape")

    keys = list(param_grid.keys())
    if not keys:
        return _expand_shapes(defaults, shape_options)

    configs: List[RenderConfig] = []
    for combo in product(*[param_grid[k] for k in keys]):
        data = {**defaults, **dict(zip(keys, combo))}
        configs.extend(_expand_shapes(data, shape_options))
    return configs


def _coerce_dimensions(data: Dict[str, object]) -> Dict[str, object]:
    result = dict(data)
    for key in ("image_size", "image_shape"):
        entry = result.pop(key, None)
        if entry is not None:
            width, height = _normalize_shape_entry(entry)
            result.setdefault("width", width)
            result.setdefault("height", height)
    if "width" in result:
        result["width"] = int(result["width"])  # type: ignore[arg-type]
    if "height" in result:
        result["height"] = int(result["height"])  # type: ignore[arg-type]
    return result


def _normalize_shape_entry(entry: object) -> Tuple[int, int]:
    if isinstance(entry, dict):
        width = entry.get("width")
        height = entry.get("height")
        if width is None or height is None:
            raise InvalidParametersError("image_shape dict must include 'width' and 'height'")
        return int(width), int(height)
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        return int(entry[0]), int(entry[1])
    if isinstance(entry, str):
        return parse_image_size(entry)
    raise InvalidParametersError(f"Unsupported image shape specification: {entry!r}")


def _expand_shapes(base: Dict[str, object], shape_options: object) -> List[RenderConfig]:
    if not shape_options:
        return [_build_render_config(base)]

    shapes: Iterable[Tuple[int, int]]
    if isinstance(shape_options, (list, tuple)):
        shapes = [_normalize_shape_entry(opt) for opt in shape_options]
    else:
        shapes = [_normalize_shape_entry(shape_options)]

    return [_build_render_config({**base, "width": w, "height": h}) for w, h in shapes]
