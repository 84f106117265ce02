"""Test numerical correctness of the parallel evaluator against the serial baseline."""

import math
from pathlib import Path

import numba
import numpy as np
import pytest

from thorn.baseline import compute_thorn
from thorn.computation import compute_grid, grid_constants, thorn_escape
from thorn.config import RenderConfig, default_render_config, load_sweep_configs
from thorn.errors import AllocationError, InvalidParametersError

TEST_CONFIGS = load_sweep_configs(Path(__file__).parent / "test_configs.yaml")


@pytest.mark.parametrize(
    "config",
    TEST_CONFIGS,
    ids=lambda c: f"{c.run_name}_it{c.max_iterations}",
)
def test_parallel_matches_baseline(config):
    grid = compute_grid(config)
    baseline = compute_thorn(config)

    assert grid.shape == (config.height, config.width)
    np.testing.assert_array_equal(grid, baseline, err_msg=f"Mismatch: {config.run_name}")


@pytest.mark.parametrize("config", TEST_CONFIGS, ids=lambda c: f"{c.run_name}_it{c.max_iterations}")
def test_counts_within_do_while_bounds(config):
    grid = compute_grid(config)
    assert grid.min() >= 1
    assert grid.max() <= config.max_iterations + 1


def test_regression_two_by_two():
    config = default_render_config(width=2, height=2, max_iterations=255)
    grid = compute_grid(config)
    # Row 0 is ymin=-pi; (0,0) overflows, (0,1) divides by sin(0), (1,1) is 0/0.
    np.testing.assert_array_equal(grid, np.array([[1, 1], [5, 1]], dtype=np.uint16))


def test_zero_iterations_runs_body_once():
    config = default_render_config(width=16, height=12, max_iterations=0)
    grid = compute_grid(config)
    assert np.all(grid == 1)


def test_nan_magnitude_stops_iteration():
    # cos(0)=1 and 0/sin(0) is NaN; the < escape test fails on NaN.
    assert thorn_escape(0.0, 0.0, 9.984, 7.55, 1000, 1e4) == 1


def test_bounded_orbit_hits_cap():
    # A huge escape radius keeps every finite orbit running until the cap.
    assert thorn_escape(-math.pi, 0.0, 9.984, 7.55, 3, 1e300) == 4


def test_deterministic_across_thread_counts():
    config = default_render_config(width=48, height=40, max_iterations=300)
    single = compute_grid(default_render_config(width=48, height=40, max_iterations=300, n_threads=1))
    pooled = compute_grid(config)
    again = compute_grid(config)

    np.testing.assert_array_equal(single, pooled)
    np.testing.assert_array_equal(pooled, again)


def test_thread_count_restored():
    before = numba.get_num_threads()
    compute_grid(default_render_config(width=4, height=4, max_iterations=10, n_threads=1))
    assert numba.get_num_threads() == before


def test_pixel_mapping_is_half_open():
    config = default_render_config(width=7, height=5, xlim=(-1.5, 2.0), ylim=(-0.75, 1.25), max_iterations=50)
    grid = compute_grid(config)
    args = (config.cx, config.cy, config.max_iterations, config.escape)

    assert grid[0, 0] == thorn_escape(config.xlim[0], config.ylim[0], *args)

    last_x = config.xlim[0] + (config.width - 1) * (config.xlim[1] - config.xlim[0]) / config.width
    last_y = config.ylim[0] + (config.height - 1) * (config.ylim[1] - config.ylim[0]) / config.height
    assert last_x < config.xlim[1]
    assert last_y < config.ylim[1]
    assert grid[-1, -1] == thorn_escape(last_x, last_y, *args)


@pytest.mark.parametrize(
    "overrides",
    [
        {"height": 0},
        {"width": -3},
        {"xlim": (1.0, 1.0)},
        {"ylim": (2.0, -2.0)},
        {"max_iterations": -1},
        {"max_iterations": 65535},
        {"escape": 0.0},
        {"cx": float("nan")},
    ],
)
def test_degenerate_parameters_rejected(overrides):
    with pytest.raises(InvalidParametersError):
        default_render_config(**overrides)


def test_evaluator_validates_directly_constructed_config():
    with pytest.raises(InvalidParametersError):
        compute_grid(RenderConfig(width=4, height=4, xlim=(0.0, 0.0)))


def test_allocation_failure_is_reported(monkeypatch):
    import thorn.computation as computation

    def fail(*args, **kwargs):
        raise MemoryError

    monkeypatch.setattr(computation.np, "empty", fail)
    with pytest.raises(AllocationError):
        compute_grid(default_render_config(width=8, height=8))


def test_grid_constants_are_origin_and_span():
    config = default_render_config(width=8, height=4, xlim=(-1.5, 2.0), ylim=(-0.75, 1.25))
    assert grid_constants(config) == (-1.5, 3.5, -0.75, 2.0)
