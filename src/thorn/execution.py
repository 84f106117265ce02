"""Execution helpers for Thorn CLI workflows."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from .computation import compute_grid
from .config import RenderConfig
from .errors import ThornError
from .pgm import write_pgm
from .report import RenderReport
from .timing import timer


def render(
    config: RenderConfig,
    output: str | Path,
    *,
    comment: bool = True,
) -> RenderReport:
    """Evaluate ``config`` and write the grid to ``output`` as a P5 file."""
    output = Path(output)
    timing = {}
    with timer() as wall:
        with timer() as comp:
            grid = compute_grid(config)
        timing["comp_time"] = comp()

        with timer() as write:
            write_pgm(
                output,
                config.width,
                config.height,
                grid,
                config.comment if comment else None,
            )
        timing["write_time"] = write()
    timing["wall_time"] = wall()

    return RenderReport(config=config, grid=grid, timing=timing, output=output)


def run_single_render(
    config: RenderConfig,
    output: str | Path,
    *,
    suite_name: Optional[str] = None,
    comment: bool = True,
    track: bool = False,
) -> RenderReport:
    """Render one configuration, print a summary and optionally log it to MLflow."""
    print(
        f"[Render] Starting '{config.run_name}' "
        f"(window=x{config.xlim} y{config.ylim}, iterations={config.max_iterations}, "
        f"escape={config.escape:g}, threads={config.n_threads or 'default'})",
        flush=True,
    )

    report = render(config, output, comment=comment)

    print(f"[Write] {report.output} (max count {report.max_count})", flush=True)
    print(
        f"[Timing] Compute: {report.timing['comp_time']:.4f}s  "
        f"Write: {report.timing['write_time']:.4f}s  "
        f"Total: {report.timing['wall_time']:.4f}s"
    )

    if track:
        from .tracking import log_to_mlflow

        suite = suite_name or os.environ.get("THORN_SUITE") or "default"
        log_to_mlflow(report, suite)

    return report


def run_sweep(
    configs: list[RenderConfig],
    output_dir: str | Path,
    task_id: Optional[int] = None,
    suite_name: Optional[str] = None,
    descriptor: str = "sweep",
    *,
    comment: bool = True,
    track: bool = False,
) -> int:
    """Render every configuration of a sweep into ``output_dir``; return an exit code."""
    if not configs:
        print("ERROR: No configurations found in sweep", file=sys.stderr)
        return 1

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if task_id is not None:
        if task_id < 0 or task_id >= len(configs):
            print(f"ERROR: task-id {task_id} out of range [0, {len(configs) - 1}]", file=sys.stderr)
            return 1
        config = configs[task_id]
        print(f"[Task {task_id}] Running: {config.run_name}")
        try:
            run_single_render(
                config,
                output_dir / f"{config.run_name}.pgm",
                suite_name=suite_name,
                comment=comment,
                track=track,
            )
        except (ThornError, OSError) as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1
        return 0

    print("=" * 70)
    print(f"Running {len(configs)} configurations from {descriptor}")
    print("=" * 70)

    failures: list[tuple[int, str]] = []
    for idx, config in enumerate(configs):
        print(f"\n[{idx + 1}/{len(configs)}] {config.run_name}")
        try:
            run_single_render(
                config,
                output_dir / f"{config.run_name}.pgm",
                suite_name=suite_name,
                comment=comment,
                track=track,
            )
        except (ThornError, OSError) as exc:
            print(f"    ✗ FAILED: {exc}", file=sys.stderr)
            failures.append((idx, config.run_name))

    print("\n" + "=" * 70)
    print("Summary")
    print("=" * 70)
    print(f"Total:      {len(configs)}")
    print(f"Successful: {len(configs) - len(failures)}")
    print(f"Failed:     {len(failures)}")

    if failures:
        print("\nFailed configurations:")
        for idx, name in failures:
            print(f"  [{idx}] {name}")
        return 1

    return 0
