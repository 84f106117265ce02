from __future__ import annotations

import argparse
import sys
from pathlib import Path

import yaml

from thorn.config import (
    default_render_config,
    load_named_sweep_configs,
    parse_image_size,
    parse_limits,
)
from thorn.errors import ThornError
from thorn.execution import run_single_render, run_sweep


def _limits(value: str):
    try:
        return parse_limits(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _size(value: str):
    try:
        return parse_image_size(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Render the Thorn fractal to a binary PGM file.")
    parser.add_argument("pgmfile", nargs="?", help="Output PGM path for a single render")
    parser.add_argument("--size", type=_size, help="Image size WIDTHxHEIGHT (default 1024x768)")
    parser.add_argument("--cx", type=float, help="Real part of the fractal constant")
    parser.add_argument("--cy", type=float, help="Imaginary part of the fractal constant")
    parser.add_argument("--xlim", type=_limits, help="Real window lo:hi, e.g. --xlim=-1:1 or --xlim=-pi:pi")
    parser.add_argument("--ylim", type=_limits, help="Imaginary window lo:hi, e.g. --ylim=-0.5pi:0.5pi")
    parser.add_argument("--iterations", type=int, help="Maximum iteration count")
    parser.add_argument("--escape", type=float, help="Squared escape radius")
    parser.add_argument("--threads", type=int, help="Worker threads for the parallel loop")
    parser.add_argument("--no-comment", action="store_true", help="Omit the header comment line")
    parser.add_argument("--track", action="store_true", help="Log renders to MLflow")

    parser.add_argument("--sweep", type=str, help="Path to sweep YAML file")
    parser.add_argument("--suite", type=str, help="Name of suite within sweep file")
    parser.add_argument("--list-suites", action="store_true", help="List suites in sweep file")
    parser.add_argument("--task-id", type=int, help="Render specific config index (for HPC arrays)")
    parser.add_argument("--output-dir", type=str, default="renders", help="Directory for sweep output")

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # Handle sweep runs
    if args.sweep:
        sweep_path = Path(args.sweep)

        try:
            suites = load_named_sweep_configs(sweep_path, args.suite)
        except (ThornError, ValueError, OSError, yaml.YAMLError) as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

        if args.list_suites:
            for name, configs in suites:
                print(f"{name}: {len(configs)} configurations")
            return 0

        if args.task_id is not None and args.suite is None:
            sys.exit("ERROR: --task-id requires --suite")

        exit_code = 0
        for suite_name, configs in suites:
            descriptor = f"{sweep_path}::{suite_name}"
            rc = run_sweep(
                configs,
                Path(args.output_dir) / suite_name,
                args.task_id,
                suite_name,
                descriptor,
                comment=not args.no_comment,
                track=args.track,
            )
            exit_code = exit_code or rc
        return exit_code

    if args.suite or args.list_suites or args.task_id is not None:
        sys.exit("ERROR: --suite, --list-suites and --task-id require --sweep")

    # Handle direct CLI run
    if not args.pgmfile:
        sys.exit("ERROR: Expected pgmfile argument after options")

    overrides = {}
    if args.size:
        overrides["width"], overrides["height"] = args.size
    for key, value in (
        ("cx", args.cx),
        ("cy", args.cy),
        ("xlim", args.xlim),
        ("ylim", args.ylim),
        ("max_iterations", args.iterations),
        ("escape", args.escape),
        ("n_threads", args.threads),
    ):
        if value is not None:
            overrides[key] = value

    try:
        config = default_render_config(**overrides)
        run_single_render(
            config,
            args.pgmfile,
            comment=not args.no_comment,
            track=args.track,
        )
    except (ThornError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
