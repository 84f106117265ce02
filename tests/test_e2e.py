"""End-to-end tests via main.py."""

import os
import subprocess
import sys

from thorn.pgm import read_pgm_header


def _run(repo_root, *args):
    env = {**os.environ, "SKIP_MLFLOW": "1"}
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(repo_root / "src"), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "main.py", *args],
        cwd=repo_root,
        env=env,
        capture_output=True,
        text=True,
        timeout=120,
    )


def test_single_render(repo_root, tmp_path):
    output = tmp_path / "thorn.pgm"
    result = _run(repo_root, "--size", "2x2", "--iterations", "255", str(output))

    assert result.returncode == 0, f"Render failed:\n{result.stdout}\n{result.stderr}"
    assert "[Timing]" in result.stdout
    assert output.read_bytes() == b"P5\n# Thorn fractal: cx=9.984, cy=7.55\n2 2\n5\n" + bytes([1, 1, 5, 1])


def test_window_in_multiples_of_pi(repo_root, tmp_path):
    output = tmp_path / "window.pgm"
    result = _run(
        repo_root,
        "--size=12x8",
        "--ylim=-0.5pi:0.5pi",
        "--cx=1.5",
        "--iterations=100",
        "--no-comment",
        str(output),
    )

    assert result.returncode == 0, result.stderr
    assert read_pgm_header(output)[:2] == (12, 8)
    assert read_pgm_header(output)[3] is None


def test_tests_suite(repo_root, tmp_path):
    """Run TESTS suite end-to-end - should complete without errors."""
    result = _run(
        repo_root,
        "--sweep", "configs/sweeps.yaml",
        "--suite", "TESTS",
        "--output-dir", str(tmp_path),
    )

    assert result.returncode == 0, f"Suite failed:\n{result.stdout}\n{result.stderr}"
    assert len(list((tmp_path / "TESTS").glob("*.pgm"))) == 4


def test_list_suites(repo_root):
    result = _run(repo_root, "--sweep", "configs/sweeps.yaml", "--list-suites")
    assert result.returncode == 0
    assert "TESTS: 4 configurations" in result.stdout
    assert "backgrounds: 3 configurations" in result.stdout


def test_invalid_parameters_exit_nonzero(repo_root, tmp_path):
    output = tmp_path / "never.pgm"
    result = _run(repo_root, "--xlim=1:1", str(output))

    assert result.returncode == 1
    assert "ERROR" in result.stderr
    assert not output.exists()


def test_malformed_arguments_print_usage(repo_root):
    result = _run(repo_root, "--iterations", "many", "out.pgm")
    assert result.returncode == 2
    assert "usage:" in result.stderr


def test_missing_output_path(repo_root):
    result = _run(repo_root, "--size", "4x4")
    assert result.returncode == 1
    assert "pgmfile" in result.stderr


def test_unwritable_output(repo_root, tmp_path):
    result = _run(repo_root, "--size", "4x4", str(tmp_path / "no" / "such" / "dir.pgm"))
    assert result.returncode == 1
    assert "ERROR" in result.stderr


def test_malformed_sweep_file(repo_root, tmp_path):
    sweep = tmp_path / "broken.yaml"
    sweep.write_text("experiments: [\n  - name: x\n")
    result = _run(repo_root, "--sweep", str(sweep), "--output-dir", str(tmp_path))

    assert result.returncode == 1
    assert "ERROR" in result.stderr
    assert "Traceback" not in result.stderr
