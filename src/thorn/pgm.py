"""Binary PGM (P5) writer for iteration-count grids.

Header layout follows http://netpbm.sourceforge.net/doc/pgm.html. Samples
fit in one byte whenever the grid maximum is at most 255; otherwise each
sample takes two bytes, most significant first, split as ``v // 255`` and
``v & 255``. That split is what existing readers of these files expect and
must not be replaced by a base-256 split.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import numpy as np

__all__ = ["MAGIC", "BYTE_MAX", "pgm_header", "encode_samples", "write_pgm", "read_pgm_header"]

MAGIC = b"P5"
BYTE_MAX = 255


def pgm_header(width: int, height: int, maxval: int, comment: Optional[str] = None) -> bytes:
    lines = [MAGIC.decode("ascii")]
    if comment is not None:
        lines.append(f"# {comment}")
    lines.append(f"{width} {height}")
    lines.append(f"{maxval}")
    return ("\n".join(lines) + "\n").encode("ascii")


def encode_samples(grid: np.ndarray, maxval: int) -> bytes:
    """Serialize samples in row-major order at the depth implied by ``maxval``."""
    values = np.ascontiguousarray(grid).astype(np.int64, copy=False)
    if maxval <= BYTE_MAX:
        return values.astype(np.uint8).tobytes()
    msb = (values // BYTE_MAX) & BYTE_MAX
    lsb = values & BYTE_MAX
    return np.stack([msb, lsb], axis=-1).astype(np.uint8).tobytes()


def write_pgm(
    path: str | Path,
    width: int,
    height: int,
    grid: np.ndarray,
    comment: Optional[str] = None,
) -> int:
    """Write ``grid`` as a P5 file and return the declared maximum value.

    Raises ``OSError`` if the destination cannot be opened or written.
    """
    if grid.shape != (height, width):
        raise ValueError(f"Grid shape {grid.shape} does not match {width}x{height}")

    with open(path, "wb") as f:
        # The header must declare the true maximum, so scan before writing anything.
        maxval = int(grid.max()) if grid.size else 0
        f.write(pgm_header(width, height, maxval, comment))
        f.write(encode_samples(grid, maxval))
    return maxval


def read_pgm_header(path: str | Path) -> Tuple[int, int, int, Optional[str], int]:
    """Return ``(width, height, maxval, comment, data_offset)`` of a P5 file."""
    with open(path, "rb") as f:
        data = f.read()

    tokens = []
    comment = None
    pos = 0
    while len(tokens) < 4:
        while pos < len(data) and data[pos : pos + 1].isspace():
            pos += 1
        if pos >= len(data):
            raise ValueError(f"Truncated PGM header in {path}")
        if data[pos : pos + 1] == b"#":
            end = data.index(b"\n", pos)
            comment = data[pos + 1 : end].decode("ascii").strip()
            pos = end + 1
            continue
        start = pos
        while pos < len(data) and not data[pos : pos + 1].isspace():
            pos += 1
        tokens.append(data[start:pos])

    if tokens[0] != MAGIC:
        raise ValueError(f"Not a binary PGM file: {path}")
    width, height, maxval = (int(t) for t in tokens[1:])
    # A single whitespace byte separates the header from the samples.
    return width, height, maxval, comment, pos + 1
