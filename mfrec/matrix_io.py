from __future__ import annotations

from typing import TextIO

import torch

from .errors import ModelCorruptError


def write_matrix(writer: TextIO, matrix: torch.Tensor) -> None:
    """
    Text encoding of a dense 2D matrix:
      rows cols
      i j value      (rows * cols lines, row-major)

    Values use repr(float), which round-trips exactly and never depends on locale.
    """
    if matrix.dim() != 2:
        raise ValueError(f"expected a 2D matrix, got shape {tuple(matrix.shape)}")
    rows, cols = matrix.shape
    writer.write(f"{rows} {cols}\n")
    values = matrix.detach().cpu().tolist()
    for i, row in enumerate(values):
        for j, value in enumerate(row):
            writer.write(f"{i} {j} {float(value)!r}\n")


def _next_line(reader: TextIO, what: str) -> str:
    try:
        line = reader.readline()
    except UnicodeDecodeError as e:
        raise ModelCorruptError(f"undecodable bytes while reading {what}") from e
    if line == "":
        raise ModelCorruptError(f"unexpected end of file while reading {what}")
    return line


def read_matrix(reader: TextIO, dtype: torch.dtype = torch.float64) -> torch.Tensor:
    """Read one matrix written by write_matrix; stops right after its last value."""
    header = _next_line(reader, "matrix header").split()
    try:
        rows, cols = (int(x) for x in header)
    except ValueError:
        raise ModelCorruptError(f"malformed matrix header: {' '.join(header)!r}") from None
    if rows < 0 or cols < 0:
        raise ModelCorruptError(f"negative matrix shape: {rows} x {cols}")

    matrix = torch.zeros((rows, cols), dtype=dtype)
    expected = rows * cols
    for n in range(expected):
        fields = _next_line(reader, f"value {n + 1} of {expected} ({rows} x {cols})").split()
        if len(fields) != 3:
            raise ModelCorruptError(f"expected 'i j value', got {' '.join(fields)!r}")
        try:
            i, j, value = int(fields[0]), int(fields[1]), float(fields[2])
        except ValueError:
            raise ModelCorruptError(f"malformed matrix entry: {' '.join(fields)!r}") from None
        if not (0 <= i < rows and 0 <= j < cols):
            raise ModelCorruptError(f"entry ({i}, {j}) outside declared shape {rows} x {cols}")
        if (i, j) != divmod(n, cols):
            raise ModelCorruptError(
                f"entry ({i}, {j}) out of order, expected {divmod(n, cols)} in row-major order"
            )
        matrix[i, j] = value
    return matrix
