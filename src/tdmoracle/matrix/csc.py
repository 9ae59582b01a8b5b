"""
Compressed-sparse-column term-document matrix.

Terms are rows, documents are columns. The matrix is a thin, read-only wrapper
around three buffers owned by the caller:

    offsets : int array, length width + 1, non-decreasing,
              offsets[0] == 0 and offsets[width] == nnz
    rows    : int array, length nnz, values in [0, height)
    data    : float array, length nnz (one weight per nonzero)

Public API (stable):
    SparseColumnMatrix(height, width, offsets, rows, data)
    SparseColumnMatrix.from_scipy(m) -> SparseColumnMatrix
    SparseColumnMatrix.to_scipy() -> scipy.sparse.csc_matrix

Conventions:
- Buffers are held as read-only numpy views. Nothing in this package writes
  to them; if the caller passes arrays of a suitable dtype no copy is made.
- Row order inside a column is unconstrained, but a row index may appear at
  most once per column.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
import scipy.sparse as sp

from tdmoracle.errors import MatrixFormatError, ScoreAlignmentError

__all__ = ["SparseColumnMatrix", "readonly_view", "column_ids"]


def readonly_view(values: Any, dtype: Any) -> np.ndarray:
    """Return a 1-d read-only view of `values` (copying only if the dtype differs)."""
    arr = np.asarray(values)
    if arr.ndim != 1:
        arr = arr.reshape(-1)
    if arr.dtype != dtype:
        if arr.size and dtype == np.int64 and not np.issubdtype(arr.dtype, np.integer):
            raise MatrixFormatError(f"expected integer indices, got dtype {arr.dtype}")
        arr = arr.astype(dtype)
    view = arr.view()
    view.flags.writeable = False
    return view


def column_ids(offsets: np.ndarray) -> np.ndarray:
    """Expand an offset array into the column index of every nonzero."""
    counts = np.diff(offsets)
    return np.repeat(np.arange(counts.size, dtype=np.int64), counts)


@dataclass(frozen=True, eq=False)
class SparseColumnMatrix:
    height: int
    width: int
    offsets: np.ndarray
    rows: np.ndarray
    data: np.ndarray

    def __post_init__(self) -> None:
        height, width = int(self.height), int(self.width)
        if height < 0 or width < 0:
            raise MatrixFormatError(f"negative dimensions: {height} x {width}")
        object.__setattr__(self, "height", height)
        object.__setattr__(self, "width", width)
        object.__setattr__(self, "offsets", readonly_view(self.offsets, np.int64))
        object.__setattr__(self, "rows", readonly_view(self.rows, np.int64))
        object.__setattr__(self, "data", readonly_view(self.data, np.float64))
        self._validate()

    # ------------------------- properties ------------------------- #

    @property
    def nnz(self) -> int:
        return int(self.rows.size)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    def column(self, c: int) -> Tuple[np.ndarray, np.ndarray]:
        """Return (rows, data) views for column `c`."""
        if not 0 <= c < self.width:
            raise IndexError(f"column {c} out of range for width {self.width}")
        start, end = int(self.offsets[c]), int(self.offsets[c + 1])
        return self.rows[start:end], self.data[start:end]

    def column_counts(self) -> np.ndarray:
        return np.diff(self.offsets)

    # ------------------------- derived matrices ------------------------- #

    def with_weights(self, weights: Any) -> "SparseColumnMatrix":
        """Same pattern, new weights (aligned 1:1 with the current nonzero order)."""
        w = np.asarray(weights, dtype=np.float64)
        if w.size != self.nnz:
            raise ScoreAlignmentError(
                f"weights have length {w.size}, matrix has {self.nnz} nonzeros"
            )
        return SparseColumnMatrix(self.height, self.width, self.offsets, self.rows, w)

    def as_boolean(self) -> "SparseColumnMatrix":
        """Collapse every stored weight to 1.0."""
        return self.with_weights(np.ones(self.nnz, dtype=np.float64))

    # ------------------------- scipy interop ------------------------- #

    @classmethod
    def from_scipy(cls, m: Any) -> "SparseColumnMatrix":
        """
        Build from any scipy sparse matrix/array.

        CSC input keeps its buffers (including explicit zeros and the stored
        row order); other formats are converted with `tocsc()` first.
        """
        if not sp.issparse(m):
            raise MatrixFormatError(f"expected a scipy sparse matrix, got {type(m).__name__}")
        csc = m if m.format == "csc" else m.tocsc()
        height, width = csc.shape
        return cls(height, width, csc.indptr, csc.indices, csc.data)

    def to_scipy(self) -> sp.csc_matrix:
        return sp.csc_matrix(
            (np.array(self.data), np.array(self.rows), np.array(self.offsets)),
            shape=self.shape,
        )

    # ------------------------- helpers ------------------------- #

    def _validate(self) -> None:
        offsets, rows, data = self.offsets, self.rows, self.data
        if offsets.size != self.width + 1:
            raise MatrixFormatError(
                f"offsets must have length width + 1 = {self.width + 1}; got {offsets.size}"
            )
        if offsets[0] != 0:
            raise MatrixFormatError(f"offsets[0] must be 0; got {int(offsets[0])}")
        if np.any(np.diff(offsets) < 0):
            raise MatrixFormatError("offsets must be non-decreasing")
        nnz = int(offsets[-1])
        if rows.size != nnz:
            raise MatrixFormatError(
                f"offsets[width] = {nnz} but {rows.size} row indices were given"
            )
        if data.size != nnz:
            raise MatrixFormatError(
                f"offsets[width] = {nnz} but {data.size} weights were given"
            )
        if nnz == 0:
            return
        if rows.min() < 0 or rows.max() >= self.height:
            raise MatrixFormatError(f"row indices must lie in [0, {self.height})")

        # Duplicate rows inside a column show up as equal neighbours once the
        # nonzeros are sorted by (column, row).
        cols = column_ids(offsets)
        order = np.lexsort((rows, cols))
        r, c = rows[order], cols[order]
        dup = (r[1:] == r[:-1]) & (c[1:] == c[:-1])
        if np.any(dup):
            i = int(np.flatnonzero(dup)[0])
            raise MatrixFormatError(
                f"row {int(r[i])} appears more than once in column {int(c[i])}"
            )

    def __repr__(self) -> str:
        return f"SparseColumnMatrix(height={self.height}, width={self.width}, nnz={self.nnz})"
