"""
Per-column Euclidean norms of nonzero weights.

The weights need not be the matrix's stored values: any score sequence aligned
1:1 with the nonzero order (e.g. TF-IDF computed by the pipeline) can be
profiled against the matrix's column offsets.

Public API (stable):
    ColumnNorm(column: int, norm: float)
    column_norms(offsets, weights) -> np.ndarray[float64]
    build_column_norms(matrix, weights=None) -> list[ColumnNorm]
    sorted_norm_rms_error(norms0, norms1) -> float
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

from tdmoracle.errors import ScoreAlignmentError
from tdmoracle.matrix.csc import SparseColumnMatrix, column_ids, readonly_view

__all__ = [
    "ColumnNorm",
    "column_norms",
    "build_column_norms",
    "sorted_norm_rms_error",
]


@dataclass(frozen=True)
class ColumnNorm:
    column: int
    norm: float


def column_norms(offsets: Any, weights: Any) -> np.ndarray:
    """Return sqrt(sum(w**2)) over each column's offset range."""
    off = readonly_view(offsets, np.int64)
    w = readonly_view(weights, np.float64)
    nnz = int(off[-1]) if off.size else 0
    if w.size != nnz:
        raise ScoreAlignmentError(
            f"weight sequence has length {w.size}, expected {nnz} (one per nonzero)"
        )
    counts = np.diff(off)
    sums = np.zeros(counts.size, dtype=np.float64)
    if nnz:
        # Sum each column's squares in ascending order so the result depends
        # only on the column's weight multiset, not on its storage order.
        sq = w * w
        cols = column_ids(off)
        sq = sq[np.lexsort((sq, cols))]
        nonempty = counts > 0
        sums[nonempty] = np.add.reduceat(sq, off[:-1][nonempty])
    return np.sqrt(sums)


def build_column_norms(
    matrix: SparseColumnMatrix, weights: Optional[Any] = None
) -> List[ColumnNorm]:
    """Per-column norms in column order; `weights` defaults to the stored data."""
    w = matrix.data if weights is None else weights
    norms = column_norms(matrix.offsets, w)
    return [ColumnNorm(column=c, norm=float(v)) for c, v in enumerate(norms)]


def sorted_norm_rms_error(norms0: Any, norms1: Any) -> float:
    """
    RMS difference between the two norm sequences after sorting each ascending.

    Sorting makes the statistic independent of column order. Returns 0.0 for
    empty input.
    """
    a = np.sort(np.asarray(norms0, dtype=np.float64))
    b = np.sort(np.asarray(norms1, dtype=np.float64))
    if a.size != b.size:
        raise ValueError(f"norm sequences differ in length: {a.size} != {b.size}")
    if a.size == 0:
        return 0.0
    diff = a - b
    return math.sqrt(float(np.dot(diff, diff)) / a.size)
