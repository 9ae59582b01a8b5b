"""
Exact comparison of nonzero patterns.

Public API (stable):
    same_sparsity_pattern(m0, m1) -> bool
    canonical_order(matrix) -> np.ndarray
"""

from __future__ import annotations

import numpy as np

from tdmoracle.matrix.csc import SparseColumnMatrix, column_ids

__all__ = ["same_sparsity_pattern", "canonical_order"]


def canonical_order(matrix: SparseColumnMatrix) -> np.ndarray:
    """
    Permutation of the nonzeros that sorts them by (column, row).

    Offsets are unchanged by this permutation: each nonzero stays inside its
    column's range.
    """
    return np.lexsort((matrix.rows, column_ids(matrix.offsets)))


def same_sparsity_pattern(m0: SparseColumnMatrix, m1: SparseColumnMatrix) -> bool:
    """
    Return True iff every column of `m0` holds exactly the same row indices as
    the same column of `m1`. Weights are ignored.

    Different heights or widths are a plain False, not an error.
    """
    if m0.height != m1.height or m0.width != m1.width:
        return False
    if not np.array_equal(m0.offsets, m1.offsets):
        return False
    if np.array_equal(m0.rows, m1.rows):
        return True
    # Same column sizes but rows stored in a different order (or different rows).
    return np.array_equal(m0.rows[canonical_order(m0)], m1.rows[canonical_order(m1)])
