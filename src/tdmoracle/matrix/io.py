"""
Matrix Market loading.

Public API (stable):
    load_matrix_market(path) -> SparseColumnMatrix

Any failure to read or interpret the file is reported as `LoadFailure`, which
callers treat as "skip this scenario" rather than a fatal error.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import numpy as np
import scipy.io
import scipy.sparse as sp

from tdmoracle.errors import LoadFailure, MatrixFormatError
from tdmoracle.matrix.csc import SparseColumnMatrix

__all__ = ["load_matrix_market"]

logger = logging.getLogger(__name__)


def load_matrix_market(path: Union[str, Path]) -> SparseColumnMatrix:
    """
    Load a `.mtx` file as a term-document matrix (terms x documents).

    Raises
    ------
    LoadFailure
        If the file is missing, unreadable or dense, lists a coordinate more
        than once, or violates the sparse column invariants.
    """
    path = Path(path)
    if not path.is_file():
        raise LoadFailure(f"matrix file not found: {path}")
    try:
        raw = scipy.io.mmread(str(path))
    except Exception as e:
        raise LoadFailure(f"could not read matrix file {path}: {e}") from e

    if not sp.issparse(raw):
        raise LoadFailure(f"{path} holds a dense array; expected coordinate format")

    coo = raw.tocoo()
    if coo.nnz > 1:
        order = np.lexsort((coo.row, coo.col))
        r, c = coo.row[order], coo.col[order]
        repeated = np.flatnonzero((r[1:] == r[:-1]) & (c[1:] == c[:-1]))
        if repeated.size:
            k = repeated[0]
            raise LoadFailure(
                f"{path}: duplicate entry at row {int(r[k]) + 1}, column {int(c[k]) + 1}"
            )

    try:
        csc = coo.tocsc()
        csc.sort_indices()
        matrix = SparseColumnMatrix.from_scipy(csc)
    except MatrixFormatError as e:
        raise LoadFailure(f"{path}: {e}") from e

    logger.debug("loaded %s: %d x %d, nnz=%d", path, matrix.height, matrix.width, matrix.nnz)
    return matrix
