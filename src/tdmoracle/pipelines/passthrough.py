"""
Identity pipeline: no filtering, no rescoring.

Scores are the stored weights, or 1.0 for every nonzero in boolean mode.
Useful for checking a reference against itself and for runner smoke tests.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np

from tdmoracle.matrix.csc import SparseColumnMatrix

__all__ = ["run"]


def run(
    matrix: SparseColumnMatrix,
    *,
    boolean_mode: bool,
    config: Optional[Dict[str, Any]] = None,
) -> Tuple[SparseColumnMatrix, np.ndarray]:
    if boolean_mode:
        matrix = matrix.as_boolean()
    return matrix, np.array(matrix.data, dtype=np.float64)
