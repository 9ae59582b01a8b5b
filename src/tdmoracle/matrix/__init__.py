"""
Matrix package public API.

    from tdmoracle.matrix import SparseColumnMatrix, load_matrix_market
"""

from .csc import SparseColumnMatrix
from .io import load_matrix_market

__all__ = ["SparseColumnMatrix", "load_matrix_market"]
